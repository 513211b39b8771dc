"""Caller identity resolved from the hosted auth provider's session token."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import jwt
from fastapi import Request

from .config import settings

logger = logging.getLogger("uvicorn.error")

# Cookie the identity provider sets on same-site requests.
SESSION_COOKIE = "__session"


@dataclass(frozen=True)
class Auth:
    user_id: str | None = None

    @property
    def is_signed_in(self) -> bool:
        return bool(self.user_id)


def _get_bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def get_session_token(request: Request) -> str | None:
    return _get_bearer_token(request) or request.cookies.get(SESSION_COOKIE) or None


def verify_session_token(token: str | None) -> str | None:
    """Return the external user id carried by a valid session token."""
    if not token:
        return None
    if not settings.clerk_jwt_key:
        logger.warning("Session token received but clerk_jwt_key is not configured")
        return None
    try:
        claims = jwt.decode(
            token,
            settings.clerk_jwt_key,
            algorithms=settings.jwt_algorithms,
            options={"require": ["sub"]},
        )
    except jwt.PyJWTError as exc:
        logger.info("Rejected session token: %s", exc)
        return None
    return claims.get("sub") or None


def get_auth(request: Request) -> Auth:
    """FastAPI dependency describing who is calling."""
    return Auth(user_id=verify_session_token(get_session_token(request)))


class RequestAuthGate:
    """Sign-in gate for page handlers: remembers where to send the caller."""

    def __init__(self, auth: Auth, *, return_to: str = "/") -> None:
        self.auth = auth
        self.return_to = return_to
        self.sign_in_redirect: str | None = None

    def is_authenticated(self) -> bool:
        return self.auth.is_signed_in

    def request_sign_in(self) -> None:
        query = urlencode({"redirect_url": self.return_to})
        self.sign_in_redirect = f"{settings.sign_in_url}?{query}"
