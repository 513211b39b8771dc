"""CRUD helpers for users and the events they host."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .models import HostedEvent, User
from .utils import full_name, utcnow

PROFILE_FIELDS = ("bio", "city", "interests")


def get_user(session: Session, user_id: str) -> User | None:
    stmt = (
        select(User)
        .where(User.id == user_id)
        .options(selectinload(User.hosted_events))
    )
    return session.scalars(stmt).first()


def get_user_by_clerk_id(session: Session, clerk_id: str) -> User | None:
    if not clerk_id:
        return None
    stmt = select(User).where(User.clerk_id == clerk_id)
    return session.scalars(stmt).first()


def provision_user(
    session: Session,
    *,
    clerk_id: str,
    email: str | None,
    username: str | None,
    first_name: str | None,
    last_name: str | None,
    avatar_url: str | None,
) -> tuple[User, bool]:
    """Create the local user for an external identity.

    Returns ``(user, created)``; an identity that was already provisioned is
    returned untouched so webhook redeliveries are harmless.
    """
    existing = get_user_by_clerk_id(session, clerk_id)
    if existing:
        return existing, False
    user = User(
        clerk_id=clerk_id,
        email=email,
        username=username,
        name=full_name(first_name, last_name),
        avatar_url=avatar_url,
        interests=[],
    )
    session.add(user)
    session.flush()
    return user, True


def _normalize_interests(raw: Iterable[str] | str | None) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = raw.split(",")
    return [item.strip() for item in raw if item and item.strip()]


def update_profile(session: Session, user: User, **changes) -> User:
    """Apply the supplied profile fields; keys that are absent stay unchanged."""
    for key, value in changes.items():
        if key not in PROFILE_FIELDS:
            raise ValueError(f"Unknown profile field {key!r}")
        if key == "interests":
            value = _normalize_interests(value)
        setattr(user, key, value)
    user.updated_at = utcnow()
    session.add(user)
    session.flush()
    return user


def create_hosted_event(
    session: Session,
    *,
    host: User,
    title: str,
    date: str,
    time: str,
    location: str,
    tags: list[str],
    description: str,
    image: str | None,
) -> HostedEvent:
    event = HostedEvent(
        host=host,
        title=title.strip(),
        date=date.strip(),
        time=time.strip(),
        location=location.strip(),
        tags=list(tags),
        description=description.strip(),
        image=(image or "").strip() or None,
        created_at=utcnow(),
    )
    session.add(event)
    session.flush()
    return event
