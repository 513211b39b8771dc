"""Shared pytest fixtures for OpenHaus."""

from __future__ import annotations

import base64
import dataclasses
import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool
from svix.webhooks import Webhook

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from openhaus import api, auth, config, database, storage
from openhaus.models import Base

WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"openhaus-test-webhook-secret").decode()
SESSION_SIGNING_KEY = "openhaus-test-session-signing-key-0123456789"


@pytest.fixture(scope="session", autouse=True)
def configure_in_memory_db():
    """Reuse a single in-memory SQLite database for fast, isolated tests."""

    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    session_factory = scoped_session(
        sessionmaker(
            bind=engine,
            autoflush=False,
            autocommit=False,
            future=True,
            expire_on_commit=False,
        )
    )
    database.engine = engine
    database.SessionLocal = session_factory
    storage.engine = engine
    api.SessionLocal = session_factory
    Base.metadata.create_all(bind=engine)
    yield
    session_factory.remove()


@pytest.fixture(autouse=True)
def clean_database():
    """Reset all tables between tests to guarantee isolation."""

    Base.metadata.drop_all(bind=database.engine)
    Base.metadata.create_all(bind=database.engine)
    yield
    database.SessionLocal.remove()


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Settings with known identity-provider secrets."""

    patched = dataclasses.replace(
        config.settings,
        clerk_webhook_secret=WEBHOOK_SECRET,
        clerk_jwt_key=SESSION_SIGNING_KEY,
        clerk_jwt_algorithms="HS256",
        catalog_path="",
        toast_seconds=3.0,
    )
    monkeypatch.setattr(api, "settings", patched)
    monkeypatch.setattr(auth, "settings", patched)
    return patched


@pytest.fixture()
def client():
    """FastAPI test client running the app lifespan."""

    with TestClient(api.app) as test_client:
        yield test_client


@pytest.fixture()
def session_token():
    """Factory for identity-provider session tokens accepted by the app."""

    def _make(clerk_id: str, *, expires_in: int = 3600) -> str:
        now = datetime.now(timezone.utc)
        claims = {"sub": clerk_id, "iat": now, "exp": now + timedelta(seconds=expires_in)}
        return jwt.encode(claims, SESSION_SIGNING_KEY, algorithm="HS256")

    return _make


@pytest.fixture()
def signed_webhook():
    """Factory returning a (body, headers) pair signed with the test secret."""

    def _make(payload: dict, *, msg_id: str = "msg_test", timestamp=None, secret=None):
        body = json.dumps(payload)
        sent_at = timestamp or datetime.now(timezone.utc)
        signature = Webhook(secret or WEBHOOK_SECRET).sign(msg_id, sent_at, body)
        headers = {
            "svix-id": msg_id,
            "svix-timestamp": str(int(sent_at.timestamp())),
            "svix-signature": signature,
            "content-type": "application/json",
        }
        return body, headers

    return _make
