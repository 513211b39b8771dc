"""SQLite engine and session factory shared by the web app, CLI and migrations."""

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import URL
from sqlalchemy.orm import scoped_session, sessionmaker

from .config import settings

DATABASE_URL = f"sqlite:///{settings.database_path}"

# Request handlers run in a threadpool, so the connection can't be pinned to
# the thread that opened it.
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    future=True,
)
SessionLocal = scoped_session(
    sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
        future=True,
    )
)


def alembic_url(url: URL) -> str:
    """Render ``url`` for Alembic's ini parser, which treats ``%`` as interpolation."""
    return url.render_as_string(hide_password=False).replace("%", "%%")


@contextmanager
def get_session():
    """Yield a session that commits on success and rolls back on error."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
