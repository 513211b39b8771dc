"""SQLAlchemy models for OpenHaus."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import declarative_base, relationship

from .utils import utcnow

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return utcnow()


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    clerk_id = Column(String(128), nullable=False, unique=True)
    email = Column(String(320), nullable=True)
    username = Column(String(120), nullable=True)
    name = Column(String(255), nullable=True)
    avatar_url = Column(String(1024), nullable=True)
    bio = Column(Text, nullable=True)
    city = Column(String(255), nullable=True)
    interests = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    hosted_events = relationship(
        "HostedEvent",
        back_populates="host",
        cascade="all, delete-orphan",
        order_by="HostedEvent.created_at",
    )


class HostedEvent(Base):
    __tablename__ = "hosted_events"

    id = Column(String(36), primary_key=True, default=_uuid)
    host_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(255), nullable=False)
    date = Column(String(64), nullable=False)
    time = Column(String(64), nullable=False)
    location = Column(String(255), nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    description = Column(Text, nullable=False)
    image = Column(String(1024), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    host = relationship("User", back_populates="hosted_events")
