"""Utility helpers for OpenHaus."""

from __future__ import annotations

from datetime import UTC, datetime
import re

_tag_separator = re.compile(r"\s*,\s*")


def utcnow() -> datetime:
    """Return a naive UTC datetime."""

    return datetime.now(UTC).replace(tzinfo=None)


def split_tags(raw: str | None) -> list[str]:
    """Split comma-delimited tag text into distinct, trimmed labels.

    Order is preserved and the first spelling of a repeated tag wins.
    """
    seen: dict[str, str] = {}
    for item in _tag_separator.split((raw or "").strip()):
        cleaned = item.strip()
        if cleaned and cleaned.lower() not in seen:
            seen[cleaned.lower()] = cleaned
    return list(seen.values())


def full_name(first: str | None, last: str | None) -> str:
    """Join given and family names the way the identity provider reports them."""
    return f"{first or ''} {last or ''}".strip()
