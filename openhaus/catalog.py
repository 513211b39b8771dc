"""Event catalog, search/category filtering, and category derivation."""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

ALL_CATEGORIES = "all"


@dataclass(frozen=True)
class Event:
    id: int | str
    title: str
    date: str
    time: str
    location: str
    host: str
    tags: tuple[str, ...] = field(default_factory=tuple)
    image: str = ""
    attendees: int = 0

    def __post_init__(self) -> None:
        # Lists from JSON are frozen so records stay hashable and immutable.
        object.__setattr__(self, "tags", tuple(self.tags))
        if self.attendees < 0:
            raise ValueError("attendees must be non-negative")

    @classmethod
    def from_dict(cls, data: dict) -> Event:
        return cls(
            id=data["id"],
            title=data["title"],
            date=data.get("date", ""),
            time=data.get("time", ""),
            location=data.get("location", ""),
            host=data.get("host", ""),
            tags=tuple(data.get("tags") or ()),
            image=data.get("image", ""),
            attendees=int(data.get("attendees") or 0),
        )


DEFAULT_CATALOG: tuple[Event, ...] = (
    Event(
        id=1,
        title="Rooftop Jazz Night",
        date="Jul 15, 2025",
        time="7:00 PM",
        location="Downtown Loft, Brooklyn",
        host="Sarah Chen",
        tags=("Music", "Jazz", "Drinks"),
        image="https://images.unsplash.com/photo-1493225457124-a3eb161ffa5f?w=800&h=600&fit=crop",
        attendees=45,
    ),
    Event(
        id=2,
        title="Artisan Coffee & Conversation",
        date="Jul 18, 2025",
        time="10:00 AM",
        location="Cozy Corner Café, Manhattan",
        host="Mike Rodriguez",
        tags=("Coffee", "Networking", "Casual"),
        image="https://images.unsplash.com/photo-1501339847302-ac426a4a7cbb?w=800&h=600&fit=crop",
        attendees=32,
    ),
    Event(
        id=3,
        title="Game Night Extravaganza",
        date="Jul 20, 2025",
        time="6:30 PM",
        location="Community Center, Queens",
        host="Alex Johnson",
        tags=("Games", "Social", "Indoor"),
        image="https://images.unsplash.com/photo-1606092195730-5d7b9af1efc5?w=800&h=600&fit=crop",
        attendees=28,
    ),
    Event(
        id=4,
        title="Sunset Yoga Session",
        date="Jul 22, 2025",
        time="5:30 PM",
        location="Central Park, Manhattan",
        host="Emma Wilson",
        tags=("Wellness", "Outdoor", "Yoga"),
        image="https://images.unsplash.com/photo-1544367567-0f2fcb009e0b?w=800&h=600&fit=crop",
        attendees=36,
    ),
    Event(
        id=5,
        title="Food Truck Festival",
        date="Jul 25, 2025",
        time="12:00 PM",
        location="Pier 45, Brooklyn",
        host="David Park",
        tags=("Food", "Festival", "Outdoor"),
        image="https://images.unsplash.com/photo-1565299624946-b28f40a0ca4b?w=800&h=600&fit=crop",
        attendees=120,
    ),
    Event(
        id=6,
        title="Book Club & Wine",
        date="Jul 28, 2025",
        time="7:00 PM",
        location="Literary Lounge, Manhattan",
        host="Lisa Thompson",
        tags=("Books", "Wine", "Discussion"),
        image="https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?w=800&h=600&fit=crop",
        attendees=24,
    ),
)


def load_catalog(path: str | Path | None = None) -> tuple[Event, ...]:
    """Return the catalog stored at ``path`` or the built-in one.

    The file holds a JSON array of event objects using the same keys as
    :class:`Event`.
    """
    if not path:
        return DEFAULT_CATALOG
    catalog_path = Path(path)
    with catalog_path.open("r", encoding="utf-8") as handle:
        raw = json.load(handle)
    if not isinstance(raw, list):
        raise ValueError(f"Catalog file {catalog_path} must contain a JSON array")
    return tuple(Event.from_dict(item) for item in raw)


def matches_query(event: Event, query: str) -> bool:
    needle = (query or "").lower()
    return needle in event.title.lower() or needle in event.location.lower()


def matches_category(event: Event, category: str) -> bool:
    return category == ALL_CATEGORIES or category in event.tags


def filter_events(
    catalog: Iterable[Event], query: str = "", category: str = ALL_CATEGORIES
) -> list[Event]:
    """Return the events matching both the text query and the category.

    The title or location must contain ``query`` (case-insensitive; an empty
    query matches everything) and ``category`` must be ``"all"`` or one of the
    event's tags. Catalog order is preserved.
    """
    return [
        event
        for event in catalog
        if matches_query(event, query) and matches_category(event, category)
    ]


def categories(catalog: Iterable[Event]) -> list[str]:
    """Return ``"all"`` followed by every distinct tag in first-seen order."""
    distinct = dict.fromkeys(tag for event in catalog for tag in event.tags)
    distinct.pop(ALL_CATEGORIES, None)
    return [ALL_CATEGORIES, *distinct]


def normalize_category(catalog: Sequence[Event], category: str | None) -> str:
    """Fall back to ``"all"`` when the requested category does not exist."""
    cleaned = (category or "").strip()
    if cleaned and cleaned in categories(catalog):
        return cleaned
    return ALL_CATEGORIES
