"""Development helpers for populating fake users and the events they host."""

from __future__ import annotations

import random
from datetime import timedelta

from faker import Faker
from sqlalchemy.orm import Session

from .catalog import DEFAULT_CATALOG
from .crud import create_hosted_event, provision_user, update_profile
from .database import get_session
from .models import User
from .storage import init_db
from .utils import utcnow

_event_types = [
    "Jam Session",
    "Movie Night",
    "Board Game Hangout",
    "Supper Club",
    "Book Swap",
    "Sunset Yoga",
    "Open Mic",
]
_interests = sorted({tag for event in DEFAULT_CATALOG for tag in event.tags})


def seed_fake_data(
    *,
    user_count: int = 5,
    max_events_per_user: int = 2,
) -> dict[str, int]:
    """Populate the database with synthetic provisioned users and hosted events."""
    if user_count < 0:
        raise ValueError("user_count must be >= 0")
    if max_events_per_user < 0:
        raise ValueError("max_events_per_user must be >= 0")

    init_db()
    fake = Faker()
    stats = {"users": 0, "events": 0}

    with get_session() as session:
        for _ in range(user_count):
            user = _create_user(session, fake)
            stats["users"] += 1
            if max_events_per_user:
                for _ in range(random.randint(0, max_events_per_user)):
                    _create_event(session, fake, host=user)
                    stats["events"] += 1

    return stats


def _create_user(session: Session, fake: Faker) -> User:
    first, last = fake.first_name(), fake.last_name()
    user, _ = provision_user(
        session,
        clerk_id=f"user_{fake.unique.hexify('^' * 24)}",
        email=fake.unique.email(),
        username=fake.unique.user_name(),
        first_name=first,
        last_name=last,
        avatar_url=fake.image_url(),
    )
    return update_profile(
        session,
        user,
        bio=fake.sentence(nb_words=12),
        city=fake.city(),
        interests=random.sample(_interests, k=min(3, len(_interests))),
    )


def _create_event(session: Session, fake: Faker, *, host: User) -> None:
    starts = utcnow() + timedelta(days=random.randint(1, 45))
    create_hosted_event(
        session,
        host=host,
        title=f"{fake.city()} {random.choice(_event_types)}",
        date=starts.strftime("%b %d, %Y"),
        time=f"{random.randint(1, 11)}:{random.choice(['00', '30'])} PM",
        location=fake.address().replace("\n", ", "),
        tags=random.sample(_interests, k=min(2, len(_interests))),
        description="\n\n".join(fake.paragraphs(nb=2)),
        image=None,
    )
