"""Attendee models for per-event swiping.

An event's attendee document holds the materialized list of swipeable
attendee cards and every user's swipe decisions for that event, mirroring
the single-document layout of the ``eventAttendees`` collection.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from eventmatch.core.timestamps import utcnow


class SwipeAction(str, Enum):
    """A like/pass decision on an attendee card."""
    LIKED = "liked"
    PASSED = "passed"


def attendee_key(event_id, user_id) -> str:
    """Attendee card id: ``"<eventId>_<userId>"``."""
    return f"{event_id}_{user_id}"


class Attendee(SQLModel):
    """A per-event projection of a user, used as a swipe candidate.

    Mock attendees (demo data) carry no ``user_id``. That absence is how
    legacy placeholder lists are told apart from real ones.

    Attributes:
        id: ``"<eventId>_<userId>"`` for real attendees.
        user_id: The underlying user, None for mock entries.
        event_id: Event this card belongs to.
        name: Display name.
        job: Job title.
        company: Employer.
        bio: Profile blurb.
        image: Picture URL.
        interests: Interest tags.
        swipe_action: Last swipe annotation written on the card.
        swiped_at: When that annotation was written (ISO string).
    """
    id: str
    user_id: str | None = None
    event_id: str
    name: str | None = None
    job: str | None = None
    company: str | None = None
    bio: str | None = None
    image: str | None = None
    interests: list[str] = Field(default_factory=list)
    swipe_action: SwipeAction | None = None
    swiped_at: str | None = None

    def to_document(self) -> dict:
        """Serialize for the JSON column, omitting unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)


class EventAttendees(SQLModel, table=True):
    """The attendee document for one event.

    Attributes:
        event_id: Event id as a string (primary key).
        event_title: Title snapshot used for display.
        attendees: List of serialized ``Attendee`` cards.
        user_swipes: Nested map ``{swiperId: {attendeeId: {"action",
            "swipedAt"}}}``. At most one decision per (swiper, target).
        created_at: First time the document was written.
        updated_at: Last write of any kind.
    """
    event_id: str = Field(primary_key=True)
    event_title: str | None = None
    attendees: list[dict] = Field(default_factory=list, sa_column=Column(JSON))
    user_swipes: dict = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
