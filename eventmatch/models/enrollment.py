"""Enrollment model linking users to the events they signed up for.

Enrollments are the sole source of truth for who really attends an event.
The attendee list used for swiping is rebuilt from them on demand.
"""

from datetime import datetime

from sqlmodel import Field, SQLModel

from eventmatch.core.timestamps import utcnow

CONFIRMED = "confirmed"
ATTENDED = "attended"
ENROLLMENT_STATUSES = (CONFIRMED, ATTENDED)


def enrollment_key(user_id, event_id) -> str:
    """Document key of an enrollment: ``"<userId>_<eventId>"``."""
    return f"{user_id}_{event_id}"


class EventEnrollment(SQLModel, table=True):
    """A user's membership in an event.

    Attributes:
        id: Composite key ``"<userId>_<eventId>"``.
        user_id: Enrolled user.
        event_id: Event id, always stored as a string.
        status: "confirmed" on enrollment, flipped to "attended" by the
            background refresh once the event date has passed.
        event_title: Title snapshot taken at enrollment time.
        event_image: Image snapshot taken at enrollment time.
        event_date: Parsed start of the event, if the catalog supplied a
            date the parser understood.
        enrolled_at: When the user enrolled.
        updated_at: Last status change.
    """
    id: str = Field(primary_key=True)
    user_id: str = Field(index=True)
    event_id: str = Field(index=True)
    status: str = Field(default=CONFIRMED)
    event_title: str | None = None
    event_image: str | None = None
    event_date: datetime | None = None
    enrolled_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
