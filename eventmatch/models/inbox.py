"""Response models for the per-event inbox view."""

from sqlmodel import Field, SQLModel

from eventmatch.models.attendee import Attendee
from eventmatch.models.chat import ChatSummary
from eventmatch.models.user import User


class PendingMatch(SQLModel):
    """A match that has not produced a message yet.

    ``chat_id`` is set when an empty conversation already exists and None
    when opening the match still has to create one.
    """
    user_id: str
    user: User | None = None
    attendee: Attendee | None = None
    chat_id: str | None = None


class InboxChat(SQLModel):
    """A conversation with at least one message, plus the other profile."""
    chat: ChatSummary
    other_user: User | None = None


class EventInbox(SQLModel):
    """Chats with messages and pending matches for one user at one event."""
    event_id: str
    chats: list[InboxChat] = Field(default_factory=list)
    matches: list[PendingMatch] = Field(default_factory=list)
