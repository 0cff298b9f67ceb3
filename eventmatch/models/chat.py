"""Conversation and message models.

A chat is identified by a deterministic key built from the sorted pair of
participant ids plus the event id, so checking whether a conversation
already exists is a single primary-key lookup.
"""

from datetime import datetime
from uuid import uuid4

from sqlmodel import Field, SQLModel

from eventmatch.core.timestamps import utcnow
from eventmatch.models.user import User


class Chat(SQLModel, table=True):
    """A conversation between two users, scoped to one event.

    Attributes:
        id: ``"<lo>_<hi>_<eventId>"`` where ``lo < hi`` lexicographically.
        user_id1: Lexicographically smaller participant id.
        user_id2: Lexicographically larger participant id.
        event_id: Event the pair matched at.
        event_title: Title snapshot taken at creation, never refreshed.
        event_image: Image snapshot taken at creation, never refreshed.
        created_at: Creation time.
        updated_at: Last summary update.
        last_message: Text of the latest message, None until one is sent.
        last_message_at: Timestamp of the latest message.
    """
    id: str = Field(primary_key=True)
    user_id1: str = Field(index=True)
    user_id2: str = Field(index=True)
    event_id: str = Field(index=True)
    event_title: str = Field(default="Event")
    event_image: str = Field(default="")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    last_message: str | None = None
    last_message_at: datetime | None = None


class Message(SQLModel, table=True):
    """A single chat message.

    Messages are immutable once written except for ``read``, which flips
    from False to True when the recipient opens the conversation.

    Attributes:
        id: Random hex id.
        chat_id: Conversation this message belongs to.
        sender_id: Author of the message.
        text: Trimmed, non-empty message body.
        timestamp: When the message was sent.
        read: Whether the recipient has seen it.
    """
    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    chat_id: str = Field(foreign_key="chat.id", index=True)
    sender_id: str = Field(index=True)
    text: str
    timestamp: datetime = Field(default_factory=utcnow, index=True)
    read: bool = Field(default=False)


class ChatSummary(SQLModel):
    """One row of a user's inbox, after duplicate reconciliation.

    ``user_id1``/``user_id2`` hold normalized ids, which can differ from
    the raw values stored on the underlying document.
    """
    id: str
    user_id1: str
    user_id2: str
    event_id: str
    event_title: str
    event_image: str
    created_at: datetime
    updated_at: datetime
    last_message: str | None = None
    last_message_at: datetime | None = None
    other_user_id: str
    unread_count: int = 0


class ChatDetails(SQLModel):
    """A chat together with the profile of the other participant."""
    chat: Chat
    other_user_id: str
    other_user: User | None = None
