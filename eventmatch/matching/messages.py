"""Message delivery, chat summaries and read tracking."""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, func, select

from eventmatch.core.errors import StoreError, ValidationError
from eventmatch.core.timestamps import utcnow
from eventmatch.matching.chats import get_chat
from eventmatch.matching.identity import normalize_id
from eventmatch.models import Message

logger = logging.getLogger(__name__)


def send_message(session: Session, chat_id: str, sender_id, text: str | None) -> Message:
    """
    Append a message to a chat and refresh the chat's summary.

    Blank text is rejected before anything is written. The message and the
    summary are committed separately: the summary (last message and its
    time) is a cache of the message log, so a failure between the two
    commits leaves it stale but loses nothing.
    """
    body = (text or "").strip()
    if not body:
        raise ValidationError("Cannot send empty message")

    sender_id = normalize_id(sender_id)
    if not sender_id:
        raise ValidationError("A message needs a sender")

    chat = get_chat(session, chat_id)
    if chat is None:
        raise ValidationError(f"Unknown chat: {chat_id}")

    now = utcnow()
    message = Message(chat_id=chat_id, sender_id=sender_id, text=body, timestamp=now)
    try:
        session.add(message)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to send message in chat {chat_id}: {e}")
        raise StoreError(f"Failed to send message in chat {chat_id}") from e

    chat.last_message = body
    chat.last_message_at = now
    chat.updated_at = now
    try:
        session.add(chat)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Message {message.id} stored but summary of chat {chat_id} not updated: {e}")
        raise StoreError(f"Failed to update summary of chat {chat_id}") from e

    session.refresh(message)
    logger.info(f"Message sent: {message.id}")
    return message


def get_chat_messages(session: Session, chat_id: str) -> list[Message]:
    """All messages of a chat in chronological order."""
    try:
        statement = (
            select(Message)
            .where(Message.chat_id == chat_id)
            .order_by(Message.timestamp)
        )
        return list(session.exec(statement).all())
    except SQLAlchemyError as e:
        logger.error(f"Error fetching messages for chat {chat_id}: {e}")
        return []


def _unread_filter(statement, chat_id: str, user_id: str):
    return (
        statement.where(Message.chat_id == chat_id)
        .where(Message.sender_id != user_id)
        .where(Message.read == False)  # noqa: E712
    )


def get_unread_message_count(session: Session, chat_id: str, user_id) -> int:
    """Messages in the chat from the other side that the user has not read."""
    user_id = normalize_id(user_id)
    try:
        statement = _unread_filter(select(func.count()).select_from(Message), chat_id, user_id)
        return session.exec(statement).one()
    except SQLAlchemyError as e:
        logger.error(f"Error counting unread messages in chat {chat_id}: {e}")
        return 0


def mark_messages_as_read(session: Session, chat_id: str, user_id) -> int:
    """
    Mark every unread message addressed to the user as read.

    Returns the number of messages flipped; calling it again is a no-op.
    """
    user_id = normalize_id(user_id)
    try:
        unread = session.exec(_unread_filter(select(Message), chat_id, user_id)).all()
        for message in unread:
            message.read = True
            session.add(message)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to mark messages read in chat {chat_id}: {e}")
        raise StoreError(f"Failed to mark messages read in chat {chat_id}") from e

    if unread:
        logger.debug(f"Marked {len(unread)} messages read in chat {chat_id} for {user_id}")
    return len(unread)


def get_recent_messages(session: Session, limit: int = 50) -> list[Message]:
    """The newest messages across all chats, newest first."""
    try:
        statement = select(Message).order_by(Message.timestamp.desc()).limit(limit)
        return list(session.exec(statement).all())
    except SQLAlchemyError as e:
        logger.error(f"Error fetching recent messages: {e}")
        return []
