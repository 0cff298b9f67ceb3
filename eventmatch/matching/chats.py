"""Deterministic chat identity and chat record storage.

A chat key is the sorted pair of participant ids plus the event id, so the
same two users at the same event always land on the same document no matter
who opens the conversation first.
"""
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from eventmatch.core.errors import StoreError, ValidationError
from eventmatch.core.timestamps import utcnow
from eventmatch.matching.identity import extract_user_id, normalize_id, same_user
from eventmatch.matching.users import get_user_by_id
from eventmatch.models import Chat, ChatDetails

logger = logging.getLogger(__name__)


def chat_id_for(user_a, user_b, event_id) -> str:
    """``"<lo>_<hi>_<eventId>"`` for an unordered pair of users."""
    lo, hi = sorted([normalize_id(user_a), normalize_id(user_b)])
    return f"{lo}_{hi}_{normalize_id(event_id)}"


def get_or_create_chat(
    session: Session,
    user_a,
    user_b,
    event_id,
    event_title: str | None = None,
    event_image: str | None = None,
) -> str:
    """
    Return the chat id for two users at an event, creating the chat if needed.

    Repeat calls with the same pair (in either order) and event return the
    same id and leave the existing document untouched. The event title and
    image are copied onto the chat at creation and never refreshed.

    Creation is an insert-if-absent: when another writer creates the same
    chat between the lookup and the insert, the primary key conflict is
    treated as "already exists".
    """
    first, second = normalize_id(user_a), normalize_id(user_b)
    event_id = normalize_id(event_id)
    if not first or not second or not event_id:
        raise ValidationError("A chat needs two user ids and an event id")
    if first == second:
        raise ValidationError("Cannot open a chat with yourself")

    lo, hi = sorted([first, second])
    chat_id = chat_id_for(lo, hi, event_id)

    try:
        existing = session.get(Chat, chat_id)
    except SQLAlchemyError as e:
        logger.error(f"Failed to look up chat {chat_id}: {e}")
        raise StoreError(f"Failed to look up chat {chat_id}") from e
    if existing is not None:
        logger.debug(f"Chat already exists: {chat_id}")
        return chat_id

    now = utcnow()
    chat = Chat(
        id=chat_id,
        user_id1=lo,
        user_id2=hi,
        event_id=event_id,
        event_title=event_title or "Event",
        event_image=event_image or "",
        created_at=now,
        updated_at=now,
    )
    try:
        session.add(chat)
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.info(f"Chat {chat_id} was created concurrently, reusing it")
        return chat_id
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to create chat {chat_id}: {e}")
        raise StoreError(f"Failed to create chat {chat_id}") from e

    logger.info(f"Created chat {chat_id}")
    return chat_id


def get_chat(session: Session, chat_id: str) -> Chat | None:
    try:
        return session.get(Chat, chat_id)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching chat {chat_id}: {e}")
        return None


def other_participant(chat: Chat, user_id) -> str | None:
    """The normalized id of the participant who is not ``user_id``."""
    if same_user(chat.user_id1, user_id):
        return extract_user_id(chat.user_id2)
    if same_user(chat.user_id2, user_id):
        return extract_user_id(chat.user_id1)
    return None


def get_chat_details(session: Session, chat_id: str, current_user_id) -> ChatDetails | None:
    """A chat plus the other participant's profile, None if either is unknown."""
    chat = get_chat(session, chat_id)
    if chat is None:
        return None
    other_user_id = other_participant(chat, current_user_id)
    if other_user_id is None:
        logger.warning(f"User {current_user_id} is not a participant of chat {chat_id}")
        return None
    return ChatDetails(
        chat=chat,
        other_user_id=other_user_id,
        other_user=get_user_by_id(session, other_user_id),
    )
