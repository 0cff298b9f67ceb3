"""Assemble a user's inbox from chat documents.

Historical records sometimes stored an attendee card id
(``"<eventId>_<userId>"``) in a chat's participant field, which produced
several chat documents for what is logically one conversation. The inbox
is repaired at read time: participant ids are normalized, documents for the
same pair and event are merged, and the merged view is ordered by activity.
"""
import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from eventmatch.core.timestamps import as_utc
from eventmatch.matching.attendees import get_user_matches
from eventmatch.matching.chats import get_or_create_chat
from eventmatch.matching.enrollments import get_user_enrolled_events
from eventmatch.matching.identity import extract_user_id, normalize_id
from eventmatch.matching.messages import get_unread_message_count
from eventmatch.matching.users import get_user_by_id
from eventmatch.models import (
    Chat,
    ChatSummary,
    EventAttendees,
    EventInbox,
    InboxChat,
    PendingMatch,
)

logger = logging.getLogger(__name__)


def last_activity(chat: Chat | ChatSummary) -> datetime:
    """Most recent of last message, last update and creation."""
    return as_utc(chat.last_message_at or chat.updated_at or chat.created_at)


def _belongs_to(chat: Chat, user_id: str) -> bool:
    return user_id in (
        chat.user_id1,
        chat.user_id2,
        extract_user_id(chat.user_id1),
        extract_user_id(chat.user_id2),
    )


def _summarize(session: Session, chat: Chat, user_id: str) -> ChatSummary | None:
    first = extract_user_id(chat.user_id1)
    second = extract_user_id(chat.user_id2)
    if user_id in (chat.user_id1, first):
        other_user_id = second
    elif user_id in (chat.user_id2, second):
        other_user_id = first
    else:
        return None

    return ChatSummary(
        id=chat.id,
        user_id1=first,
        user_id2=second,
        event_id=normalize_id(chat.event_id),
        event_title=chat.event_title,
        event_image=chat.event_image,
        created_at=chat.created_at,
        updated_at=chat.updated_at,
        last_message=chat.last_message,
        last_message_at=chat.last_message_at,
        other_user_id=other_user_id,
        unread_count=get_unread_message_count(session, chat.id, user_id),
    )


def merge_duplicate_chats(summaries: list[ChatSummary]) -> list[ChatSummary]:
    """
    Collapse summaries that represent the same pair of users at one event.

    The most recently active document of each group is kept and carries the
    unread count of the whole group. Messages stored under the discarded
    documents are not moved.
    """
    groups: dict[tuple[str, str, str], list[ChatSummary]] = {}
    for summary in summaries:
        lo, hi = sorted([summary.user_id1, summary.user_id2])
        groups.setdefault((lo, hi, summary.event_id), []).append(summary)

    merged = []
    for key, group in groups.items():
        if len(group) == 1:
            merged.append(group[0])
            continue

        canonical = max(group, key=last_activity)
        total_unread = sum(summary.unread_count for summary in group)
        merged.append(canonical.model_copy(update={"unread_count": total_unread}))
        logger.info(
            f"Merged {len(group)} duplicate chats for {key}: kept {canonical.id}, "
            f"unread {total_unread}"
        )
    return merged


def get_user_chats(session: Session, user_id) -> list[ChatSummary]:
    """
    Every conversation of a user, deduplicated and newest first.

    Chats are found by direct participant lookups plus a full scan that
    normalizes legacy composite participant ids.
    """
    user_id = normalize_id(user_id)
    if not user_id:
        return []

    try:
        as_first = session.exec(select(Chat).where(Chat.user_id1 == user_id)).all()
        as_second = session.exec(select(Chat).where(Chat.user_id2 == user_id)).all()
        every_chat = session.exec(select(Chat)).all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching chats for user {user_id}: {e}")
        return []

    found = {chat.id: chat for chat in [*as_first, *as_second]}
    recovered = 0
    for chat in every_chat:
        if chat.id not in found and _belongs_to(chat, user_id):
            found[chat.id] = chat
            recovered += 1
    if recovered:
        logger.debug(f"Recovered {recovered} chats with legacy participant ids for {user_id}")

    summaries = [
        summary
        for summary in (_summarize(session, chat, user_id) for chat in found.values())
        if summary is not None
    ]
    merged = merge_duplicate_chats(summaries)
    merged.sort(key=last_activity, reverse=True)
    return merged


def get_event_inbox(session: Session, event_id, user_id) -> EventInbox:
    """
    Split a user's chats at one event into active chats and pending matches.

    Pending matches are liked attendees the user has no chat with yet,
    followed by chats that exist but have no message.
    """
    event_id = normalize_id(event_id)
    user_id = normalize_id(user_id)

    event_chats = [chat for chat in get_user_chats(session, user_id) if chat.event_id == event_id]
    matches_by_user = {}
    for attendee in get_user_matches(session, event_id, user_id):
        matches_by_user.setdefault(attendee.user_id or extract_user_id(attendee.id), attendee)

    chats = [
        InboxChat(chat=chat, other_user=get_user_by_id(session, chat.other_user_id))
        for chat in event_chats
        if chat.last_message
    ]

    partners = {chat.other_user_id for chat in event_chats}
    fresh_matches = [
        PendingMatch(
            user_id=match_user_id,
            user=get_user_by_id(session, match_user_id),
            attendee=attendee,
        )
        for match_user_id, attendee in matches_by_user.items()
        if match_user_id not in partners
    ]
    empty_chats = [
        PendingMatch(
            user_id=chat.other_user_id,
            user=get_user_by_id(session, chat.other_user_id),
            attendee=matches_by_user.get(chat.other_user_id),
            chat_id=chat.id,
        )
        for chat in event_chats
        if not chat.last_message
    ]

    return EventInbox(event_id=event_id, chats=chats, matches=fresh_matches + empty_chats)


def _event_snapshot(session: Session, event_id: str, user_id: str) -> tuple[str | None, str | None]:
    """Best known title and image of an event, for stamping onto a new chat."""
    for enrollment in get_user_enrolled_events(session, user_id):
        if enrollment.event_id == event_id:
            return enrollment.event_title, enrollment.event_image
    try:
        document = session.get(EventAttendees, event_id)
    except SQLAlchemyError as e:
        logger.error(f"Error reading attendee document {event_id}: {e}")
        return None, None
    return (document.event_title if document else None), None


def open_match_chat(
    session: Session,
    event_id,
    user_id,
    other_user_id,
    event_title: str | None = None,
    event_image: str | None = None,
) -> str:
    """Resolve or create the chat behind a pending match."""
    event_id = normalize_id(event_id)
    user_id = normalize_id(user_id)
    other_user_id = extract_user_id(normalize_id(other_user_id))

    if event_title is None and event_image is None:
        event_title, event_image = _event_snapshot(session, event_id, user_id)
    return get_or_create_chat(session, user_id, other_user_id, event_id, event_title, event_image)
