"""Raise local notifications for incoming chat messages.

Each signed-in user gets a ``NotificationSession`` with an explicit
``start``/``stop`` lifecycle. While started, the session polls the most
recent messages and hands a ``Notification`` to its dispatcher for every
new unread message addressed to the user, except in the chat the user is
currently looking at.
"""
import logging
import threading
from collections import OrderedDict
from datetime import datetime, timedelta

from apscheduler.jobstores.base import JobLookupError
from apscheduler.triggers.interval import IntervalTrigger
from sqlmodel import Session

from eventmatch.core.config import settings
from eventmatch.core.timestamps import as_utc, utcnow
from eventmatch.matching.chats import get_chat, other_participant
from eventmatch.matching.identity import normalize_id, same_user
from eventmatch.matching.messages import get_recent_messages
from eventmatch.matching.users import get_user_by_id
from eventmatch.models import Message, Notification

logger = logging.getLogger(__name__)

RECENT_MESSAGE_LIMIT = 50
MAX_TRACKED_MESSAGES = 100
MAX_BODY_LENGTH = 100


class NotificationOutbox:
    """In-memory dispatcher: queues notifications per user until drained."""

    def __init__(self):
        self._pending: dict[str, list[Notification]] = {}
        self._lock = threading.Lock()

    def dispatch(self, user_id: str, notification: Notification) -> None:
        with self._lock:
            self._pending.setdefault(user_id, []).append(notification)

    def drain(self, user_id: str) -> list[Notification]:
        with self._lock:
            return self._pending.pop(user_id, [])


class NotificationSession:
    """Message notifications for one signed-in user."""

    def __init__(self, session_factory, dispatcher, window_minutes: int | None = None):
        self._session_factory = session_factory
        self._dispatcher = dispatcher
        self._window = timedelta(
            minutes=window_minutes or settings.notification_window_minutes
        )
        self._processed: OrderedDict[str, None] = OrderedDict()
        self._poll_lock = threading.Lock()
        self._scheduler = None
        self._job_id: str | None = None
        self.user_id: str | None = None
        self.current_chat_id: str | None = None

    @property
    def active(self) -> bool:
        return self.user_id is not None

    def start(self, user_id, scheduler=None) -> None:
        """Begin watching messages for a user. Restarting for the same user is a no-op."""
        user_id = normalize_id(user_id)
        if self.user_id == user_id:
            return
        if self.active:
            self.stop()

        self.user_id = user_id
        with self._poll_lock:
            self._processed.clear()

        if scheduler is not None:
            self._job_id = f"notifications_{user_id}"
            scheduler.add_job(
                self._poll_job,
                trigger=IntervalTrigger(seconds=settings.notification_poll_seconds),
                id=self._job_id,
                replace_existing=True,
            )
            self._scheduler = scheduler
        logger.info(f"Notification session started for {user_id}")

    def stop(self) -> None:
        if self._scheduler is not None and self._job_id is not None:
            try:
                self._scheduler.remove_job(self._job_id)
            except JobLookupError:
                logger.debug(f"Notification job {self._job_id} already removed")
        if self.user_id is not None:
            logger.info(f"Notification session stopped for {self.user_id}")
        self._scheduler = None
        self._job_id = None
        self.user_id = None
        self.current_chat_id = None

    def set_current_chat(self, chat_id: str | None) -> None:
        """Suppress notifications for the chat the user has open."""
        self.current_chat_id = chat_id

    def clear_current_chat(self) -> None:
        self.current_chat_id = None

    def poll(self, session: Session | None = None, now: datetime | None = None) -> list[Notification]:
        """
        Dispatch notifications for new incoming messages.

        Only messages sent within the notification window, unread, from
        someone else, in one of the user's chats and not seen by an earlier
        poll qualify. Returns what was dispatched, oldest first.
        """
        if not self.active:
            return []
        # The scheduler thread and request handlers poll the same session
        with self._poll_lock:
            if session is None:
                with self._session_factory() as own_session:
                    return self._poll(own_session, now)
            return self._poll(session, now)

    def _poll(self, session: Session, now: datetime | None) -> list[Notification]:
        now = as_utc(now) or utcnow()
        dispatched = []
        for message in reversed(get_recent_messages(session, RECENT_MESSAGE_LIMIT)):
            if message.id in self._processed:
                continue
            if now - as_utc(message.timestamp) > self._window:
                continue
            if message.read or same_user(message.sender_id, self.user_id):
                continue
            chat = get_chat(session, message.chat_id)
            if chat is None or other_participant(chat, self.user_id) is None:
                continue

            self._remember(message.id)
            if message.chat_id == self.current_chat_id:
                continue

            notification = self._build(session, message)
            self._dispatcher.dispatch(self.user_id, notification)
            dispatched.append(notification)

        if dispatched:
            logger.debug(f"Dispatched {len(dispatched)} notifications to {self.user_id}")
        return dispatched

    def _poll_job(self) -> None:
        """Background poll."""
        try:
            self.poll()
        except Exception as e:
            logger.error(f"Notification poll failed for {self.user_id}: {e}")

    def _remember(self, message_id: str) -> None:
        self._processed[message_id] = None
        while len(self._processed) > MAX_TRACKED_MESSAGES:
            self._processed.popitem(last=False)

    def _build(self, session: Session, message: Message) -> Notification:
        sender = get_user_by_id(session, message.sender_id)
        title = (sender.name or sender.email) if sender else None
        body = message.text or "New message"
        if len(body) > MAX_BODY_LENGTH:
            body = body[:MAX_BODY_LENGTH] + "..."
        return Notification(
            title=title or "Someone",
            body=body,
            chat_id=message.chat_id,
            sender_id=message.sender_id,
            message_id=message.id,
        )


class NotificationHub:
    """Registry of notification sessions, one per signed-in user."""

    def __init__(self, session_factory, scheduler=None, outbox: NotificationOutbox | None = None):
        self._session_factory = session_factory
        self._scheduler = scheduler
        self.outbox = outbox or NotificationOutbox()
        self._sessions: dict[str, NotificationSession] = {}

    def start(self, user_id) -> NotificationSession:
        user_id = normalize_id(user_id)
        notification_session = self._sessions.get(user_id)
        if notification_session is None:
            notification_session = NotificationSession(self._session_factory, self.outbox)
            self._sessions[user_id] = notification_session
        notification_session.start(user_id, self._scheduler)
        return notification_session

    def get(self, user_id) -> NotificationSession | None:
        return self._sessions.get(normalize_id(user_id))

    def stop(self, user_id) -> bool:
        notification_session = self._sessions.pop(normalize_id(user_id), None)
        if notification_session is None:
            return False
        notification_session.stop()
        return True

    def stop_all(self) -> None:
        for user_id in list(self._sessions):
            self.stop(user_id)
