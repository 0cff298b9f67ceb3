from eventmatch.models.attendee import Attendee, EventAttendees, SwipeAction
from eventmatch.models.chat import Chat, ChatDetails, ChatSummary, Message
from eventmatch.models.enrollment import EventEnrollment
from eventmatch.models.inbox import EventInbox, InboxChat, PendingMatch
from eventmatch.models.notification import Notification
from eventmatch.models.user import User

__all__ = [
    "Attendee",
    "Chat",
    "ChatDetails",
    "ChatSummary",
    "EventAttendees",
    "EventEnrollment",
    "EventInbox",
    "InboxChat",
    "Message",
    "Notification",
    "PendingMatch",
    "SwipeAction",
    "User",
]
