"""Notification payload raised for newly received chat messages."""

from sqlmodel import SQLModel


class Notification(SQLModel):
    """A local push notification for one incoming message.

    Attributes:
        title: Sender's name, falling back to email, then "Someone".
        body: Message text, truncated to 100 characters.
        chat_id: Chat to open when the notification is tapped.
        sender_id: Author of the message.
        message_id: Message that triggered the notification.
    """
    title: str
    body: str
    chat_id: str
    sender_id: str
    message_id: str
