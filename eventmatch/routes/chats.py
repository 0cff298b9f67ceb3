"""Chat routes: conversations, messages and read tracking."""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from eventmatch.core.database import get_session
from eventmatch.matching.chats import get_chat, get_chat_details
from eventmatch.matching.inbox import get_user_chats, open_match_chat
from eventmatch.matching.messages import (
    get_chat_messages,
    get_unread_message_count,
    mark_messages_as_read,
    send_message,
)
from eventmatch.models import ChatDetails, ChatSummary, Message

router = APIRouter(prefix="/chats", tags=["chats"])


class OpenChatRequest(BaseModel):
    user_id: str
    other_user_id: str
    event_id: str
    event_title: str | None = None
    event_image: str | None = None


class SendMessageRequest(BaseModel):
    sender_id: str
    text: str


class ReadRequest(BaseModel):
    user_id: str


@router.post("")
async def open_chat(request: OpenChatRequest, session: Session = Depends(get_session)):
    """
    Get or create the chat for a pair of users at an event.

    Idempotent: both participants get the same chat id back, whoever opens
    it first.
    """
    chat_id = open_match_chat(
        session,
        request.event_id,
        request.user_id,
        request.other_user_id,
        request.event_title,
        request.event_image,
    )
    return {"chat_id": chat_id}


@router.get("/user/{user_id}", response_model=list[ChatSummary])
async def user_chats(user_id: str, session: Session = Depends(get_session)):
    """All conversations of a user, duplicates merged, newest first."""
    return get_user_chats(session, user_id)


@router.get("/{chat_id}", response_model=ChatDetails)
async def chat_detail(chat_id: str, user_id: str, session: Session = Depends(get_session)):
    details = get_chat_details(session, chat_id, user_id)
    if details is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    return details


@router.get("/{chat_id}/messages", response_model=list[Message])
async def chat_messages(chat_id: str, session: Session = Depends(get_session)):
    """Messages of a chat in chronological order."""
    return get_chat_messages(session, chat_id)


@router.post("/{chat_id}/messages", response_model=Message)
async def post_message(
    chat_id: str,
    request: SendMessageRequest,
    session: Session = Depends(get_session),
):
    """
    Send a message.

    Returns 404 for an unknown chat and 400 for blank text.
    """
    if get_chat(session, chat_id) is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    return send_message(session, chat_id, request.sender_id, request.text)


@router.get("/{chat_id}/unread/{user_id}")
async def unread_count(chat_id: str, user_id: str, session: Session = Depends(get_session)):
    return {"chat_id": chat_id, "unread_count": get_unread_message_count(session, chat_id, user_id)}


@router.post("/{chat_id}/read")
async def mark_read(chat_id: str, request: ReadRequest, session: Session = Depends(get_session)):
    """Mark everything the other participant sent as read."""
    marked = mark_messages_as_read(session, chat_id, request.user_id)
    return {"success": True, "marked": marked}
