"""Notification session routes."""
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlmodel import Session

from eventmatch.core.database import get_session
from eventmatch.models import Notification

router = APIRouter(prefix="/notifications", tags=["notifications"])


class CurrentChatRequest(BaseModel):
    chat_id: str | None = None


@router.post("/{user_id}/start")
async def start_notifications(user_id: str, request: Request):
    """Begin watching incoming messages for a signed-in user."""
    notification_session = request.app.state.notifications.start(user_id)
    return {"active": notification_session.active, "user_id": notification_session.user_id}


@router.post("/{user_id}/stop")
async def stop_notifications(user_id: str, request: Request):
    return {"stopped": request.app.state.notifications.stop(user_id)}


@router.put("/{user_id}/current-chat")
async def set_current_chat(user_id: str, body: CurrentChatRequest, request: Request):
    """Record which chat is on screen; it will not raise notifications."""
    notification_session = request.app.state.notifications.get(user_id)
    if notification_session is None:
        raise HTTPException(status_code=404, detail="No notification session for user")
    notification_session.set_current_chat(body.chat_id)
    return {"current_chat_id": notification_session.current_chat_id}


@router.get("/{user_id}", response_model=list[Notification])
async def pending_notifications(
    user_id: str,
    request: Request,
    session: Session = Depends(get_session),
):
    """Poll for new messages, then return and clear the user's queued notifications."""
    hub = request.app.state.notifications
    notification_session = hub.get(user_id)
    if notification_session is None:
        raise HTTPException(status_code=404, detail="No notification session for user")
    notification_session.poll(session)
    return hub.outbox.drain(notification_session.user_id)
