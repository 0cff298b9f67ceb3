"""Attendee routes: swipe deck, swipes, matches and the event inbox."""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from eventmatch.core.config import settings
from eventmatch.core.database import get_session
from eventmatch.matching.attendees import (
    get_user_matches,
    has_completed_swiping,
    initialize_event_attendees,
    update_attendee_action,
)
from eventmatch.matching.inbox import get_event_inbox
from eventmatch.models import Attendee, EventInbox, SwipeAction

router = APIRouter(prefix="/events/{event_id}", tags=["attendees"])


class SwipeRequest(BaseModel):
    user_id: str
    action: SwipeAction


@router.get("/attendees", response_model=list[Attendee])
async def event_attendees(
    event_id: str,
    user_id: str | None = None,
    title: str | None = None,
    use_mock: bool | None = None,
    session: Session = Depends(get_session),
):
    """
    Refresh and return the swipe deck for an event.

    The deck is rebuilt from current enrollments and never includes the
    viewing user. Placeholder attendees are only generated when requested
    (or enabled with ``USE_MOCK_ATTENDEES``).
    """
    if use_mock is None:
        use_mock = settings.use_mock_attendees
    return initialize_event_attendees(session, event_id, title, user_id, use_mock)


@router.post("/attendees/{attendee_id}/swipe")
async def swipe_attendee(
    event_id: str,
    attendee_id: str,
    swipe: SwipeRequest,
    session: Session = Depends(get_session),
):
    """Record a like or pass and report whether the deck is finished."""
    update_attendee_action(session, event_id, attendee_id, swipe.action, swipe.user_id)
    return {
        "success": True,
        "attendee_id": attendee_id,
        "action": swipe.action.value,
        "completed": has_completed_swiping(session, event_id, swipe.user_id),
    }


@router.get("/swipes/{user_id}/complete")
async def swiping_status(event_id: str, user_id: str, session: Session = Depends(get_session)):
    return {"completed": has_completed_swiping(session, event_id, user_id)}


@router.get("/matches/{user_id}", response_model=list[Attendee])
async def user_matches(event_id: str, user_id: str, session: Session = Depends(get_session)):
    """Attendees the user liked at this event."""
    return get_user_matches(session, event_id, user_id)


@router.get("/inbox/{user_id}", response_model=EventInbox)
async def event_inbox(event_id: str, user_id: str, session: Session = Depends(get_session)):
    """Chats with messages plus pending matches for one event."""
    return get_event_inbox(session, event_id, user_id)
