"""Enrollment routes."""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from eventmatch.core.database import get_session
from eventmatch.matching.enrollments import (
    enroll_user_in_event,
    get_event_enrollments,
    get_user_enrolled_events,
    unenroll_user_from_event,
    update_event_status,
)
from eventmatch.models import EventEnrollment

router = APIRouter(prefix="/enrollments", tags=["enrollments"])


class EnrollRequest(BaseModel):
    user_id: str
    event_id: str
    event_title: str | None = None
    event_image: str | None = None
    event_date: datetime | str | None = None
    event_time: str | None = None


class StatusRequest(BaseModel):
    status: str


@router.post("", response_model=EventEnrollment, status_code=201)
async def enroll(request: EnrollRequest, session: Session = Depends(get_session)):
    """
    Enroll a user in an event.

    ``event_date`` accepts an ISO timestamp or a catalog date string such
    as ``11/24/2025``; ``event_time`` (``7:30 PM``) is combined with it.
    """
    return enroll_user_in_event(
        session,
        request.user_id,
        request.event_id,
        event_title=request.event_title,
        event_image=request.event_image,
        event_date=request.event_date,
        event_time=request.event_time,
    )


@router.delete("/{user_id}/{event_id}")
async def unenroll(user_id: str, event_id: str, session: Session = Depends(get_session)):
    if not unenroll_user_from_event(session, user_id, event_id):
        raise HTTPException(status_code=404, detail="Enrollment not found")
    return {"success": True}


@router.put("/{user_id}/{event_id}/status")
async def set_status(
    user_id: str,
    event_id: str,
    request: StatusRequest,
    session: Session = Depends(get_session),
):
    if not update_event_status(session, user_id, event_id, request.status):
        raise HTTPException(status_code=404, detail="Enrollment not found")
    return {"success": True, "status": request.status}


@router.get("/user/{user_id}", response_model=list[EventEnrollment])
async def user_enrollments(user_id: str, session: Session = Depends(get_session)):
    return get_user_enrolled_events(session, user_id)


@router.get("/event/{event_id}", response_model=list[EventEnrollment])
async def event_enrollments(event_id: str, session: Session = Depends(get_session)):
    return get_event_enrollments(session, event_id)
