"""Enrollment store: who signed up for which event."""
import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from eventmatch.core.errors import StoreError, ValidationError
from eventmatch.core.timestamps import as_utc, utcnow
from eventmatch.matching.identity import normalize_id
from eventmatch.matching.parser import parse_event_date
from eventmatch.models import EventEnrollment
from eventmatch.models.enrollment import (
    ATTENDED,
    CONFIRMED,
    ENROLLMENT_STATUSES,
    enrollment_key,
)

logger = logging.getLogger(__name__)


def enroll_user_in_event(
    session: Session,
    user_id,
    event_id,
    event_title: str | None = None,
    event_image: str | None = None,
    event_date: datetime | str | None = None,
    event_time: str | None = None,
) -> EventEnrollment:
    """
    Enroll a user in an event, replacing any previous enrollment record.

    ``event_date`` may be a datetime or one of the text formats understood
    by ``parse_event_date``; ``event_time`` only applies to text dates.
    """
    user_id = normalize_id(user_id)
    event_id = normalize_id(event_id)
    if not user_id or not event_id:
        raise ValidationError("Enrollment needs both a user id and an event id")

    if isinstance(event_date, str):
        starts_at = parse_event_date(event_date, event_time)
        if starts_at is None:
            logger.warning(f"Unrecognized date {event_date!r} for event {event_id}")
    else:
        starts_at = as_utc(event_date)

    key = enrollment_key(user_id, event_id)
    now = utcnow()
    try:
        enrollment = session.get(EventEnrollment, key)
        if enrollment is None:
            enrollment = EventEnrollment(id=key, user_id=user_id, event_id=event_id)
        enrollment.status = CONFIRMED
        enrollment.event_title = event_title
        enrollment.event_image = event_image
        enrollment.event_date = starts_at
        enrollment.enrolled_at = now
        enrollment.updated_at = now
        session.add(enrollment)
        session.commit()
        session.refresh(enrollment)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to enroll {user_id} in {event_id}: {e}")
        raise StoreError(f"Failed to enroll user {user_id} in event {event_id}") from e

    logger.info(f"Enrollment saved: {key}")
    return enrollment


def unenroll_user_from_event(session: Session, user_id, event_id) -> bool:
    """Delete an enrollment. Returns False if there was none."""
    key = enrollment_key(normalize_id(user_id), normalize_id(event_id))
    try:
        enrollment = session.get(EventEnrollment, key)
        if enrollment is None:
            return False
        session.delete(enrollment)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to unenroll {key}: {e}")
        raise StoreError(f"Failed to remove enrollment {key}") from e
    logger.info(f"Enrollment removed: {key}")
    return True


def is_user_enrolled(session: Session, user_id, event_id) -> bool:
    key = enrollment_key(normalize_id(user_id), normalize_id(event_id))
    try:
        return session.get(EventEnrollment, key) is not None
    except SQLAlchemyError as e:
        logger.error(f"Error checking enrollment {key}: {e}")
        return False


def update_event_status(session: Session, user_id, event_id, status: str) -> bool:
    """Set the status of an existing enrollment. Returns False if missing."""
    if status not in ENROLLMENT_STATUSES:
        raise ValidationError(f"Unknown enrollment status: {status}")

    key = enrollment_key(normalize_id(user_id), normalize_id(event_id))
    try:
        enrollment = session.get(EventEnrollment, key)
        if enrollment is None:
            return False
        enrollment.status = status
        enrollment.updated_at = utcnow()
        session.add(enrollment)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to update status of {key}: {e}")
        raise StoreError(f"Failed to update enrollment {key}") from e
    return True


def get_event_enrollments(session: Session, event_id) -> list[EventEnrollment]:
    """All enrollments for an event, oldest first."""
    try:
        statement = (
            select(EventEnrollment)
            .where(EventEnrollment.event_id == normalize_id(event_id))
            .order_by(EventEnrollment.enrolled_at)
        )
        return list(session.exec(statement).all())
    except SQLAlchemyError as e:
        logger.error(f"Error fetching enrollments for event {event_id}: {e}")
        return []


def get_user_enrolled_events(session: Session, user_id) -> list[EventEnrollment]:
    """A user's enrollments, most recent first."""
    try:
        statement = (
            select(EventEnrollment)
            .where(EventEnrollment.user_id == normalize_id(user_id))
            .order_by(EventEnrollment.enrolled_at.desc())
        )
        return list(session.exec(statement).all())
    except SQLAlchemyError as e:
        logger.error(f"Error fetching enrolled events for {user_id}: {e}")
        return []


def mark_past_enrollments_attended(session: Session, now: datetime | None = None) -> int:
    """
    Flip confirmed enrollments to attended once their event date has passed.

    Enrollments without a parsed date are left alone. Returns the number of
    enrollments updated.
    """
    now = as_utc(now) or utcnow()
    statement = (
        select(EventEnrollment)
        .where(EventEnrollment.status == CONFIRMED)
        .where(EventEnrollment.event_date != None)  # noqa: E711
    )

    updated = 0
    try:
        for enrollment in session.exec(statement).all():
            if as_utc(enrollment.event_date) <= now:
                enrollment.status = ATTENDED
                enrollment.updated_at = now
                session.add(enrollment)
                updated += 1
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to refresh enrollment statuses: {e}")
        raise StoreError("Failed to refresh enrollment statuses") from e

    if updated:
        logger.info(f"Marked {updated} enrollments as attended")
    return updated
