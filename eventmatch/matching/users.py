"""User directory lookups used by the matching core."""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from eventmatch.core.errors import StoreError
from eventmatch.core.timestamps import utcnow
from eventmatch.matching.identity import extract_user_id, normalize_id
from eventmatch.models import User

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {"name", "email", "job", "company", "bio", "image", "interests"}


def create_user(session: Session, user: User) -> User:
    """Register a user. Email is stored lowercased."""
    user.id = normalize_id(user.id)
    user.email = user.email.strip().lower()
    try:
        session.add(user)
        session.commit()
        session.refresh(user)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to create user {user.id}: {e}")
        raise StoreError(f"Failed to create user {user.id}") from e
    logger.info(f"User created: {user.id}")
    return user


def get_user_by_id(session: Session, user_id) -> User | None:
    """Fetch a user, tolerating composite attendee ids."""
    if user_id is None:
        return None
    try:
        user = session.get(User, normalize_id(user_id))
        if user is None:
            user = session.get(User, extract_user_id(user_id))
        return user
    except SQLAlchemyError as e:
        logger.error(f"Error getting user {user_id}: {e}")
        return None


def get_user_by_email(session: Session, email: str) -> User | None:
    if not email:
        return None
    try:
        statement = select(User).where(User.email == email.strip().lower())
        return session.exec(statement).first()
    except SQLAlchemyError as e:
        logger.error(f"Error getting user by email: {e}")
        return None


def get_all_users(session: Session) -> list[User]:
    try:
        return list(session.exec(select(User)).all())
    except SQLAlchemyError as e:
        logger.error(f"Error getting all users: {e}")
        return []


def update_user(session: Session, user_id: str, changes: dict) -> User | None:
    """
    Apply profile changes to an existing user.

    Unknown keys are ignored. Returns None if the user does not exist.
    """
    user = get_user_by_id(session, user_id)
    if user is None:
        return None
    for key, value in changes.items():
        if key not in _UPDATABLE_FIELDS:
            continue
        if key == "email" and value:
            value = value.strip().lower()
        setattr(user, key, value)
    user.updated_at = utcnow()
    try:
        session.add(user)
        session.commit()
        session.refresh(user)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to update user {user_id}: {e}")
        raise StoreError(f"Failed to update user {user_id}") from e
    return user


def get_next_user_id(session: Session) -> str:
    """Next incremental id after the highest numeric id in use."""
    highest = 0
    for user in get_all_users(session):
        if user.id.isdigit():
            highest = max(highest, int(user.id))
    return str(highest + 1)
