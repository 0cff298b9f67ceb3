"""Shared test fixtures."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from eventmatch.core.database import get_session
from eventmatch.main import app
from eventmatch.matching.enrollments import enroll_user_in_event
from eventmatch.matching.notifications import NotificationHub
from eventmatch.models import Chat, Message, User


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a new database session for each test."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session, engine):
    """Create a test client with the test database session."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    previous_hub = app.state.notifications
    app.state.notifications = NotificationHub(lambda: Session(engine))
    client = TestClient(app)
    yield client
    app.state.notifications = previous_hub
    app.dependency_overrides.clear()


@pytest.fixture(name="users")
def users_fixture(session: Session) -> dict[str, User]:
    """Create a few users with legacy numeric ids."""
    users = {
        "7": User(id="7", email="maria@example.com", name="Maria Garcia", job="Analyst"),
        "8": User(id="8", email="james@example.com", name="James Wilson", job="Developer"),
        "42": User(id="42", email="alex@example.com", name="Alex Kim", job="Designer"),
    }
    for user in users.values():
        session.add(user)
    session.commit()
    for user in users.values():
        session.refresh(user)
    return users


@pytest.fixture(name="enrolled_event")
def enrolled_event_fixture(session: Session, users) -> str:
    """Event "E1" with users 7, 8 and 42 enrolled."""
    for user_id in ("7", "8", "42"):
        enroll_user_in_event(
            session,
            user_id,
            "E1",
            event_title="Tech Mixer",
            event_image="https://example.com/mixer.png",
            event_date=datetime.now(UTC) + timedelta(days=2),
        )
    return "E1"


@pytest.fixture(name="store_failure")
def store_failure_fixture():
    """An error as raised by the SQLite driver when the store is unavailable."""
    return OperationalError("SELECT 1", {}, Exception("database is locked"))


@pytest.fixture(name="add_chat")
def add_chat_fixture(session: Session):
    """Insert chat documents directly, bypassing key derivation."""

    def add_chat(chat_id: str, user_id1: str, user_id2: str, event_id: str, **fields) -> Chat:
        chat = Chat(id=chat_id, user_id1=user_id1, user_id2=user_id2, event_id=event_id, **fields)
        session.add(chat)
        session.commit()
        session.refresh(chat)
        return chat

    return add_chat


@pytest.fixture(name="add_message")
def add_message_fixture(session: Session):
    """Insert messages directly, leaving the chat summary untouched."""

    def add_message(chat_id: str, sender_id: str, text: str, **fields) -> Message:
        message = Message(chat_id=chat_id, sender_id=sender_id, text=text, **fields)
        session.add(message)
        session.commit()
        session.refresh(message)
        return message

    return add_message
