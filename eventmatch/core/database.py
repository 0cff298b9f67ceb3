"""SQLite engine and sessions for the matching store.

Every collection of the chat/matching core lives in its own SQLModel table.
Nested document fields (attendee arrays, swipe maps, interests) are stored
as JSON columns so a row reads the same as the document it replaces.

Connection settings:
    - **WAL (Write-Ahead Logging)**: the enrollment refresh job and the
      notification poller read and write while request handlers serve
      inbox and chat views.

    - **Foreign keys**: off by default in SQLite. Turned on so a message
      can never point at a chat row that does not exist.

    - **busy_timeout**: writers wait for a lock instead of failing at once
      with "database is locked".

    - **check_same_thread=False**: FastAPI may hand a session to another
      worker thread than the one that opened it.
"""

from sqlalchemy import event as sa_event
from sqlmodel import Session, SQLModel, create_engine

from eventmatch.core.config import settings

engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False},
    echo=settings.debug,  # SQL statements in the log when DEBUG=true
)


@sa_event.listens_for(engine, "connect")
def configure_sqlite_connection(dbapi_connection, connection_record):
    """Apply the connection-level pragmas to every new pooled connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


def create_db_and_tables():
    """Create the user, enrollment, attendee, chat and message tables."""
    # Table classes register themselves on import
    import eventmatch.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session():
    """Request-scoped session for route dependencies."""
    with Session(engine) as session:
        yield session


def session_factory() -> Session:
    """Open a standalone session for background jobs."""
    return Session(engine)
