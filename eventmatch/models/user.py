"""User model for the user directory.

The matching core reads users to build attendee cards and to show who is on
the other side of a chat.
"""

from datetime import datetime

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from eventmatch.core.timestamps import utcnow


class User(SQLModel, table=True):
    """A registered member of the app.

    Attributes:
        id: Stable string id. Legacy accounts use short numeric strings
            ("1", "2", ...), which is what the composite attendee id format
            relies on.
        email: Lowercased, unique login address.
        name: Display name.
        job: Job title shown on attendee cards.
        company: Employer shown on attendee cards.
        bio: Free-text profile blurb.
        image: Profile picture URL.
        interests: List of interest tags.
        created_at: When the account was created.
        updated_at: Last profile update.
    """
    id: str = Field(primary_key=True)
    email: str = Field(index=True, unique=True)
    name: str | None = None
    job: str | None = None
    company: str | None = None
    bio: str | None = None
    image: str | None = None
    interests: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
