"""User SQLAlchemy model for identities that may open realtime sessions."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.dialects.postgresql import UUID

from ..database import Base


class User(Base):
    """
    User model representing application users.

    Only the fields the realtime layer reads are mapped here; the HTTP
    account routes own the rest of the user lifecycle.

    Attributes:
        id: Unique identifier (UUID)
        email: User's email address (unique)
        username: Public handle shown to collaborators (unique)
        password_hash: Hashed password (set by the auth service)
        first_name: Given name
        last_name: Family name
        avatar_url: URL to user's avatar image
        role: Global role - admin, member or viewer
        is_active: Deactivated users cannot open sessions
        created_at: Timestamp when user was created
        updated_at: Timestamp when user was last updated
    """

    __tablename__ = "Users"
    __allow_unmapped__ = True

    # Primary key - UUID
    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    # Authentication fields
    email = Column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    username = Column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash = Column(
        String(255),
        nullable=False,
    )

    # Profile fields
    first_name = Column(
        String(50),
        nullable=True,
    )
    last_name = Column(
        String(50),
        nullable=True,
    )
    avatar_url = Column(
        String(500),
        nullable=True,
    )

    # Access fields
    role = Column(
        String(20),
        nullable=False,
        default="member",
    )
    is_active = Column(
        Boolean,
        nullable=False,
        default=True,
    )

    # Timestamps
    created_at = Column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation of User."""
        return f"<User(id={self.id}, username={self.username})>"
