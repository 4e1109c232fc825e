"""Whiteboard SQLAlchemy models: the board, its elements and live collaborators.

Elements are stored one row per element so that concurrent edits to different
elements touch different rows and never overwrite each other. Edits to the
same element are last-write-wins.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database import Base


def default_canvas() -> dict:
    return {
        "width": 1920,
        "height": 1080,
        "backgroundColor": "#ffffff",
        "grid": {"enabled": True, "size": 20, "color": "#e0e0e0"},
    }


def default_whiteboard_settings() -> dict:
    return {
        "allowEditing": True,
        "allowComments": True,
        "autoSave": True,
        "saveInterval": 30000,
    }


class Whiteboard(Base):
    """
    Whiteboard document belonging to a project.

    Attributes:
        id: Unique identifier (UUID)
        project_id: Owning project (managed by the projects service)
        name: Display name
        description: Optional description
        created_by: FK to the creating user
        canvas: Canvas dimensions, background and grid settings
        settings: Editing/commenting/autosave flags
        version: Incremented on every element add, update or removal
        is_archived: Archived boards reject element edits
    """

    __tablename__ = "Whiteboards"
    __allow_unmapped__ = True

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    project_id = Column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    created_by = Column(
        UUID(as_uuid=True),
        ForeignKey("Users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    canvas = Column(JSON, nullable=False, default=default_canvas)
    settings = Column(JSON, nullable=False, default=default_whiteboard_settings)
    version = Column(Integer, nullable=False, default=1)
    is_archived = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    elements = relationship(
        "WhiteboardElement",
        back_populates="whiteboard",
        cascade="all, delete-orphan",
    )
    collaborators = relationship(
        "WhiteboardCollaborator",
        back_populates="whiteboard",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Whiteboard(id={self.id}, name={self.name}, version={self.version})>"


class WhiteboardElement(Base):
    """A single shape, text box, image or stroke on a whiteboard."""

    __tablename__ = "WhiteboardElements"
    __allow_unmapped__ = True
    __table_args__ = (
        UniqueConstraint("whiteboard_id", "element_id", name="uq_whiteboard_element_id"),
    )

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    whiteboard_id = Column(
        UUID(as_uuid=True),
        ForeignKey("Whiteboards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Public id, client-supplied or server-generated; unique per whiteboard
    element_id = Column(String(100), nullable=False)
    type = Column(String(30), nullable=False)
    position = Column(JSON, nullable=False)
    size = Column(JSON, nullable=False)
    content = Column(JSON, nullable=True)
    style = Column(JSON, nullable=True)
    rotation = Column(Float, nullable=False, default=0)
    z_index = Column(Integer, nullable=False, default=0)
    # Free-form stroke points for pen/line/arrow elements
    points = Column(JSON, nullable=True)

    created_by = Column(UUID(as_uuid=True), nullable=True)
    updated_by = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    whiteboard = relationship("Whiteboard", back_populates="elements")

    def __repr__(self) -> str:
        return f"<WhiteboardElement(element_id={self.element_id}, type={self.type})>"


class WhiteboardCollaborator(Base):
    """
    Presence entry of a user on a whiteboard.

    Ephemeral: created on join, updated on every cursor move, removed on
    leave or disconnect. Not required to survive a restart.
    """

    __tablename__ = "WhiteboardCollaborators"
    __allow_unmapped__ = True
    __table_args__ = (
        UniqueConstraint("whiteboard_id", "user_id", name="uq_whiteboard_collaborator"),
    )

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    whiteboard_id = Column(
        UUID(as_uuid=True),
        ForeignKey("Whiteboards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("Users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    cursor_x = Column(Float, nullable=False, default=0)
    cursor_y = Column(Float, nullable=False, default=0)
    last_active = Column(DateTime, default=datetime.utcnow, nullable=False)

    whiteboard = relationship("Whiteboard", back_populates="collaborators")
    user = relationship("User", lazy="raise")
