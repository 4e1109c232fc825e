"""Chat SQLAlchemy models: chats, participants, messages, reactions and read receipts.

Messages, reactions and read receipts each live in their own rows. Unique
constraints enforce the per-identity rules (one reaction per user per emoji,
one read receipt per user per message) even when two sessions race.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database import Base


def default_chat_settings() -> dict:
    return {
        "allowEditing": True,
        "allowDeletion": True,
        "allowReactions": True,
        "allowMentions": True,
    }


class Chat(Base):
    """
    Chat channel belonging to a project.

    Attributes:
        id: Unique identifier (UUID)
        project_id: Owning project (managed by the projects service)
        name: Optional display name
        type: project, direct or group
        settings: Editing/deletion/reaction/mention flags
        is_archived: Archived chats reject new messages
        last_activity: Bumped whenever a message is added
    """

    __tablename__ = "Chats"
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
    name = Column(String(100), nullable=True)
    type = Column(String(20), nullable=False, default="project")
    settings = Column(JSON, nullable=False, default=default_chat_settings)
    is_archived = Column(Boolean, nullable=False, default=False)
    last_activity = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    participants = relationship(
        "ChatParticipant",
        back_populates="chat",
        cascade="all, delete-orphan",
    )
    messages = relationship(
        "ChatMessage",
        back_populates="chat",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Chat(id={self.id}, name={self.name}, type={self.type})>"


class ChatParticipant(Base):
    """Membership of a user in a chat, with typing flag and last-read marker."""

    __tablename__ = "ChatParticipants"
    __allow_unmapped__ = True
    __table_args__ = (
        UniqueConstraint("chat_id", "user_id", name="uq_chat_participant"),
    )

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    chat_id = Column(
        UUID(as_uuid=True),
        ForeignKey("Chats.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("Users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = Column(String(20), nullable=False, default="member")
    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_read = Column(DateTime, default=datetime.utcnow, nullable=False)
    is_typing = Column(Boolean, nullable=False, default=False)

    chat = relationship("Chat", back_populates="participants")


class ChatMessage(Base):
    """
    A message posted to a chat.

    Deleted messages are soft-deleted: they keep their id and metadata but
    are excluded from history reads and reject further edits.
    """

    __tablename__ = "ChatMessages"
    __allow_unmapped__ = True
    __table_args__ = (
        UniqueConstraint("chat_id", "message_id", name="uq_chat_message_id"),
        Index("ix_chat_messages_chat_created", "chat_id", "created_at"),
    )

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    chat_id = Column(
        UUID(as_uuid=True),
        ForeignKey("Chats.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Public id used on the wire (msg_<hex>)
    message_id = Column(String(64), nullable=False)
    sender_id = Column(
        UUID(as_uuid=True),
        ForeignKey("Users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    content = Column(Text, nullable=False)
    type = Column(String(20), nullable=False, default="text")
    attachments = Column(JSON, nullable=False, default=list)
    mentions = Column(JSON, nullable=False, default=list)

    is_edited = Column(Boolean, nullable=False, default=False)
    edited_at = Column(DateTime, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(UUID(as_uuid=True), nullable=True)
    pinned_by = Column(UUID(as_uuid=True), nullable=True)
    pinned_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    chat = relationship("Chat", back_populates="messages")
    sender = relationship("User", lazy="raise")
    reactions = relationship(
        "ChatReaction",
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="ChatReaction.created_at",
    )
    read_by = relationship(
        "ChatMessageRead",
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="ChatMessageRead.read_at",
    )

    def __repr__(self) -> str:
        return f"<ChatMessage(message_id={self.message_id}, deleted={self.is_deleted})>"


class ChatReaction(Base):
    """An emoji reaction by one user on one message."""

    __tablename__ = "ChatReactions"
    __allow_unmapped__ = True
    __table_args__ = (
        UniqueConstraint("message_pk", "user_id", "emoji", name="uq_chat_reaction"),
    )

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    message_pk = Column(
        UUID(as_uuid=True),
        ForeignKey("ChatMessages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("Users.id", ondelete="CASCADE"),
        nullable=False,
    )
    emoji = Column(String(32), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    message = relationship("ChatMessage", back_populates="reactions")


class ChatMessageRead(Base):
    """Read receipt: append-only, at most one per user per message."""

    __tablename__ = "ChatMessageReads"
    __allow_unmapped__ = True
    __table_args__ = (
        UniqueConstraint("message_pk", "user_id", name="uq_chat_message_read"),
    )

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    message_pk = Column(
        UUID(as_uuid=True),
        ForeignKey("ChatMessages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("Users.id", ondelete="CASCADE"),
        nullable=False,
    )
    read_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    message = relationship("ChatMessage", back_populates="read_by")
