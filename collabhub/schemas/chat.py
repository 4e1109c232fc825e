"""Pydantic schemas for chats, messages, reactions and read receipts."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import AliasChoices, Field

from .base import InboundModel, WireModel
from .user import UserSummary

MAX_MESSAGE_LENGTH = 2000


class ChatMessageType(str, Enum):
    """Kinds of chat messages."""

    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    SYSTEM = "system"


class Attachment(InboundModel):
    """File attached to a chat message (uploaded through the files API)."""

    filename: str = Field(..., max_length=255)
    original_name: str = Field(..., max_length=255)
    mime_type: str = Field(..., max_length=100)
    size: int = Field(..., ge=0)
    url: str = Field(..., max_length=1000)


class ChatResponse(WireModel):
    """Chat metadata sent with ``chat-history``."""

    id: UUID
    project_id: UUID
    name: Optional[str] = None
    type: str
    settings: dict[str, Any]
    is_archived: bool = False
    last_activity: Optional[datetime] = None


class ReactionResponse(WireModel):
    user_id: UUID
    emoji: str
    created_at: Optional[datetime] = None


class ReadReceiptResponse(WireModel):
    user_id: UUID
    read_at: datetime


class MessageResponse(WireModel):
    """
    Chat message as seen by room members.

    ``id`` is the public ``msg_<hex>`` id, never the row's primary key.
    """

    id: str = Field(
        ...,
        validation_alias=AliasChoices("message_id", "id"),
    )
    chat_id: UUID
    sender: Optional[UserSummary] = None
    content: str
    type: str = ChatMessageType.TEXT.value
    attachments: list[dict[str, Any]] = Field(default_factory=list)
    mentions: list[str] = Field(default_factory=list)
    reactions: list[ReactionResponse] = Field(default_factory=list)
    read_by: list[ReadReceiptResponse] = Field(default_factory=list)
    is_edited: bool = False
    edited_at: Optional[datetime] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    pinned_by: Optional[UUID] = None
    pinned_at: Optional[datetime] = None
    created_at: datetime


class ChatHistory(WireModel):
    """Payload of ``chat-history``."""

    chat: ChatResponse
    messages: list[MessageResponse]
