"""Pydantic schemas package for realtime payload validation and serialization."""

from .base import InboundModel, WireModel
from .chat import (
    MAX_MESSAGE_LENGTH,
    Attachment,
    ChatHistory,
    ChatMessageType,
    ChatResponse,
    MessageResponse,
    ReactionResponse,
    ReadReceiptResponse,
)
from .user import UserSummary
from .whiteboard import (
    CollaboratorResponse,
    ElementCreate,
    ElementResponse,
    ElementType,
    ElementUpdate,
    Point,
    Size,
    WhiteboardResponse,
    WhiteboardState,
)

__all__ = [
    # Base classes
    "InboundModel",
    "WireModel",
    # Chat schemas
    "MAX_MESSAGE_LENGTH",
    "Attachment",
    "ChatHistory",
    "ChatMessageType",
    "ChatResponse",
    "MessageResponse",
    "ReactionResponse",
    "ReadReceiptResponse",
    # User schemas
    "UserSummary",
    # Whiteboard schemas
    "CollaboratorResponse",
    "ElementCreate",
    "ElementResponse",
    "ElementType",
    "ElementUpdate",
    "Point",
    "Size",
    "WhiteboardResponse",
    "WhiteboardState",
]
