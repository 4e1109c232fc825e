"""SQLAlchemy ORM models package."""

from .chat import Chat, ChatMessage, ChatMessageRead, ChatParticipant, ChatReaction
from .user import User
from .whiteboard import Whiteboard, WhiteboardCollaborator, WhiteboardElement

__all__ = [
    "Chat",
    "ChatMessage",
    "ChatMessageRead",
    "ChatParticipant",
    "ChatReaction",
    "User",
    "Whiteboard",
    "WhiteboardCollaborator",
    "WhiteboardElement",
]
