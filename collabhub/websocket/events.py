"""Realtime event catalogue, payload validation and client-visible errors.

Every inbound frame is ``{"type": <event-name>, "data": {...}}``. The set of
inbound kinds is closed: each ``InboundEvent`` maps to exactly one payload
model, and the mapping is checked for completeness at import time.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..schemas.base import InboundModel
from ..schemas.chat import MAX_MESSAGE_LENGTH, Attachment, ChatMessageType
from ..schemas.whiteboard import ElementCreate, ElementUpdate, Point


class InboundEvent(str, Enum):
    """Events a client may send."""

    JOIN_PROJECT = "join-project"
    LEAVE_PROJECT = "leave-project"

    JOIN_WHITEBOARD = "join-whiteboard"
    LEAVE_WHITEBOARD = "leave-whiteboard"
    WHITEBOARD_ELEMENT_ADD = "whiteboard-element-add"
    WHITEBOARD_ELEMENT_UPDATE = "whiteboard-element-update"
    WHITEBOARD_ELEMENT_REMOVE = "whiteboard-element-remove"
    WHITEBOARD_CURSOR_UPDATE = "whiteboard-cursor-update"

    JOIN_CHAT = "join-chat"
    LEAVE_CHAT = "leave-chat"
    CHAT_MESSAGE = "chat-message"
    CHAT_MESSAGE_EDIT = "chat-message-edit"
    CHAT_MESSAGE_DELETE = "chat-message-delete"
    CHAT_REACTION_ADD = "chat-reaction-add"
    CHAT_REACTION_REMOVE = "chat-reaction-remove"
    CHAT_MESSAGE_PIN = "chat-message-pin"
    CHAT_MESSAGE_UNPIN = "chat-message-unpin"
    CHAT_TYPING_START = "chat-typing-start"
    CHAT_TYPING_STOP = "chat-typing-stop"
    CHAT_MESSAGE_READ = "chat-message-read"

    USER_PRESENCE_UPDATE = "user-presence-update"

    PING = "ping"


class OutboundEvent(str, Enum):
    """Events the server sends."""

    CONNECTED = "connected"
    ERROR = "error"
    PING = "ping"
    PONG = "pong"

    USER_JOINED_PROJECT = "user-joined-project"
    USER_LEFT_PROJECT = "user-left-project"
    USER_PRESENCE_CHANGED = "user-presence-changed"

    WHITEBOARD_STATE = "whiteboard-state"
    USER_JOINED_WHITEBOARD = "user-joined-whiteboard"
    USER_LEFT_WHITEBOARD = "user-left-whiteboard"
    WHITEBOARD_ELEMENT_ADDED = "whiteboard-element-added"
    WHITEBOARD_ELEMENT_UPDATED = "whiteboard-element-updated"
    WHITEBOARD_ELEMENT_REMOVED = "whiteboard-element-removed"
    WHITEBOARD_CURSOR_UPDATED = "whiteboard-cursor-updated"

    CHAT_HISTORY = "chat-history"
    USER_JOINED_CHAT = "user-joined-chat"
    CHAT_MESSAGE_RECEIVED = "chat-message-received"
    CHAT_MESSAGE_UPDATED = "chat-message-updated"
    CHAT_MESSAGE_DELETED = "chat-message-deleted"
    CHAT_REACTION_UPDATED = "chat-reaction-updated"
    CHAT_MESSAGE_PINNED = "chat-message-pinned"
    USER_TYPING = "user-typing"
    MESSAGE_READ = "message-read"


class PresenceStatus(str, Enum):
    ONLINE = "online"
    AWAY = "away"
    BUSY = "busy"
    OFFLINE = "offline"


# ============================================================================
# Errors
# ============================================================================


class RealtimeError(Exception):
    """
    Failure reported to the sending client as an ``error`` event.

    Raising one never changes state and never broadcasts.
    """

    code = "ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_payload(self) -> dict[str, Any]:
        return error_payload(self.code, self.message)


class EventValidationError(RealtimeError):
    code = "VALIDATION_ERROR"


class UnknownEventError(RealtimeError):
    code = "UNKNOWN_EVENT"


class NotJoinedError(RealtimeError):
    code = "NOT_JOINED"


class ResourceNotFoundError(RealtimeError):
    code = "NOT_FOUND"


class PermissionDeniedError(RealtimeError):
    code = "FORBIDDEN"


class ConflictError(RealtimeError):
    code = "CONFLICT"


# ============================================================================
# Payload models
# ============================================================================


class EmptyPayload(InboundModel):
    pass


class ProjectPayload(InboundModel):
    project_id: UUID


class WhiteboardPayload(InboundModel):
    whiteboard_id: UUID


class ElementAddPayload(WhiteboardPayload):
    element: ElementCreate


class ElementUpdatePayload(WhiteboardPayload):
    element_id: str = Field(..., min_length=1, max_length=100)
    updates: ElementUpdate


class ElementRemovePayload(WhiteboardPayload):
    element_id: str = Field(..., min_length=1, max_length=100)


class CursorUpdatePayload(WhiteboardPayload):
    cursor: Point


class ChatPayload(InboundModel):
    chat_id: UUID


class ChatMessagePayload(ChatPayload):
    content: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    type: ChatMessageType = ChatMessageType.TEXT
    attachments: list[Attachment] = Field(default_factory=list)
    mentions: list[UUID] = Field(default_factory=list)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message content cannot be empty")
        return value


class MessageRefPayload(ChatPayload):
    message_id: str = Field(..., min_length=1, max_length=64)


class MessageEditPayload(MessageRefPayload):
    content: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message content cannot be empty")
        return value


class ReactionPayload(MessageRefPayload):
    emoji: str = Field(..., min_length=1, max_length=32)


class MessageReadPayload(ChatPayload):
    message_id: Optional[str] = Field(None, min_length=1, max_length=64)


class PresenceUpdatePayload(ProjectPayload):
    status: PresenceStatus


PAYLOAD_MODELS: dict[InboundEvent, type[BaseModel]] = {
    InboundEvent.JOIN_PROJECT: ProjectPayload,
    InboundEvent.LEAVE_PROJECT: ProjectPayload,
    InboundEvent.JOIN_WHITEBOARD: WhiteboardPayload,
    InboundEvent.LEAVE_WHITEBOARD: WhiteboardPayload,
    InboundEvent.WHITEBOARD_ELEMENT_ADD: ElementAddPayload,
    InboundEvent.WHITEBOARD_ELEMENT_UPDATE: ElementUpdatePayload,
    InboundEvent.WHITEBOARD_ELEMENT_REMOVE: ElementRemovePayload,
    InboundEvent.WHITEBOARD_CURSOR_UPDATE: CursorUpdatePayload,
    InboundEvent.JOIN_CHAT: ChatPayload,
    InboundEvent.LEAVE_CHAT: ChatPayload,
    InboundEvent.CHAT_MESSAGE: ChatMessagePayload,
    InboundEvent.CHAT_MESSAGE_EDIT: MessageEditPayload,
    InboundEvent.CHAT_MESSAGE_DELETE: MessageRefPayload,
    InboundEvent.CHAT_REACTION_ADD: ReactionPayload,
    InboundEvent.CHAT_REACTION_REMOVE: ReactionPayload,
    InboundEvent.CHAT_MESSAGE_PIN: MessageRefPayload,
    InboundEvent.CHAT_MESSAGE_UNPIN: MessageRefPayload,
    InboundEvent.CHAT_TYPING_START: ChatPayload,
    InboundEvent.CHAT_TYPING_STOP: ChatPayload,
    InboundEvent.CHAT_MESSAGE_READ: MessageReadPayload,
    InboundEvent.USER_PRESENCE_UPDATE: PresenceUpdatePayload,
    InboundEvent.PING: EmptyPayload,
}

_missing = set(InboundEvent) - set(PAYLOAD_MODELS)
if _missing:
    raise RuntimeError(
        f"Inbound events without a payload model: {sorted(e.value for e in _missing)}"
    )


# ============================================================================
# Parsing and message building
# ============================================================================


@dataclass(frozen=True)
class Event:
    """A validated inbound event."""

    kind: InboundEvent
    payload: Any


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error["loc"]) or "data"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def parse_event(frame: Any) -> Event:
    """
    Validate a decoded JSON frame into an ``Event``.

    Raises:
        EventValidationError: Frame is not an envelope or the payload is invalid
        UnknownEventError: The event name is not in the catalogue
    """
    if not isinstance(frame, dict):
        raise EventValidationError("Message must be a JSON object")

    event_type = frame.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise EventValidationError("Message type is required")

    try:
        kind = InboundEvent(event_type)
    except ValueError:
        raise UnknownEventError(f"Unknown event type: {event_type}")

    data = frame.get("data")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise EventValidationError("Message data must be a JSON object")

    try:
        payload = PAYLOAD_MODELS[kind].model_validate(data)
    except ValidationError as e:
        raise EventValidationError(_describe_validation_error(e))

    return Event(kind=kind, payload=payload)


def build_message(event: OutboundEvent, data: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """Wrap a payload in the wire envelope."""
    return {"type": event.value, "data": data or {}}


def error_payload(code: str, message: str) -> dict[str, Any]:
    """Data of an ``error`` event."""
    return {"error": code, "message": message}


def timestamp() -> str:
    return datetime.utcnow().isoformat()
