"""WebSocket module for real-time collaboration."""

from .events import (
    ConflictError,
    Event,
    EventValidationError,
    InboundEvent,
    NotJoinedError,
    OutboundEvent,
    PermissionDeniedError,
    PresenceStatus,
    RealtimeError,
    ResourceNotFoundError,
    UnknownEventError,
    build_message,
    error_payload,
    parse_event,
)
from .manager import (
    Connection,
    ConnectionManager,
    RoomRegistry,
)
from .handlers import (
    DISPATCH,
    EventRouter,
    get_chat_room,
    get_project_room,
    get_whiteboard_room,
    is_project_room,
)
from .reconciler import DisconnectReconciler

__all__ = [
    # Events
    "ConflictError",
    "Event",
    "EventValidationError",
    "InboundEvent",
    "NotJoinedError",
    "OutboundEvent",
    "PermissionDeniedError",
    "PresenceStatus",
    "RealtimeError",
    "ResourceNotFoundError",
    "UnknownEventError",
    "build_message",
    "error_payload",
    "parse_event",
    # Manager
    "Connection",
    "ConnectionManager",
    "RoomRegistry",
    # Handlers
    "DISPATCH",
    "EventRouter",
    "get_chat_room",
    "get_project_room",
    "get_whiteboard_room",
    "is_project_room",
    # Reconciler
    "DisconnectReconciler",
]
