"""WebSocket connection registry with room-based broadcast and Redis pub/sub.

This module provides WebSocket connection management with:
- An abstract ``RoomRegistry`` the event router depends on
- Idempotent room membership (join/leave report whether anything changed)
- Best-effort, at-most-once broadcast to current room members
- Redis pub/sub for cross-worker message delivery
- Per-user connection cap

Room and connection maps are only mutated between awaits on the event
loop, so they need no lock.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from fastapi import WebSocket

from ..config import settings
from ..services.auth_service import Identity
from ..services.redis_service import RedisService
from .events import OutboundEvent, build_message

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Connection:
    """A live, authenticated WebSocket session."""

    websocket: WebSocket
    identity: Identity
    id: str = field(default_factory=lambda: uuid4().hex)
    connected_at: datetime = field(default_factory=datetime.utcnow)
    rooms: set[str] = field(default_factory=set)
    active_whiteboard_id: Optional[UUID] = None
    active_chat_id: Optional[UUID] = None

    @property
    def user_id(self) -> UUID:
        return self.identity.id

    def __hash__(self) -> int:
        """Hash by connection id for set operations."""
        return hash(self.id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Connection):
            return False
        return self.id == other.id


class RoomRegistry(ABC):
    """Interface of the connection registry and room manager."""

    @abstractmethod
    async def connect(self, websocket: WebSocket, identity: Identity) -> Optional[Connection]:
        ...

    @abstractmethod
    async def disconnect(self, websocket: WebSocket) -> Optional[Connection]:
        ...

    @abstractmethod
    def join_room(self, connection: Connection, room_id: str) -> bool:
        ...

    @abstractmethod
    def leave_room(self, connection: Connection, room_id: str) -> bool:
        ...

    @abstractmethod
    def is_member(self, connection: Connection, room_id: str) -> bool:
        ...

    @abstractmethod
    async def send_personal(
        self,
        connection: Connection,
        event: OutboundEvent,
        data: Optional[dict[str, Any]] = None,
    ) -> bool:
        ...

    @abstractmethod
    async def broadcast(
        self,
        room_id: str,
        event: OutboundEvent,
        data: dict[str, Any],
        exclude: Optional[Connection] = None,
    ) -> int:
        ...

    async def broadcast_all(
        self,
        room_id: str,
        event: OutboundEvent,
        data: dict[str, Any],
    ) -> int:
        """Broadcast to every member, the sender included."""
        return await self.broadcast(room_id, event, data, exclude=None)

    @abstractmethod
    def get_connection(self, websocket: WebSocket) -> Optional[Connection]:
        ...

    @abstractmethod
    def get_room_count(self, room_id: str) -> int:
        ...

    @abstractmethod
    def get_room_users(self, room_id: str) -> list[UUID]:
        ...

    @property
    @abstractmethod
    def total_connections(self) -> int:
        ...

    @property
    @abstractmethod
    def total_rooms(self) -> int:
        ...


class ConnectionManager(RoomRegistry):
    """
    In-memory room registry for one worker, optionally fanned out via Redis.

    Features:
    - Room-based connection grouping for targeted broadcasts
    - Redis pub/sub for cross-worker message delivery
    - User tracking for the per-user connection cap
    - Graceful disconnect handling
    """

    # Redis pub/sub channel
    _BROADCAST_CHANNEL = "ws:broadcast"

    def __init__(self, max_connections_per_user: Optional[int] = None) -> None:
        """Initialize the connection manager."""
        # Map of room_id -> set of connections
        self._rooms: dict[str, set[Connection]] = {}
        # Map of websocket -> connection object
        self._connections: dict[WebSocket, Connection] = {}
        # Map of user_id -> set of connections
        self._user_connections: dict[UUID, set[Connection]] = {}
        self._max_connections_per_user = (
            max_connections_per_user or settings.ws_max_connections_per_user
        )
        self._redis: Optional[RedisService] = None

    async def initialize_redis(self, redis: RedisService) -> None:
        """Set up Redis pub/sub handlers for cross-worker messaging."""
        if self._redis is not None:
            return

        await redis.subscribe(self._BROADCAST_CHANNEL, self._handle_redis_broadcast)
        self._redis = redis
        logger.info("ConnectionManager Redis pub/sub initialized")

    async def _handle_redis_broadcast(self, data: dict) -> None:
        """
        Handle broadcast messages from Redis (from every worker, this one included).

        Args:
            data: Message containing room_id, message, and exclude_conn_id
        """
        room_id = data.get("room_id")
        message = data.get("message")
        exclude_conn_id = data.get("exclude_conn_id")

        if not room_id or not message:
            return

        # Send to LOCAL connections only (Redis already distributed to all workers)
        connections = [
            conn for conn in self._rooms.get(room_id, set())
            if conn.id != exclude_conn_id
        ]
        await self._deliver(room_id, connections, message)

    @property
    def total_connections(self) -> int:
        """Get total number of active connections."""
        return len(self._connections)

    @property
    def total_rooms(self) -> int:
        """Get total number of active rooms."""
        return len(self._rooms)

    def get_room_count(self, room_id: str) -> int:
        """Get number of connections in a room."""
        return len(self._rooms.get(room_id, set()))

    def get_user_connections_count(self, user_id: UUID) -> int:
        """Get number of connections for a user."""
        return len(self._user_connections.get(user_id, set()))

    async def connect(
        self,
        websocket: WebSocket,
        identity: Identity,
    ) -> Optional[Connection]:
        """
        Accept a WebSocket connection and register it.

        Args:
            websocket: The WebSocket instance (not yet accepted)
            identity: The authenticated user

        Returns:
            Connection: The connection wrapper object, or None if rejected
        """
        # DDoS protection: reject excessive connections from single user
        current_connections = self.get_user_connections_count(identity.id)
        if current_connections >= self._max_connections_per_user:
            logger.warning(
                f"DDoS protection: connection limit reached for user {identity.id}: "
                f"{current_connections}/{self._max_connections_per_user}"
            )
            # Closing before accept would surface as a handshake 403
            await websocket.accept()
            await websocket.close(code=4029, reason="Too many connections")
            return None

        await websocket.accept()

        connection = Connection(websocket=websocket, identity=identity)
        self._connections[websocket] = connection
        self._user_connections.setdefault(identity.id, set()).add(connection)

        logger.info(
            f"WebSocket connected: user={identity.username} ({identity.id}), "
            f"total_connections={self.total_connections}"
        )

        await self.send_personal(
            connection,
            OutboundEvent.CONNECTED,
            {
                "connectionId": connection.id,
                "user": identity.summary(),
                "connectedAt": connection.connected_at.isoformat(),
            },
        )

        return connection

    async def disconnect(self, websocket: WebSocket) -> Optional[Connection]:
        """
        Unregister a WebSocket and drop it from all rooms.

        The returned connection keeps its ``rooms`` and active ids so the
        disconnect reconciler can tell which rooms to notify.

        Args:
            websocket: The WebSocket instance to disconnect

        Returns:
            The removed connection, or None if it was not registered
        """
        connection = self._connections.pop(websocket, None)
        if connection is None:
            return None

        user_connections = self._user_connections.get(connection.user_id)
        if user_connections is not None:
            user_connections.discard(connection)
            if not user_connections:
                del self._user_connections[connection.user_id]

        for room_id in connection.rooms:
            self._remove_from_room(connection, room_id)

        logger.info(
            f"WebSocket disconnected: user={connection.identity.username} "
            f"({connection.user_id}), total_connections={self.total_connections}"
        )
        return connection

    def _remove_from_room(self, connection: Connection, room_id: str) -> None:
        members = self._rooms.get(room_id)
        if members is None:
            return
        members.discard(connection)
        if not members:
            del self._rooms[room_id]

    def join_room(self, connection: Connection, room_id: str) -> bool:
        """
        Add a connection to a room. Joining twice is a no-op.

        Returns:
            True if the connection was not a member before
        """
        if room_id in connection.rooms:
            return False

        self._rooms.setdefault(room_id, set()).add(connection)
        connection.rooms.add(room_id)
        logger.debug(
            f"User {connection.user_id} joined room {room_id} "
            f"(room_size={self.get_room_count(room_id)})"
        )
        return True

    def leave_room(self, connection: Connection, room_id: str) -> bool:
        """
        Remove a connection from a room. Leaving a room not joined is a no-op.

        Returns:
            True if the connection was a member
        """
        if room_id not in connection.rooms:
            return False

        connection.rooms.discard(room_id)
        self._remove_from_room(connection, room_id)
        logger.debug(
            f"User {connection.user_id} left room {room_id} "
            f"(room_size={self.get_room_count(room_id)})"
        )
        return True

    def is_member(self, connection: Connection, room_id: str) -> bool:
        return room_id in connection.rooms

    async def _send(self, connection: Connection, message: dict[str, Any]) -> bool:
        try:
            await connection.websocket.send_json(message)
            return True
        except Exception as e:
            logger.debug(f"Send to connection {connection.id} failed: {e}")
            return False

    async def send_personal(
        self,
        connection: Connection,
        event: OutboundEvent,
        data: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Send an event to a specific connection.

        Returns:
            bool: True if sent successfully, False otherwise
        """
        return await self._send(connection, build_message(event, data))

    async def _deliver(
        self,
        room_id: str,
        connections: list[Connection],
        message: dict[str, Any],
    ) -> int:
        if not connections:
            return 0

        # Send to all connections concurrently
        results = await asyncio.gather(
            *(self._send(conn, message) for conn in connections),
            return_exceptions=True,
        )

        success_count = sum(1 for r in results if r is True)
        logger.debug(
            f"Broadcast {message.get('type')} to room {room_id}: "
            f"{success_count}/{len(connections)} successful"
        )
        return success_count

    async def broadcast(
        self,
        room_id: str,
        event: OutboundEvent,
        data: dict[str, Any],
        exclude: Optional[Connection] = None,
    ) -> int:
        """
        Broadcast an event to all connections in a room (across all workers).

        Args:
            room_id: The room to broadcast to
            event: Outbound event name
            data: Event payload
            exclude: Optional connection to exclude from broadcast

        Returns:
            int: Number of local recipients
        """
        message = build_message(event, data)

        # Publish to Redis for cross-worker delivery
        if self._redis is not None and self._redis.is_connected:
            await self._redis.publish(
                self._BROADCAST_CHANNEL,
                {
                    "room_id": room_id,
                    "message": message,
                    "exclude_conn_id": exclude.id if exclude else None,
                },
            )
            # Redis will deliver to all workers including this one via _handle_redis_broadcast
            return sum(1 for conn in self._rooms.get(room_id, set()) if conn != exclude)

        # Local-only broadcast if Redis is not connected
        connections = [
            conn for conn in self._rooms.get(room_id, set())
            if conn != exclude
        ]
        return await self._deliver(room_id, connections, message)

    def get_room_users(self, room_id: str) -> list[UUID]:
        """
        Get list of user IDs in a room.

        Args:
            room_id: The room identifier

        Returns:
            list[UUID]: List of unique user IDs in the room
        """
        connections = self._rooms.get(room_id, set())
        return list(set(conn.user_id for conn in connections))

    def get_connection(self, websocket: WebSocket) -> Optional[Connection]:
        """
        Get the connection wrapper for a WebSocket.

        Args:
            websocket: The WebSocket instance

        Returns:
            Optional[Connection]: The connection or None
        """
        return self._connections.get(websocket)
