"""Cleanup of presence and typing state when a WebSocket goes away."""

import logging
from typing import Optional

from fastapi import WebSocket
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..services import chat_service, whiteboard_service
from .events import OutboundEvent, timestamp
from .handlers import get_chat_room, get_whiteboard_room, is_project_room
from .manager import Connection, RoomRegistry

logger = logging.getLogger(__name__)


class DisconnectReconciler:
    """
    Unregisters a closed connection and tells the rooms it was in.

    The three cleanups (whiteboard presence, chat typing flag, project
    rooms) are independent: each logs its own failures and never stops
    the others. Nothing is sent to the departed client.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self._registry = registry
        self._session_factory = session_factory

    async def handle_disconnect(self, websocket: WebSocket) -> Optional[Connection]:
        """Unregister ``websocket`` first, then run the cleanups."""
        connection = await self._registry.disconnect(websocket)
        if connection is None:
            return None

        await self.reconcile(connection)
        return connection

    async def reconcile(self, connection: Connection) -> None:
        await self._cleanup_whiteboard(connection)
        await self._cleanup_chat(connection)
        await self._notify_projects(connection)

    async def _cleanup_whiteboard(self, connection: Connection) -> None:
        whiteboard_id = connection.active_whiteboard_id
        if whiteboard_id is None:
            return

        room_id = get_whiteboard_room(whiteboard_id)
        if connection.user_id in self._registry.get_room_users(room_id):
            return  # Still present through another connection

        try:
            async with self._session_factory() as db:
                await whiteboard_service.remove_collaborator(
                    db, whiteboard_id, connection.user_id
                )
        except Exception:
            logger.exception(
                f"Failed to remove presence of user {connection.user_id} "
                f"from whiteboard {whiteboard_id}"
            )

        try:
            await self._registry.broadcast(
                room_id,
                OutboundEvent.USER_LEFT_WHITEBOARD,
                {
                    "user": connection.identity.summary(),
                    "whiteboardId": str(whiteboard_id),
                },
            )
        except Exception:
            logger.exception(f"Failed to notify whiteboard {whiteboard_id} of disconnect")

    async def _cleanup_chat(self, connection: Connection) -> None:
        chat_id = connection.active_chat_id
        if chat_id is None:
            return

        try:
            async with self._session_factory() as db:
                await chat_service.set_typing(db, chat_id, connection.user_id, False)
        except Exception:
            logger.exception(
                f"Failed to clear typing flag of user {connection.user_id} in chat {chat_id}"
            )

        try:
            await self._registry.broadcast(
                get_chat_room(chat_id),
                OutboundEvent.USER_TYPING,
                {
                    "user": connection.identity.summary(),
                    "chatId": str(chat_id),
                    "isTyping": False,
                },
            )
        except Exception:
            logger.exception(f"Failed to notify chat {chat_id} of disconnect")

    async def _notify_projects(self, connection: Connection) -> None:
        for room_id in sorted(r for r in connection.rooms if is_project_room(r)):
            try:
                await self._registry.broadcast(
                    room_id,
                    OutboundEvent.USER_LEFT_PROJECT,
                    {
                        "user": connection.identity.summary(),
                        "projectId": room_id.split(":", 1)[1],
                        "timestamp": timestamp(),
                    },
                )
            except Exception:
                logger.exception(f"Failed to notify {room_id} of disconnect")
