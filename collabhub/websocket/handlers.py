"""WebSocket event router and per-event handlers.

Each inbound event kind has exactly one handler in ``DISPATCH``; the table
is checked against ``InboundEvent`` when this module is imported. Handlers
run one at a time per connection, in receipt order, because the receive
loop awaits ``EventRouter.route`` before reading the next frame.

Handlers raise ``RealtimeError`` subclasses for client-visible failures.
The router turns them into an ``error`` event sent to the sender only.
"""

import logging
from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models.chat import Chat, ChatMessage
from ..models.whiteboard import Whiteboard
from ..schemas.chat import MessageResponse, ReactionResponse
from ..schemas.whiteboard import ElementResponse
from ..services import chat_service, whiteboard_service
from .events import (
    ChatMessagePayload,
    ChatPayload,
    ConflictError,
    CursorUpdatePayload,
    ElementAddPayload,
    ElementRemovePayload,
    ElementUpdatePayload,
    EmptyPayload,
    InboundEvent,
    MessageEditPayload,
    MessageReadPayload,
    MessageRefPayload,
    NotJoinedError,
    OutboundEvent,
    PermissionDeniedError,
    PresenceUpdatePayload,
    ProjectPayload,
    ReactionPayload,
    RealtimeError,
    ResourceNotFoundError,
    WhiteboardPayload,
    error_payload,
    parse_event,
    timestamp,
)
from .manager import Connection, RoomRegistry

logger = logging.getLogger(__name__)


def get_project_room(project_id: UUID | str) -> str:
    """
    Get the room ID for a project.

    Args:
        project_id: The project's UUID

    Returns:
        str: Room ID in format 'project:{uuid}'
    """
    return f"project:{project_id}"


def get_whiteboard_room(whiteboard_id: UUID | str) -> str:
    """
    Get the room ID for a whiteboard.

    Args:
        whiteboard_id: The whiteboard's UUID

    Returns:
        str: Room ID in format 'whiteboard:{uuid}'
    """
    return f"whiteboard:{whiteboard_id}"


def get_chat_room(chat_id: UUID | str) -> str:
    """
    Get the room ID for a chat.

    Args:
        chat_id: The chat's UUID

    Returns:
        str: Room ID in format 'chat:{uuid}'
    """
    return f"chat:{chat_id}"


def is_project_room(room_id: str) -> bool:
    return room_id.startswith("project:")


class EventRouter:
    """
    Dispatches validated inbound events to their handlers.

    Depends only on the ``RoomRegistry`` interface and an async session
    factory, so tests can run it against an in-memory registry and SQLite.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self._registry = registry
        self._session_factory = session_factory

    @property
    def registry(self) -> RoomRegistry:
        return self._registry

    async def route(self, connection: Connection, frame: Any) -> None:
        """
        Handle one decoded inbound frame from ``connection``.

        Never raises: every failure becomes an ``error`` event to the sender.
        """
        try:
            event = parse_event(frame)
        except RealtimeError as e:
            await self.send_error(connection, e.code, e.message)
            return

        logger.debug(f"Routing {event.kind.value} from user {connection.user_id}")
        handler = DISPATCH[event.kind]

        try:
            await handler(self, connection, event.payload)
        except RealtimeError as e:
            logger.debug(
                f"{event.kind.value} from user {connection.user_id} rejected: "
                f"{e.code} {e.message}"
            )
            await self.send_error(connection, e.code, e.message)
        except Exception:
            logger.exception(
                f"Error handling {event.kind.value} from user {connection.user_id}"
            )
            await self.send_error(
                connection,
                "INTERNAL_ERROR",
                f"Failed to {FAILURE_ACTIONS[event.kind]}",
            )

    async def send_error(self, connection: Connection, code: str, message: str) -> None:
        await self._registry.send_personal(
            connection,
            OutboundEvent.ERROR,
            error_payload(code, message),
        )

    # =========================================================================
    # Preconditions
    # =========================================================================

    @staticmethod
    def _require_whiteboard(connection: Connection, whiteboard_id: UUID) -> None:
        if connection.active_whiteboard_id != whiteboard_id:
            raise NotJoinedError("Join the whiteboard before editing it")

    @staticmethod
    def _require_chat(connection: Connection, chat_id: UUID) -> None:
        if connection.active_chat_id != chat_id:
            raise NotJoinedError("Join the chat before sending to it")

    @staticmethod
    async def _editable_whiteboard(db: AsyncSession, whiteboard_id: UUID) -> Whiteboard:
        whiteboard = await whiteboard_service.get_whiteboard(db, whiteboard_id)
        if whiteboard is None:
            raise ResourceNotFoundError("Whiteboard not found")
        if whiteboard.is_archived or not whiteboard.settings.get("allowEditing", True):
            raise PermissionDeniedError("Whiteboard is read-only")
        return whiteboard

    @staticmethod
    async def _load_chat(db: AsyncSession, chat_id: UUID) -> Chat:
        chat = await chat_service.get_chat(db, chat_id)
        if chat is None:
            raise ResourceNotFoundError("Chat not found")
        return chat

    @staticmethod
    async def _live_message(db: AsyncSession, chat_id: UUID, message_id: str) -> ChatMessage:
        message = await chat_service.get_message(db, chat_id, message_id)
        if message is None or message.is_deleted:
            raise ResourceNotFoundError("Message not found")
        return message

    @staticmethod
    def _require_author_or_admin(connection: Connection, message: ChatMessage) -> None:
        if message.sender_id != connection.user_id and not connection.identity.is_admin:
            raise PermissionDeniedError("Only the sender or an admin can do this")

    # =========================================================================
    # Project rooms
    # =========================================================================

    async def join_project(self, connection: Connection, payload: ProjectPayload) -> None:
        room_id = get_project_room(payload.project_id)
        if not self._registry.join_room(connection, room_id):
            return

        logger.info(f"User {connection.identity.username} joined project {payload.project_id}")
        await self._registry.broadcast(
            room_id,
            OutboundEvent.USER_JOINED_PROJECT,
            {
                "user": connection.identity.summary(),
                "projectId": str(payload.project_id),
                "timestamp": timestamp(),
            },
            exclude=connection,
        )

    async def leave_project(self, connection: Connection, payload: ProjectPayload) -> None:
        room_id = get_project_room(payload.project_id)
        if not self._registry.leave_room(connection, room_id):
            return

        logger.info(f"User {connection.identity.username} left project {payload.project_id}")
        await self._registry.broadcast(
            room_id,
            OutboundEvent.USER_LEFT_PROJECT,
            {
                "user": connection.identity.summary(),
                "projectId": str(payload.project_id),
                "timestamp": timestamp(),
            },
            exclude=connection,
        )

    async def presence_update(
        self,
        connection: Connection,
        payload: PresenceUpdatePayload,
    ) -> None:
        room_id = get_project_room(payload.project_id)
        if not self._registry.is_member(connection, room_id):
            raise NotJoinedError("Join the project before updating presence")

        await self._registry.broadcast(
            room_id,
            OutboundEvent.USER_PRESENCE_CHANGED,
            {
                "user": connection.identity.summary(),
                "status": payload.status.value,
                "projectId": str(payload.project_id),
                "timestamp": timestamp(),
            },
            exclude=connection,
        )

    # =========================================================================
    # Whiteboard
    # =========================================================================

    async def _leave_whiteboard(
        self,
        db: AsyncSession,
        connection: Connection,
        whiteboard_id: UUID,
    ) -> None:
        room_id = get_whiteboard_room(whiteboard_id)
        self._registry.leave_room(connection, room_id)
        connection.active_whiteboard_id = None

        # Presence is per user; another tab of the same user keeps it alive
        if connection.user_id in self._registry.get_room_users(room_id):
            return

        await whiteboard_service.remove_collaborator(db, whiteboard_id, connection.user_id)
        await self._registry.broadcast(
            room_id,
            OutboundEvent.USER_LEFT_WHITEBOARD,
            {
                "user": connection.identity.summary(),
                "whiteboardId": str(whiteboard_id),
            },
            exclude=connection,
        )

    async def join_whiteboard(self, connection: Connection, payload: WhiteboardPayload) -> None:
        whiteboard_id = payload.whiteboard_id

        async with self._session_factory() as db:
            if await whiteboard_service.get_whiteboard(db, whiteboard_id) is None:
                raise ResourceNotFoundError("Whiteboard not found")

            previous = connection.active_whiteboard_id
            if previous is not None and previous != whiteboard_id:
                await self._leave_whiteboard(db, connection, previous)

            await whiteboard_service.upsert_cursor(db, whiteboard_id, connection.user_id, 0, 0)
            state = await whiteboard_service.get_whiteboard_state(db, whiteboard_id)
            if state is None:
                raise ResourceNotFoundError("Whiteboard not found")

        room_id = get_whiteboard_room(whiteboard_id)
        newly_joined = self._registry.join_room(connection, room_id)
        connection.active_whiteboard_id = whiteboard_id

        await self._registry.send_personal(
            connection,
            OutboundEvent.WHITEBOARD_STATE,
            state.to_wire(),
        )

        if newly_joined:
            logger.info(
                f"User {connection.identity.username} joined whiteboard {whiteboard_id}"
            )
            await self._registry.broadcast(
                room_id,
                OutboundEvent.USER_JOINED_WHITEBOARD,
                {
                    "user": connection.identity.summary(),
                    "whiteboardId": str(whiteboard_id),
                },
                exclude=connection,
            )

    async def leave_whiteboard(self, connection: Connection, payload: WhiteboardPayload) -> None:
        if connection.active_whiteboard_id != payload.whiteboard_id:
            return

        async with self._session_factory() as db:
            await self._leave_whiteboard(db, connection, payload.whiteboard_id)

    async def add_element(self, connection: Connection, payload: ElementAddPayload) -> None:
        self._require_whiteboard(connection, payload.whiteboard_id)

        async with self._session_factory() as db:
            await self._editable_whiteboard(db, payload.whiteboard_id)
            element = await whiteboard_service.add_element(
                db,
                payload.whiteboard_id,
                payload.element,
                connection.user_id,
            )
            if element is None:
                raise ConflictError(f"Element id {payload.element.id} already exists")
            element_data = ElementResponse.model_validate(element).to_wire()

        data = {
            "element": element_data,
            "user": connection.identity.summary(),
            "whiteboardId": str(payload.whiteboard_id),
        }
        room_id = get_whiteboard_room(payload.whiteboard_id)

        # A server-generated id is news to the sender as well
        if payload.element.id is None:
            await self._registry.broadcast_all(
                room_id, OutboundEvent.WHITEBOARD_ELEMENT_ADDED, data
            )
        else:
            await self._registry.broadcast(
                room_id, OutboundEvent.WHITEBOARD_ELEMENT_ADDED, data, exclude=connection
            )

    async def update_element(self, connection: Connection, payload: ElementUpdatePayload) -> None:
        self._require_whiteboard(connection, payload.whiteboard_id)

        async with self._session_factory() as db:
            await self._editable_whiteboard(db, payload.whiteboard_id)
            element = await whiteboard_service.update_element(
                db,
                payload.whiteboard_id,
                payload.element_id,
                payload.updates,
                connection.user_id,
            )
            if element is None:
                raise ResourceNotFoundError(f"Element {payload.element_id} not found")
            element_data = ElementResponse.model_validate(element).to_wire()

        await self._registry.broadcast(
            get_whiteboard_room(payload.whiteboard_id),
            OutboundEvent.WHITEBOARD_ELEMENT_UPDATED,
            {
                "elementId": payload.element_id,
                "updates": payload.updates.model_dump(
                    mode="json", by_alias=True, exclude_unset=True
                ),
                "element": element_data,
                "user": connection.identity.summary(),
                "whiteboardId": str(payload.whiteboard_id),
            },
            exclude=connection,
        )

    async def remove_element(self, connection: Connection, payload: ElementRemovePayload) -> None:
        self._require_whiteboard(connection, payload.whiteboard_id)

        async with self._session_factory() as db:
            await self._editable_whiteboard(db, payload.whiteboard_id)
            removed = await whiteboard_service.remove_element(
                db,
                payload.whiteboard_id,
                payload.element_id,
            )
        if not removed:
            raise ResourceNotFoundError(f"Element {payload.element_id} not found")

        await self._registry.broadcast(
            get_whiteboard_room(payload.whiteboard_id),
            OutboundEvent.WHITEBOARD_ELEMENT_REMOVED,
            {
                "elementId": payload.element_id,
                "user": connection.identity.summary(),
                "whiteboardId": str(payload.whiteboard_id),
            },
            exclude=connection,
        )

    async def update_cursor(self, connection: Connection, payload: CursorUpdatePayload) -> None:
        self._require_whiteboard(connection, payload.whiteboard_id)

        async with self._session_factory() as db:
            await whiteboard_service.upsert_cursor(
                db,
                payload.whiteboard_id,
                connection.user_id,
                payload.cursor.x,
                payload.cursor.y,
            )

        await self._registry.broadcast(
            get_whiteboard_room(payload.whiteboard_id),
            OutboundEvent.WHITEBOARD_CURSOR_UPDATED,
            {
                "user": connection.identity.summary(),
                "cursor": {"x": payload.cursor.x, "y": payload.cursor.y},
                "whiteboardId": str(payload.whiteboard_id),
            },
            exclude=connection,
        )

    # =========================================================================
    # Chat
    # =========================================================================

    async def _leave_chat(
        self,
        db: AsyncSession,
        connection: Connection,
        chat_id: UUID,
    ) -> None:
        await chat_service.set_typing(db, chat_id, connection.user_id, False)
        room_id = get_chat_room(chat_id)
        self._registry.leave_room(connection, room_id)
        connection.active_chat_id = None

        await self._registry.broadcast(
            room_id,
            OutboundEvent.USER_TYPING,
            {
                "user": connection.identity.summary(),
                "chatId": str(chat_id),
                "isTyping": False,
            },
            exclude=connection,
        )

    async def join_chat(self, connection: Connection, payload: ChatPayload) -> None:
        chat_id = payload.chat_id

        async with self._session_factory() as db:
            history = await chat_service.get_chat_history(db, chat_id)
            if history is None:
                raise ResourceNotFoundError("Chat not found")

            previous = connection.active_chat_id
            if previous is not None and previous != chat_id:
                await self._leave_chat(db, connection, previous)

        room_id = get_chat_room(chat_id)
        newly_joined = self._registry.join_room(connection, room_id)
        connection.active_chat_id = chat_id

        await self._registry.send_personal(
            connection,
            OutboundEvent.CHAT_HISTORY,
            history.to_wire(),
        )

        if newly_joined:
            logger.info(f"User {connection.identity.username} joined chat {chat_id}")
            await self._registry.broadcast(
                room_id,
                OutboundEvent.USER_JOINED_CHAT,
                {
                    "user": connection.identity.summary(),
                    "chatId": str(chat_id),
                },
                exclude=connection,
            )

    async def leave_chat(self, connection: Connection, payload: ChatPayload) -> None:
        if connection.active_chat_id != payload.chat_id:
            return

        async with self._session_factory() as db:
            await self._leave_chat(db, connection, payload.chat_id)

    async def send_message(self, connection: Connection, payload: ChatMessagePayload) -> None:
        self._require_chat(connection, payload.chat_id)

        async with self._session_factory() as db:
            chat = await self._load_chat(db, payload.chat_id)
            if chat.is_archived:
                raise PermissionDeniedError("Chat is archived")

            mentions = payload.mentions if chat.settings.get("allowMentions", True) else []
            message = await chat_service.add_message(
                db,
                payload.chat_id,
                connection.user_id,
                payload.content,
                message_type=payload.type,
                attachments=payload.attachments,
                mentions=mentions,
            )
            message_data = MessageResponse.model_validate(message).to_wire()

        # The sender needs the server-assigned id and timestamp too
        await self._registry.broadcast_all(
            get_chat_room(payload.chat_id),
            OutboundEvent.CHAT_MESSAGE_RECEIVED,
            {"message": message_data},
        )

    async def edit_message(self, connection: Connection, payload: MessageEditPayload) -> None:
        self._require_chat(connection, payload.chat_id)

        async with self._session_factory() as db:
            chat = await self._load_chat(db, payload.chat_id)
            if not chat.settings.get("allowEditing", True):
                raise PermissionDeniedError("Editing is disabled in this chat")

            message = await self._live_message(db, payload.chat_id, payload.message_id)
            self._require_author_or_admin(connection, message)

            updated = await chat_service.edit_message(
                db, payload.chat_id, payload.message_id, payload.content
            )
            if updated is None:
                raise ResourceNotFoundError("Message not found")
            message_data = MessageResponse.model_validate(updated).to_wire()

        await self._registry.broadcast_all(
            get_chat_room(payload.chat_id),
            OutboundEvent.CHAT_MESSAGE_UPDATED,
            {"message": message_data},
        )

    async def delete_message(self, connection: Connection, payload: MessageRefPayload) -> None:
        self._require_chat(connection, payload.chat_id)

        async with self._session_factory() as db:
            chat = await self._load_chat(db, payload.chat_id)
            if not chat.settings.get("allowDeletion", True):
                raise PermissionDeniedError("Deletion is disabled in this chat")

            message = await self._live_message(db, payload.chat_id, payload.message_id)
            self._require_author_or_admin(connection, message)

            deleted = await chat_service.delete_message(
                db, payload.chat_id, payload.message_id, connection.user_id
            )
            deleted_at = deleted.deleted_at

        await self._registry.broadcast_all(
            get_chat_room(payload.chat_id),
            OutboundEvent.CHAT_MESSAGE_DELETED,
            {
                "messageId": payload.message_id,
                "user": connection.identity.summary(),
                "deletedAt": deleted_at.isoformat(),
            },
        )

    async def _broadcast_reactions(
        self,
        db: AsyncSession,
        connection: Connection,
        payload: ReactionPayload,
        action: str,
    ) -> None:
        message = await chat_service.get_message(db, payload.chat_id, payload.message_id)
        reactions = [ReactionResponse.model_validate(r).to_wire() for r in message.reactions]

        await self._registry.broadcast_all(
            get_chat_room(payload.chat_id),
            OutboundEvent.CHAT_REACTION_UPDATED,
            {
                "messageId": payload.message_id,
                "reactions": reactions,
                "emoji": payload.emoji,
                "action": action,
                "user": connection.identity.summary(),
            },
        )

    async def add_reaction(self, connection: Connection, payload: ReactionPayload) -> None:
        self._require_chat(connection, payload.chat_id)

        async with self._session_factory() as db:
            chat = await self._load_chat(db, payload.chat_id)
            if not chat.settings.get("allowReactions", True):
                raise PermissionDeniedError("Reactions are disabled in this chat")

            message = await self._live_message(db, payload.chat_id, payload.message_id)
            added = await chat_service.add_reaction(
                db, message, connection.user_id, payload.emoji
            )
            if added:
                await self._broadcast_reactions(db, connection, payload, "added")

    async def remove_reaction(self, connection: Connection, payload: ReactionPayload) -> None:
        self._require_chat(connection, payload.chat_id)

        async with self._session_factory() as db:
            message = await self._live_message(db, payload.chat_id, payload.message_id)
            removed = await chat_service.remove_reaction(
                db, message, connection.user_id, payload.emoji
            )
            if removed:
                await self._broadcast_reactions(db, connection, payload, "removed")

    async def _set_pinned(
        self,
        connection: Connection,
        payload: MessageRefPayload,
        pinned: bool,
    ) -> None:
        self._require_chat(connection, payload.chat_id)

        async with self._session_factory() as db:
            message = await self._live_message(db, payload.chat_id, payload.message_id)
            if pinned and message.pinned_by is not None:
                raise ConflictError("Message is already pinned")
            if not pinned and message.pinned_by is None:
                raise ConflictError("Message is not pinned")

            message = await chat_service.set_pinned(
                db, message, connection.user_id if pinned else None
            )
            pinned_at: Optional[str] = (
                message.pinned_at.isoformat() if message.pinned_at else None
            )

        await self._registry.broadcast_all(
            get_chat_room(payload.chat_id),
            OutboundEvent.CHAT_MESSAGE_PINNED,
            {
                "messageId": payload.message_id,
                "pinned": pinned,
                "user": connection.identity.summary(),
                "pinnedAt": pinned_at,
            },
        )

    async def pin_message(self, connection: Connection, payload: MessageRefPayload) -> None:
        await self._set_pinned(connection, payload, True)

    async def unpin_message(self, connection: Connection, payload: MessageRefPayload) -> None:
        await self._set_pinned(connection, payload, False)

    async def _set_typing(
        self,
        connection: Connection,
        payload: ChatPayload,
        is_typing: bool,
    ) -> None:
        self._require_chat(connection, payload.chat_id)

        async with self._session_factory() as db:
            await chat_service.set_typing(db, payload.chat_id, connection.user_id, is_typing)

        await self._registry.broadcast(
            get_chat_room(payload.chat_id),
            OutboundEvent.USER_TYPING,
            {
                "user": connection.identity.summary(),
                "chatId": str(payload.chat_id),
                "isTyping": is_typing,
            },
            exclude=connection,
        )

    async def typing_start(self, connection: Connection, payload: ChatPayload) -> None:
        await self._set_typing(connection, payload, True)

    async def typing_stop(self, connection: Connection, payload: ChatPayload) -> None:
        await self._set_typing(connection, payload, False)

    async def mark_read(self, connection: Connection, payload: MessageReadPayload) -> None:
        self._require_chat(connection, payload.chat_id)

        async with self._session_factory() as db:
            read_at = await chat_service.mark_read(
                db, payload.chat_id, connection.user_id, payload.message_id
            )
        if read_at is None:
            raise ResourceNotFoundError("Message not found")

        await self._registry.broadcast(
            get_chat_room(payload.chat_id),
            OutboundEvent.MESSAGE_READ,
            {
                "messageId": payload.message_id,
                "chatId": str(payload.chat_id),
                "user": connection.identity.summary(),
                "readAt": read_at.isoformat(),
            },
            exclude=connection,
        )

    # =========================================================================
    # Keepalive
    # =========================================================================

    async def ping(self, connection: Connection, payload: EmptyPayload) -> None:
        await self._registry.send_personal(
            connection,
            OutboundEvent.PONG,
            {"timestamp": timestamp()},
        )


Handler = Callable[[EventRouter, Connection, Any], Awaitable[None]]

DISPATCH: dict[InboundEvent, Handler] = {
    InboundEvent.JOIN_PROJECT: EventRouter.join_project,
    InboundEvent.LEAVE_PROJECT: EventRouter.leave_project,
    InboundEvent.JOIN_WHITEBOARD: EventRouter.join_whiteboard,
    InboundEvent.LEAVE_WHITEBOARD: EventRouter.leave_whiteboard,
    InboundEvent.WHITEBOARD_ELEMENT_ADD: EventRouter.add_element,
    InboundEvent.WHITEBOARD_ELEMENT_UPDATE: EventRouter.update_element,
    InboundEvent.WHITEBOARD_ELEMENT_REMOVE: EventRouter.remove_element,
    InboundEvent.WHITEBOARD_CURSOR_UPDATE: EventRouter.update_cursor,
    InboundEvent.JOIN_CHAT: EventRouter.join_chat,
    InboundEvent.LEAVE_CHAT: EventRouter.leave_chat,
    InboundEvent.CHAT_MESSAGE: EventRouter.send_message,
    InboundEvent.CHAT_MESSAGE_EDIT: EventRouter.edit_message,
    InboundEvent.CHAT_MESSAGE_DELETE: EventRouter.delete_message,
    InboundEvent.CHAT_REACTION_ADD: EventRouter.add_reaction,
    InboundEvent.CHAT_REACTION_REMOVE: EventRouter.remove_reaction,
    InboundEvent.CHAT_MESSAGE_PIN: EventRouter.pin_message,
    InboundEvent.CHAT_MESSAGE_UNPIN: EventRouter.unpin_message,
    InboundEvent.CHAT_TYPING_START: EventRouter.typing_start,
    InboundEvent.CHAT_TYPING_STOP: EventRouter.typing_stop,
    InboundEvent.CHAT_MESSAGE_READ: EventRouter.mark_read,
    InboundEvent.USER_PRESENCE_UPDATE: EventRouter.presence_update,
    InboundEvent.PING: EventRouter.ping,
}

# Used in the generic "Failed to ..." message for unexpected errors
FAILURE_ACTIONS: dict[InboundEvent, str] = {
    InboundEvent.JOIN_PROJECT: "join project",
    InboundEvent.LEAVE_PROJECT: "leave project",
    InboundEvent.JOIN_WHITEBOARD: "join whiteboard",
    InboundEvent.LEAVE_WHITEBOARD: "leave whiteboard",
    InboundEvent.WHITEBOARD_ELEMENT_ADD: "add element",
    InboundEvent.WHITEBOARD_ELEMENT_UPDATE: "update element",
    InboundEvent.WHITEBOARD_ELEMENT_REMOVE: "remove element",
    InboundEvent.WHITEBOARD_CURSOR_UPDATE: "update cursor",
    InboundEvent.JOIN_CHAT: "join chat",
    InboundEvent.LEAVE_CHAT: "leave chat",
    InboundEvent.CHAT_MESSAGE: "send message",
    InboundEvent.CHAT_MESSAGE_EDIT: "edit message",
    InboundEvent.CHAT_MESSAGE_DELETE: "delete message",
    InboundEvent.CHAT_REACTION_ADD: "add reaction",
    InboundEvent.CHAT_REACTION_REMOVE: "remove reaction",
    InboundEvent.CHAT_MESSAGE_PIN: "pin message",
    InboundEvent.CHAT_MESSAGE_UNPIN: "unpin message",
    InboundEvent.CHAT_TYPING_START: "update typing status",
    InboundEvent.CHAT_TYPING_STOP: "update typing status",
    InboundEvent.CHAT_MESSAGE_READ: "mark message as read",
    InboundEvent.USER_PRESENCE_UPDATE: "update presence",
    InboundEvent.PING: "respond to ping",
}

for _table_name, _table in (("DISPATCH", DISPATCH), ("FAILURE_ACTIONS", FAILURE_ACTIONS)):
    _missing = set(InboundEvent) - set(_table)
    if _missing:
        raise RuntimeError(
            f"{_table_name} has no entry for: {sorted(e.value for e in _missing)}"
        )
