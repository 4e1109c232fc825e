"""Reconnecting WebSocket client for the realtime collaboration endpoint.

Usage:
    client = CollabClient("ws://localhost:8000/ws", token)
    client.on("chat-message-received", handle_message)
    task = asyncio.create_task(client.run())
    await client.join_chat(chat_id)

The client remembers the projects it joined and its current whiteboard and
chat, and re-joins them after every reconnect so the server re-sends their
state.
"""

import asyncio
import inspect
import json
import logging
from collections import defaultdict
from typing import Any, Callable, Optional
from urllib.parse import urlencode

from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed, InvalidStatus

logger = logging.getLogger(__name__)

# Server closes with this code when the token is missing, invalid or expired
AUTH_CLOSE_CODE = 4001
# Handshake statuses that mean the server refused our credentials
AUTH_REFUSED_STATUSES = (401, 403)

Listener = Callable[[dict[str, Any]], Any]


class ClientError(Exception):
    """Base exception for client failures."""


class AuthenticationError(ClientError):
    """The server refused the credentials. Never retried."""


class ReconnectFailedError(ClientError):
    """Every reconnection attempt failed."""


class CollabClient:
    """
    Realtime client with bounded exponential backoff.

    Attributes:
        max_attempts: Consecutive failed connection attempts before giving up
        base_delay: Delay before the first retry, doubled on each retry
        max_delay: Upper bound on the delay between retries
    """

    def __init__(
        self,
        url: str,
        token: str,
        *,
        max_attempts: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 5.0,
        open_timeout: float = 20.0,
    ) -> None:
        self._url = url
        self._token = token
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.open_timeout = open_timeout

        # The server keeps any number of projects but one whiteboard and one chat
        self.active_projects: set[str] = set()
        self.active_whiteboard: Optional[str] = None
        self.active_chat: Optional[str] = None

        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._ws = None
        self._closing = False

    @property
    def url(self) -> str:
        separator = "&" if "?" in self._url else "?"
        return f"{self._url}{separator}{urlencode({'token': self._token})}"

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based)."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    # ========================================================================
    # Connection lifecycle
    # ========================================================================

    async def run(self) -> None:
        """
        Connect and dispatch incoming events until ``close()`` is called.

        Raises:
            AuthenticationError: The server refused the token
            ReconnectFailedError: ``max_attempts`` consecutive attempts failed
        """
        self._closing = False
        failures = 0

        while not self._closing:
            try:
                ws = await connect(self.url, open_timeout=self.open_timeout)
            except InvalidStatus as e:
                if e.response.status_code in AUTH_REFUSED_STATUSES:
                    raise AuthenticationError(
                        f"Handshake refused with HTTP {e.response.status_code}"
                    )
                logger.warning(f"Handshake failed: {e}")
            except (OSError, asyncio.TimeoutError) as e:
                logger.warning(f"Connection attempt failed: {e}")
            else:
                failures = 0
                close_code = await self._session(ws)
                if close_code == AUTH_CLOSE_CODE:
                    raise AuthenticationError("Session closed by server: authentication failed")
                if self._closing:
                    break
                logger.info(f"Connection lost (close code {close_code}), reconnecting")

            failures += 1
            if failures > self.max_attempts:
                raise ReconnectFailedError(
                    f"Gave up after {self.max_attempts} reconnection attempts"
                )
            await asyncio.sleep(self.backoff_delay(failures))

    async def _session(self, ws) -> Optional[int]:
        """Serve one open connection. Returns the close code once it ends."""
        self._ws = ws
        try:
            await self._rejoin()
            async for raw in ws:
                await self._handle_frame(raw)
            return ws.close_code
        except ConnectionClosed as e:
            return e.rcvd.code if e.rcvd is not None else None
        finally:
            self._ws = None

    async def _rejoin(self) -> None:
        for project_id in sorted(self.active_projects):
            await self.emit("join-project", {"projectId": project_id})
        if self.active_whiteboard is not None:
            await self.emit("join-whiteboard", {"whiteboardId": self.active_whiteboard})
        if self.active_chat is not None:
            await self.emit("join-chat", {"chatId": self.active_chat})

    async def close(self) -> None:
        """Stop reconnecting and close the current connection."""
        self._closing = True
        if self._ws is not None:
            await self._ws.close()

    # ========================================================================
    # Incoming events
    # ========================================================================

    def on(self, event: str, callback: Listener) -> None:
        """Register ``callback`` for a server event. Coroutine functions are awaited."""
        self._listeners[event].append(callback)

    def off(self, event: str, callback: Listener) -> None:
        try:
            self._listeners[event].remove(callback)
        except ValueError:
            pass

    async def _handle_frame(self, raw) -> None:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring non-JSON frame from server")
            return

        event = message.get("type")
        data = message.get("data") or {}

        # Keepalive: any frame resets the server's receive timeout
        if event == "ping":
            await self.emit("ping")

        for callback in list(self._listeners.get(event, ())):
            try:
                result = callback(data)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Listener for {event} failed")

    # ========================================================================
    # Outgoing events
    # ========================================================================

    async def emit(self, event: str, data: Optional[dict[str, Any]] = None) -> bool:
        """Send an event. Returns False when not connected or the send fails."""
        if self._ws is None:
            return False
        try:
            await self._ws.send(json.dumps({"type": event, "data": data or {}}))
            return True
        except ConnectionClosed:
            return False

    async def join_project(self, project_id: str) -> bool:
        sent = await self.emit("join-project", {"projectId": str(project_id)})
        if sent:
            self.active_projects.add(str(project_id))
        return sent

    async def leave_project(self, project_id: str) -> bool:
        self.active_projects.discard(str(project_id))
        return await self.emit("leave-project", {"projectId": str(project_id)})

    async def join_whiteboard(self, whiteboard_id: str) -> bool:
        sent = await self.emit("join-whiteboard", {"whiteboardId": str(whiteboard_id)})
        if sent:
            self.active_whiteboard = str(whiteboard_id)
        return sent

    async def leave_whiteboard(self, whiteboard_id: str) -> bool:
        if self.active_whiteboard == str(whiteboard_id):
            self.active_whiteboard = None
        return await self.emit("leave-whiteboard", {"whiteboardId": str(whiteboard_id)})

    async def join_chat(self, chat_id: str) -> bool:
        sent = await self.emit("join-chat", {"chatId": str(chat_id)})
        if sent:
            self.active_chat = str(chat_id)
        return sent

    async def leave_chat(self, chat_id: str) -> bool:
        if self.active_chat == str(chat_id):
            self.active_chat = None
        return await self.emit("leave-chat", {"chatId": str(chat_id)})

    async def add_whiteboard_element(self, whiteboard_id: str, element: dict[str, Any]) -> bool:
        return await self.emit(
            "whiteboard-element-add",
            {"whiteboardId": str(whiteboard_id), "element": element},
        )

    async def update_whiteboard_element(
        self, whiteboard_id: str, element_id: str, updates: dict[str, Any]
    ) -> bool:
        return await self.emit(
            "whiteboard-element-update",
            {"whiteboardId": str(whiteboard_id), "elementId": element_id, "updates": updates},
        )

    async def remove_whiteboard_element(self, whiteboard_id: str, element_id: str) -> bool:
        return await self.emit(
            "whiteboard-element-remove",
            {"whiteboardId": str(whiteboard_id), "elementId": element_id},
        )

    async def update_whiteboard_cursor(self, whiteboard_id: str, x: float, y: float) -> bool:
        return await self.emit(
            "whiteboard-cursor-update",
            {"whiteboardId": str(whiteboard_id), "cursor": {"x": x, "y": y}},
        )

    async def send_chat_message(
        self,
        chat_id: str,
        content: str,
        message_type: str = "text",
        attachments: Optional[list[dict[str, Any]]] = None,
        mentions: Optional[list[str]] = None,
    ) -> bool:
        return await self.emit(
            "chat-message",
            {
                "chatId": str(chat_id),
                "content": content,
                "type": message_type,
                "attachments": attachments or [],
                "mentions": [str(m) for m in mentions or []],
            },
        )

    async def edit_chat_message(self, chat_id: str, message_id: str, content: str) -> bool:
        return await self.emit(
            "chat-message-edit",
            {"chatId": str(chat_id), "messageId": message_id, "content": content},
        )

    async def delete_chat_message(self, chat_id: str, message_id: str) -> bool:
        return await self.emit(
            "chat-message-delete",
            {"chatId": str(chat_id), "messageId": message_id},
        )

    async def add_reaction(self, chat_id: str, message_id: str, emoji: str) -> bool:
        return await self.emit(
            "chat-reaction-add",
            {"chatId": str(chat_id), "messageId": message_id, "emoji": emoji},
        )

    async def remove_reaction(self, chat_id: str, message_id: str, emoji: str) -> bool:
        return await self.emit(
            "chat-reaction-remove",
            {"chatId": str(chat_id), "messageId": message_id, "emoji": emoji},
        )

    async def pin_message(self, chat_id: str, message_id: str) -> bool:
        return await self.emit(
            "chat-message-pin",
            {"chatId": str(chat_id), "messageId": message_id},
        )

    async def unpin_message(self, chat_id: str, message_id: str) -> bool:
        return await self.emit(
            "chat-message-unpin",
            {"chatId": str(chat_id), "messageId": message_id},
        )

    async def start_typing(self, chat_id: str) -> bool:
        return await self.emit("chat-typing-start", {"chatId": str(chat_id)})

    async def stop_typing(self, chat_id: str) -> bool:
        return await self.emit("chat-typing-stop", {"chatId": str(chat_id)})

    async def mark_message_as_read(self, chat_id: str, message_id: Optional[str] = None) -> bool:
        data: dict[str, Any] = {"chatId": str(chat_id)}
        if message_id is not None:
            data["messageId"] = message_id
        return await self.emit("chat-message-read", data)

    async def update_presence(self, status: str, project_id: str) -> bool:
        return await self.emit(
            "user-presence-update",
            {"status": status, "projectId": str(project_id)},
        )
