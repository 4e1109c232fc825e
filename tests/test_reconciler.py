"""Tests for cleanup after a WebSocket disconnects."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from collabhub.models import Chat, User, Whiteboard
from collabhub.models.chat import ChatParticipant
from collabhub.models.whiteboard import WhiteboardCollaborator
from collabhub.websocket.handlers import get_project_room, get_whiteboard_room


async def join_everything(router, connection, project_id, whiteboard: Whiteboard, chat: Chat):
    await router.route(
        connection, {"type": "join-project", "data": {"projectId": str(project_id)}}
    )
    await router.route(
        connection, {"type": "join-whiteboard", "data": {"whiteboardId": str(whiteboard.id)}}
    )
    await router.route(connection, {"type": "join-chat", "data": {"chatId": str(chat.id)}})


class TestDisconnectReconciler:
    """Tests for DisconnectReconciler.handle_disconnect."""

    @pytest.mark.asyncio
    async def test_unknown_websocket(self, reconciler):
        """Test that an unregistered socket is ignored."""
        assert await reconciler.handle_disconnect(AsyncMock()) is None

    @pytest.mark.asyncio
    async def test_remaining_members_are_notified(
        self,
        router,
        reconciler,
        open_connection,
        sent,
        reset_sent,
        test_user: User,
        test_user_2: User,
        test_whiteboard: Whiteboard,
        test_chat: Chat,
        project_id,
    ):
        """Test that each room the departed user was in hears about it exactly once."""
        alice = await open_connection(test_user)
        bob = await open_connection(test_user_2)
        for conn in (alice, bob):
            await join_everything(router, conn, project_id, test_whiteboard, test_chat)
        reset_sent(alice, bob)

        await reconciler.handle_disconnect(alice.websocket)

        assert [m["type"] for m in sent(bob)] == [
            "user-left-whiteboard",
            "user-typing",
            "user-left-project",
        ]
        assert sent(bob, "user-typing")[0]["data"]["isTyping"] is False
        assert sent(bob, "user-left-project")[0]["data"]["projectId"] == str(project_id)

    @pytest.mark.asyncio
    async def test_nothing_sent_to_departed_client(
        self,
        router,
        reconciler,
        open_connection,
        sent,
        reset_sent,
        test_user: User,
        test_whiteboard: Whiteboard,
        test_chat: Chat,
        project_id,
    ):
        """Test that the closed socket receives no events."""
        alice = await open_connection(test_user)
        await join_everything(router, alice, project_id, test_whiteboard, test_chat)
        reset_sent(alice)

        await reconciler.handle_disconnect(alice.websocket)

        assert sent(alice) == []

    @pytest.mark.asyncio
    async def test_connection_unregistered(
        self,
        router,
        registry,
        reconciler,
        open_connection,
        test_user: User,
        test_whiteboard: Whiteboard,
        test_chat: Chat,
        project_id,
    ):
        """Test that the connection leaves the registry and every room."""
        alice = await open_connection(test_user)
        await join_everything(router, alice, project_id, test_whiteboard, test_chat)

        removed = await reconciler.handle_disconnect(alice.websocket)

        assert removed is alice
        assert registry.get_connection(alice.websocket) is None
        assert registry.total_connections == 0
        assert registry.get_room_count(get_project_room(project_id)) == 0
        assert registry.get_room_count(get_whiteboard_room(test_whiteboard.id)) == 0

    @pytest.mark.asyncio
    async def test_presence_and_typing_cleared(
        self,
        router,
        reconciler,
        session_factory,
        open_connection,
        test_user: User,
        test_whiteboard: Whiteboard,
        test_chat: Chat,
        project_id,
    ):
        """Test that the cursor entry is gone and the typing flag reset."""
        alice = await open_connection(test_user)
        await join_everything(router, alice, project_id, test_whiteboard, test_chat)
        await router.route(
            alice, {"type": "chat-typing-start", "data": {"chatId": str(test_chat.id)}}
        )

        await reconciler.handle_disconnect(alice.websocket)

        async with session_factory() as s:
            collaborators = (
                await s.execute(
                    select(WhiteboardCollaborator).where(
                        WhiteboardCollaborator.whiteboard_id == test_whiteboard.id
                    )
                )
            ).scalars().all()
            participant = (
                await s.execute(
                    select(ChatParticipant).where(
                        ChatParticipant.chat_id == test_chat.id,
                        ChatParticipant.user_id == test_user.id,
                    )
                )
            ).scalar_one()

        assert collaborators == []
        assert participant.is_typing is False

    @pytest.mark.asyncio
    async def test_cleanup_failure_does_not_stop_the_rest(
        self,
        router,
        reconciler,
        open_connection,
        sent,
        reset_sent,
        test_user: User,
        test_user_2: User,
        test_whiteboard: Whiteboard,
        test_chat: Chat,
        project_id,
        monkeypatch,
    ):
        """Test that a failing presence cleanup still lets the other rooms be told."""
        from collabhub.services import whiteboard_service

        alice = await open_connection(test_user)
        bob = await open_connection(test_user_2)
        for conn in (alice, bob):
            await join_everything(router, conn, project_id, test_whiteboard, test_chat)
        reset_sent(alice, bob)

        async def boom(*args, **kwargs):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(whiteboard_service, "remove_collaborator", boom)

        await reconciler.handle_disconnect(alice.websocket)

        assert len(sent(bob, "user-left-whiteboard")) == 1
        assert len(sent(bob, "user-typing")) == 1
        assert len(sent(bob, "user-left-project")) == 1

    @pytest.mark.asyncio
    async def test_other_sessions_of_same_user_keep_rooms(
        self,
        router,
        registry,
        reconciler,
        open_connection,
        test_user: User,
        project_id,
    ):
        """Test that closing one tab leaves the user's other connection in place."""
        first = await open_connection(test_user)
        second = await open_connection(test_user)
        for conn in (first, second):
            await router.route(
                conn, {"type": "join-project", "data": {"projectId": str(project_id)}}
            )

        await reconciler.handle_disconnect(first.websocket)

        assert registry.get_user_connections_count(test_user.id) == 1
        assert registry.get_room_users(get_project_room(project_id)) == [test_user.id]

    @pytest.mark.asyncio
    async def test_members_who_left_are_not_notified(
        self,
        router,
        reconciler,
        open_connection,
        sent,
        reset_sent,
        test_user: User,
        test_user_2: User,
        test_whiteboard: Whiteboard,
        test_chat: Chat,
    ):
        """Test that a member who already left the whiteboard and chat hears nothing."""
        alice = await open_connection(test_user)
        bob = await open_connection(test_user_2)
        for conn in (alice, bob):
            await router.route(
                conn, {"type": "join-whiteboard", "data": {"whiteboardId": str(test_whiteboard.id)}}
            )
            await router.route(conn, {"type": "join-chat", "data": {"chatId": str(test_chat.id)}})
        await router.route(
            bob, {"type": "leave-whiteboard", "data": {"whiteboardId": str(test_whiteboard.id)}}
        )
        await router.route(bob, {"type": "leave-chat", "data": {"chatId": str(test_chat.id)}})
        reset_sent(alice, bob)

        await reconciler.handle_disconnect(alice.websocket)

        assert sent(bob) == []

    @pytest.mark.asyncio
    async def test_whiteboard_presence_kept_while_another_tab_is_open(
        self,
        router,
        reconciler,
        session_factory,
        open_connection,
        sent,
        reset_sent,
        test_user: User,
        test_user_2: User,
        test_whiteboard: Whiteboard,
    ):
        """Test that closing one of two tabs on a board keeps the user's presence."""
        first_tab = await open_connection(test_user)
        second_tab = await open_connection(test_user)
        bob = await open_connection(test_user_2)
        for conn in (bob, first_tab, second_tab):
            await router.route(
                conn, {"type": "join-whiteboard", "data": {"whiteboardId": str(test_whiteboard.id)}}
            )
        reset_sent(bob, second_tab)

        await reconciler.handle_disconnect(first_tab.websocket)

        assert sent(bob, "user-left-whiteboard") == []
        assert sent(second_tab, "user-left-whiteboard") == []
        async with session_factory() as s:
            collaborators = (
                await s.execute(
                    select(WhiteboardCollaborator).where(
                        WhiteboardCollaborator.whiteboard_id == test_whiteboard.id,
                        WhiteboardCollaborator.user_id == test_user.id,
                    )
                )
            ).scalars().all()
        assert len(collaborators) == 1

        await reconciler.handle_disconnect(second_tab.websocket)

        assert len(sent(bob, "user-left-whiteboard")) == 1
