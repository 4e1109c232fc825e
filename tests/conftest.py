"""Shared pytest fixtures for realtime tests."""

import os
import sys
from typing import Any, Callable, Optional
from unittest.mock import AsyncMock
from uuid import uuid4

# Settings are read at import time; JWT_SECRET has no default
os.environ.setdefault("JWT_SECRET", "test-secret-key-not-for-production")
os.environ.setdefault("REDIS_ENABLED", "false")

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Add collabhub to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Patch UUID for SQLite BEFORE creating tables
from sqlalchemy.dialects import sqlite


def visit_UUID(self, type_, **kw):
    """Compile UUID as CHAR(32) for SQLite."""
    return "CHAR(32)"


sqlite.base.SQLiteTypeCompiler.visit_UUID = visit_UUID

# Now import collabhub modules after patching
from collabhub.database import Base
from collabhub.models import Chat, User, Whiteboard
from collabhub.services.auth_service import Identity, create_access_token
from collabhub.websocket.handlers import EventRouter
from collabhub.websocket.manager import Connection, ConnectionManager
from collabhub.websocket.reconciler import DisconnectReconciler

# Use in-memory SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    """Create a test database engine with SQLite."""
    engine = create_async_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key support for SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Clean up
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine, configured like production."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


async def _create_user(db: AsyncSession, username: str, **overrides) -> User:
    user = User(
        id=uuid4(),
        email=f"{username}@example.com",
        username=username,
        password_hash="not-a-real-hash",
        first_name=username.capitalize(),
        last_name="Tester",
        **overrides,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def test_user(db: AsyncSession) -> User:
    """Create a test user."""
    return await _create_user(db, "alice")


@pytest_asyncio.fixture
async def test_user_2(db: AsyncSession) -> User:
    """Create a second test user."""
    return await _create_user(db, "bob")


@pytest_asyncio.fixture
async def test_user_3(db: AsyncSession) -> User:
    """Create a third test user."""
    return await _create_user(db, "carol")


@pytest_asyncio.fixture
async def admin_user(db: AsyncSession) -> User:
    """Create an admin user."""
    return await _create_user(db, "root", role="admin")


@pytest_asyncio.fixture
async def inactive_user(db: AsyncSession) -> User:
    """Create a deactivated user."""
    return await _create_user(db, "ghost", is_active=False)


@pytest.fixture
def project_id():
    """Projects live in another service; only their id matters here."""
    return uuid4()


@pytest_asyncio.fixture
async def test_whiteboard(db: AsyncSession, test_user: User, project_id) -> Whiteboard:
    """Create a test whiteboard."""
    whiteboard = Whiteboard(
        id=uuid4(),
        project_id=project_id,
        name="Sprint Planning",
        description="A test whiteboard",
        created_by=test_user.id,
    )
    db.add(whiteboard)
    await db.commit()
    return whiteboard


@pytest_asyncio.fixture
async def test_chat(db: AsyncSession, project_id) -> Chat:
    """Create a test chat."""
    chat = Chat(
        id=uuid4(),
        project_id=project_id,
        name="General",
        type="project",
    )
    db.add(chat)
    await db.commit()
    return chat


@pytest.fixture
def auth_token(test_user: User) -> str:
    """Create an authentication token for the test user."""
    return create_access_token(
        data={"sub": str(test_user.id), "email": test_user.email}
    )


@pytest.fixture
def registry() -> ConnectionManager:
    """A fresh, Redis-less room registry."""
    return ConnectionManager(max_connections_per_user=5)


@pytest.fixture
def router(registry: ConnectionManager, session_factory) -> EventRouter:
    return EventRouter(registry, session_factory)


@pytest.fixture
def reconciler(registry: ConnectionManager, session_factory) -> DisconnectReconciler:
    return DisconnectReconciler(registry, session_factory)


@pytest.fixture
def open_connection(registry: ConnectionManager) -> Callable:
    """Connect a mock WebSocket for a user; the ``connected`` greeting is discarded."""

    async def _open(user: User) -> Connection:
        websocket = AsyncMock()
        connection = await registry.connect(websocket, Identity.from_user(user))
        websocket.send_json.reset_mock()
        return connection

    return _open


@pytest.fixture
def sent() -> Callable:
    """Messages sent to a connection so far, optionally filtered by event type."""

    def _sent(connection: Connection, event_type: Optional[str] = None) -> list[dict[str, Any]]:
        messages = [c.args[0] for c in connection.websocket.send_json.call_args_list]
        if event_type is not None:
            messages = [m for m in messages if m["type"] == event_type]
        return messages

    return _sent


@pytest.fixture
def reset_sent() -> Callable:
    """Forget what was sent to the given connections."""

    def _reset(*connections: Connection) -> None:
        for connection in connections:
            connection.websocket.send_json.reset_mock()

    return _reset
