"""FastAPI application entry point for the realtime collaboration service."""

import asyncio
import json
import logging
import traceback
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Annotated, Optional
from uuid import UUID

from fastapi import (
    Depends,
    FastAPI,
    HTTPException,
    Query,
    Request,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.requests import HTTPConnection

from .config import settings
from .database import async_session_maker, warmup_connection_pool
from .services import whiteboard_service
from .services.auth_service import Identity, SessionAuthenticator, extract_token
from .services.redis_service import RedisService
from .websocket.events import OutboundEvent
from .websocket.handlers import EventRouter
from .websocket.manager import ConnectionManager
from .websocket.reconciler import DisconnectReconciler

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@dataclass
class RealtimeHub:
    """Everything the WebSocket endpoint needs, built once per application."""

    registry: ConnectionManager
    router: EventRouter
    authenticator: SessionAuthenticator
    reconciler: DisconnectReconciler
    session_factory: async_sessionmaker[AsyncSession]
    redis: Optional[RedisService] = None


def create_hub(
    session_factory: async_sessionmaker[AsyncSession],
    redis: Optional[RedisService] = None,
) -> RealtimeHub:
    registry = ConnectionManager()
    return RealtimeHub(
        registry=registry,
        router=EventRouter(registry, session_factory),
        authenticator=SessionAuthenticator(session_factory),
        reconciler=DisconnectReconciler(registry, session_factory),
        session_factory=session_factory,
        redis=redis,
    )


def get_realtime(connection: HTTPConnection) -> RealtimeHub:
    """FastAPI dependency returning the application's realtime hub."""
    return connection.app.state.realtime


async def _connect_redis() -> Optional[RedisService]:
    if not settings.redis_enabled:
        logger.info("Redis disabled, running in single-worker mode")
        return None

    redis = RedisService(settings)
    try:
        await redis.connect()
    except Exception as e:
        if settings.redis_required:
            logger.error(f"Redis connection failed and REDIS_REQUIRED=true: {e}")
            raise RuntimeError(
                f"Redis is required for multi-worker deployment but connection failed: {e}"
            )
        logger.warning(f"Redis connection failed, running in single-worker mode: {e}")
        return None
    return redis


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown tasks."""
    # Startup
    logger.info("Warming up database connection pool...")
    await warmup_connection_pool()
    logger.info("Database connection pool ready")

    redis = await _connect_redis()
    hub = create_hub(async_session_maker, redis)

    if redis is not None:
        logger.info("Initializing WebSocket manager with Redis...")
        await hub.registry.initialize_redis(redis)
        await redis.start_listening()

    app.state.realtime = hub

    yield

    # Shutdown
    if redis is not None:
        logger.info("Disconnecting from Redis...")
        await redis.disconnect()


# Create FastAPI application
app = FastAPI(
    title="CollabHub Realtime",
    description="Realtime collaboration for project rooms, whiteboards and chats",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Database pool exhaustion handler - return 503 so clients can retry
@app.exception_handler(SQLAlchemyTimeoutError)
async def db_pool_exhausted_handler(request: Request, exc: SQLAlchemyTimeoutError):
    """Handle database connection pool exhaustion with 503 Service Unavailable."""
    logger.warning(
        f"Database pool exhausted on {request.method} {request.url}: {exc}"
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "detail": "Service temporarily unavailable. Please retry.",
            "retry_after": 5,
        },
        headers={"Retry-After": "5"},
    )


# Global exception handler to log errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log all unhandled exceptions with full traceback."""
    logger.error(f"Unhandled exception on {request.method} {request.url}:")
    logger.error(f"Exception type: {type(exc).__name__}")
    logger.error(f"Traceback:\n{traceback.format_exc()}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.get("/")
async def root():
    """Root endpoint - liveness check."""
    return {
        "status": "healthy",
        "service": "CollabHub Realtime",
        "version": "1.0.0",
    }


@app.get("/health")
async def health_check(hub: RealtimeHub = Depends(get_realtime)):
    """Health check endpoint for monitoring."""
    redis_health = (
        await hub.redis.health_check() if hub.redis is not None else {"status": "disabled"}
    )
    return {
        "status": "healthy",
        "redis": redis_health,
        "websocket": {
            "connections": hub.registry.total_connections,
            "rooms": hub.registry.total_rooms,
        },
    }


async def get_current_identity(
    request: Request,
    hub: RealtimeHub = Depends(get_realtime),
) -> Identity:
    """
    Authenticate an HTTP request with the same credentials as the WebSocket.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    identity = await hub.authenticator.authenticate(
        extract_token(request.query_params, request.headers)
    )
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


@app.get(
    "/whiteboards/{whiteboard_id}/export",
    summary="Export a whiteboard",
    responses={
        200: {"description": "Whiteboard document with its elements"},
        400: {"description": "Unsupported export format"},
        401: {"description": "Not authenticated"},
        404: {"description": "Whiteboard not found"},
    },
)
async def export_whiteboard_document(
    whiteboard_id: UUID,
    current_identity: Annotated[Identity, Depends(get_current_identity)],
    hub: RealtimeHub = Depends(get_realtime),
    export_format: str = Query("json", alias="format", description="Export format"),
):
    """Download a whiteboard's canvas and elements."""
    async with hub.session_factory() as db:
        try:
            document = await whiteboard_service.export_whiteboard(
                db, whiteboard_id, export_format
            )
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if document is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Whiteboard not found",
        )

    logger.info(f"Whiteboard {whiteboard_id} exported by user {current_identity.id}")
    return document


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, hub: RealtimeHub = Depends(get_realtime)):
    """
    WebSocket endpoint for realtime collaboration.

    The bearer token is read from the ``token`` query parameter or an
    ``Authorization: Bearer`` header. Browsers cannot set headers on the
    handshake, so the query parameter is the usual route.

    Usage:
        ws://localhost:8000/ws?token=<jwt_token>
    """
    token = extract_token(websocket.query_params, websocket.headers)

    try:
        identity = await hub.authenticator.authenticate(token)
    except Exception:
        logger.exception("WebSocket authentication failed unexpectedly")
        # Closing before accept would surface as a handshake 403
        await websocket.accept()
        await websocket.close(code=1011, reason="Authentication unavailable")
        return

    # Refuse before accept: the client sees a failed handshake
    if identity is None:
        logger.info("WebSocket handshake refused: invalid or missing credentials")
        await websocket.close(code=4001, reason="Authentication failed")
        return

    connection = await hub.registry.connect(websocket, identity)
    if connection is None:
        return  # Connection rejected (DDoS protection)

    user_id = identity.id
    loop = asyncio.get_running_loop()

    # Rate limiting state
    message_timestamps: list[float] = []

    # Token validity tracking
    token_valid = True
    last_token_check = loop.time()

    async def server_ping_task():
        """Background task to send periodic pings and re-validate the token."""
        nonlocal token_valid, last_token_check
        try:
            while True:
                await asyncio.sleep(settings.ws_ping_interval)
                try:
                    await hub.registry.send_personal(connection, OutboundEvent.PING)

                    current_time = loop.time()
                    if current_time - last_token_check > settings.ws_token_revalidation_interval:
                        if await hub.authenticator.authenticate(token) is None:
                            logger.warning(f"Token expired for user {user_id}, closing connection")
                            token_valid = False
                            await hub.router.send_error(
                                connection,
                                "TOKEN_EXPIRED",
                                "Session expired, please re-authenticate",
                            )
                            await websocket.close(code=4001, reason="Token expired")
                            break
                        last_token_check = current_time

                except Exception:
                    break  # Connection is dead, exit task
        except asyncio.CancelledError:
            pass

    ping_task = asyncio.create_task(server_ping_task())

    try:
        while token_valid:
            # Receive with timeout to detect stale connections
            try:
                raw_message = await asyncio.wait_for(
                    websocket.receive_text(),
                    timeout=settings.ws_receive_timeout,
                )
            except asyncio.TimeoutError:
                # No message received within timeout - send ping to verify
                try:
                    await hub.registry.send_personal(connection, OutboundEvent.PING)
                    raw_message = await asyncio.wait_for(
                        websocket.receive_text(),
                        timeout=10,
                    )
                except (asyncio.TimeoutError, Exception):
                    logger.info(f"Connection timeout for user: {user_id}")
                    break

            # Rate limiting check
            current_time = loop.time()
            message_timestamps[:] = [
                t for t in message_timestamps
                if current_time - t < settings.ws_rate_limit_window
            ]

            if len(message_timestamps) >= settings.ws_rate_limit_messages:
                logger.warning(f"Rate limit exceeded for user {user_id}")
                await hub.router.send_error(
                    connection, "RATE_LIMIT", "Too many messages, slow down"
                )
                continue

            message_timestamps.append(current_time)

            if len(raw_message) > settings.ws_max_message_size:
                logger.warning(
                    f"Message too large from user {user_id}: "
                    f"{len(raw_message)} bytes (max: {settings.ws_max_message_size})"
                )
                await hub.router.send_error(
                    connection,
                    "MESSAGE_TOO_LARGE",
                    f"Message exceeds maximum size of {settings.ws_max_message_size} bytes",
                )
                continue

            try:
                data = json.loads(raw_message)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON from user {user_id}")
                await hub.router.send_error(connection, "INVALID_JSON", "Invalid JSON format")
                continue

            await hub.router.route(connection, data)

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnect for user: {user_id}")
    except Exception as e:
        logger.error(f"WebSocket exception for user {user_id}: {e}")
    finally:
        ping_task.cancel()
        try:
            await ping_task
        except asyncio.CancelledError:
            pass
        await hub.reconciler.handle_disconnect(websocket)
