"""Business logic services."""

from . import chat_service, whiteboard_service
from .auth_service import (
    Identity,
    SessionAuthenticator,
    TokenData,
    create_access_token,
    decode_access_token,
    extract_token,
    get_user_by_id,
)
from .redis_service import RedisService

__all__ = [
    # Auth service
    "Identity",
    "SessionAuthenticator",
    "TokenData",
    "create_access_token",
    "decode_access_token",
    "extract_token",
    "get_user_by_id",
    # Storage services
    "chat_service",
    "whiteboard_service",
    # Redis service
    "RedisService",
]
