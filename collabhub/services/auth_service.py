"""Session authentication for realtime connections.

Tokens are issued by the accounts service; this module only verifies them
and resolves the subject to an active user.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional
from uuid import UUID

from jose import JWTError, jwt
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import settings
from ..models.user import User
from ..schemas.user import UserSummary

logger = logging.getLogger(__name__)


class TokenData(BaseModel):
    """Token payload data schema."""

    user_id: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class Identity:
    """Authenticated user attached to a connection for its whole lifetime."""

    id: UUID
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None
    role: str = "member"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def summary(self) -> dict[str, Any]:
        """Wire form used in every broadcast payload."""
        return UserSummary.model_validate(self).to_wire()

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(
            id=user.id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            avatar=user.avatar_url,
            role=user.role,
        )


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    Used by tests and tooling; production tokens come from the accounts service.

    Args:
        data: Dictionary of claims to encode in the token
        expires_delta: Optional custom expiration time delta

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.jwt_expiration_minutes
        )

    to_encode.update({"exp": expire})

    return jwt.encode(
        to_encode,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> Optional[TokenData]:
    """
    Decode and validate a JWT access token.

    Signature and ``exp`` are both verified.

    Args:
        token: The JWT token string to decode

    Returns:
        TokenData with user information, or None if invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    user_id = payload.get("sub")
    if user_id is None:
        return None

    return TokenData(user_id=user_id, email=payload.get("email"))


def extract_token(
    query_params: Mapping[str, str],
    headers: Mapping[str, str],
) -> Optional[str]:
    """
    Pull the bearer credential out of a WebSocket handshake.

    The ``token`` query parameter wins; otherwise an
    ``Authorization: Bearer <token>`` header is accepted.
    """
    token = query_params.get("token")
    if token:
        return token

    authorization = headers.get("authorization") or ""
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()

    return None


async def get_user_by_id(db: AsyncSession, user_id: UUID) -> Optional[User]:
    """
    Get a user by their ID.

    Args:
        db: Database session
        user_id: User UUID to search for

    Returns:
        User object if found, None otherwise
    """
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


class SessionAuthenticator:
    """
    Verifies handshake credentials against the user store.

    Any failure (missing token, bad signature, expiry, unknown or
    deactivated user) yields ``None`` so the transport can refuse the
    handshake before a connection exists.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def authenticate(self, token: Optional[str]) -> Optional[Identity]:
        if not token:
            return None

        token_data = decode_access_token(token)
        if token_data is None:
            logger.debug("Rejected token: invalid signature, expired or no subject")
            return None

        try:
            user_id = UUID(token_data.user_id)
        except (TypeError, ValueError):
            logger.debug(f"Rejected token: malformed subject {token_data.user_id!r}")
            return None

        async with self._session_factory() as db:
            user = await get_user_by_id(db, user_id)

        if user is None:
            logger.info(f"Rejected token for unknown user {user_id}")
            return None
        if not user.is_active:
            logger.info(f"Rejected token for deactivated user {user_id}")
            return None

        return Identity.from_user(user)
