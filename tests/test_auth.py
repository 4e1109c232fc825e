"""Unit tests for the session authenticator and token helpers."""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.config import settings
from collabhub.models.user import User
from collabhub.services.auth_service import (
    Identity,
    SessionAuthenticator,
    create_access_token,
    decode_access_token,
    extract_token,
    get_user_by_id,
)


class TestTokenFunctions:
    """Tests for JWT token functions."""

    def test_create_access_token_basic(self):
        """Test creating a basic access token."""
        data = {"sub": str(uuid4()), "email": "test@example.com"}
        token = create_access_token(data)

        assert token is not None
        assert isinstance(token, str)
        assert len(token) > 0

    def test_decode_access_token_valid(self):
        """Test decoding a valid access token."""
        user_id = str(uuid4())
        email = "test@example.com"
        token = create_access_token({"sub": user_id, "email": email})

        token_data = decode_access_token(token)

        assert token_data is not None
        assert token_data.user_id == user_id
        assert token_data.email == email

    def test_decode_access_token_invalid(self):
        """Test decoding an invalid token returns None."""
        assert decode_access_token("invalid.token.here") is None

    def test_decode_access_token_expired(self):
        """Test that an expired token is rejected."""
        token = create_access_token(
            {"sub": str(uuid4())}, expires_delta=timedelta(minutes=-5)
        )

        assert decode_access_token(token) is None

    def test_decode_access_token_wrong_secret(self):
        """Test that a token signed with another key is rejected."""
        token = jwt.encode(
            {"sub": str(uuid4())}, "some-other-secret", algorithm=settings.jwt_algorithm
        )

        assert decode_access_token(token) is None

    def test_decode_access_token_missing_sub(self):
        """Test decoding a token without 'sub' claim returns None."""
        token = create_access_token({"email": "test@example.com"})

        assert decode_access_token(token) is None


class TestExtractToken:
    """Tests for reading the credential off the handshake."""

    def test_query_parameter(self):
        """Test that the token query parameter is used."""
        assert extract_token({"token": "abc"}, {}) == "abc"

    def test_bearer_header(self):
        """Test that an Authorization: Bearer header is accepted."""
        assert extract_token({}, {"authorization": "Bearer abc"}) == "abc"

    def test_query_parameter_wins_over_header(self):
        """Test precedence when both are present."""
        assert extract_token({"token": "query"}, {"authorization": "Bearer header"}) == "query"

    def test_non_bearer_scheme_ignored(self):
        """Test that other authorization schemes are not treated as tokens."""
        assert extract_token({}, {"authorization": "Basic dXNlcjpwYXNz"}) is None

    def test_missing(self):
        """Test that no credential yields None."""
        assert extract_token({}, {}) is None


class TestIdentity:
    """Tests for the Identity value object."""

    def test_summary_uses_camel_case(self):
        """Test the wire form of a user summary."""
        identity = Identity(
            id=uuid4(),
            username="alice",
            first_name="Alice",
            last_name="Liddell",
            avatar="https://example.com/a.png",
        )

        assert identity.summary() == {
            "id": str(identity.id),
            "username": "alice",
            "firstName": "Alice",
            "lastName": "Liddell",
            "avatar": "https://example.com/a.png",
        }

    def test_is_admin(self):
        """Test the admin flag follows the role."""
        assert Identity(id=uuid4(), username="root", role="admin").is_admin
        assert not Identity(id=uuid4(), username="alice").is_admin

    @pytest.mark.asyncio
    async def test_from_user(self, test_user: User):
        """Test building an identity from a user row."""
        identity = Identity.from_user(test_user)

        assert identity.id == test_user.id
        assert identity.username == "alice"
        assert identity.first_name == "Alice"
        assert identity.role == "member"


class TestUserFunctions:
    """Tests for user lookup."""

    @pytest.mark.asyncio
    async def test_get_user_by_id_found(self, db: AsyncSession, test_user: User):
        """Test getting user by ID when user exists."""
        user = await get_user_by_id(db, test_user.id)

        assert user is not None
        assert user.id == test_user.id

    @pytest.mark.asyncio
    async def test_get_user_by_id_not_found(self, db: AsyncSession):
        """Test getting user by ID when user doesn't exist."""
        assert await get_user_by_id(db, uuid4()) is None


class TestSessionAuthenticator:
    """Tests for handshake authentication."""

    @pytest.mark.asyncio
    async def test_valid_token(self, session_factory, test_user: User, auth_token: str):
        """Test that a valid token resolves to the user's identity."""
        authenticator = SessionAuthenticator(session_factory)

        identity = await authenticator.authenticate(auth_token)

        assert identity is not None
        assert identity.id == test_user.id
        assert identity.username == test_user.username

    @pytest.mark.asyncio
    async def test_missing_token(self, session_factory):
        """Test that no token is refused."""
        authenticator = SessionAuthenticator(session_factory)

        assert await authenticator.authenticate(None) is None
        assert await authenticator.authenticate("") is None

    @pytest.mark.asyncio
    async def test_invalid_token(self, session_factory):
        """Test that a garbage token is refused."""
        authenticator = SessionAuthenticator(session_factory)

        assert await authenticator.authenticate("not-a-jwt") is None

    @pytest.mark.asyncio
    async def test_expired_token(self, session_factory, test_user: User):
        """Test that an expired token is refused."""
        authenticator = SessionAuthenticator(session_factory)
        token = create_access_token(
            {"sub": str(test_user.id)}, expires_delta=timedelta(seconds=-1)
        )

        assert await authenticator.authenticate(token) is None

    @pytest.mark.asyncio
    async def test_unknown_user(self, session_factory):
        """Test that a well-signed token for a missing user is refused."""
        authenticator = SessionAuthenticator(session_factory)
        token = create_access_token({"sub": str(uuid4())})

        assert await authenticator.authenticate(token) is None

    @pytest.mark.asyncio
    async def test_malformed_subject(self, session_factory):
        """Test that a non-UUID subject is refused."""
        authenticator = SessionAuthenticator(session_factory)
        token = create_access_token({"sub": "alice"})

        assert await authenticator.authenticate(token) is None

    @pytest.mark.asyncio
    async def test_deactivated_user(self, session_factory, inactive_user: User):
        """Test that a deactivated user cannot open a session."""
        authenticator = SessionAuthenticator(session_factory)
        token = create_access_token({"sub": str(inactive_user.id)})

        assert await authenticator.authenticate(token) is None
