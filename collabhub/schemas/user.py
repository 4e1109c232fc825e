"""Pydantic schemas for user summaries carried in realtime payloads."""

from typing import Optional
from uuid import UUID

from pydantic import AliasChoices, Field

from .base import WireModel


class UserSummary(WireModel):
    """
    Public view of a user attached to broadcast payloads.

    Serialized as ``{id, username, firstName, lastName, avatar}``.
    Built from a ``User`` row or an authenticated ``Identity``.
    """

    id: UUID = Field(
        ...,
        description="Unique user identifier",
    )
    username: str = Field(
        ...,
        description="Public handle",
        examples=["jdoe"],
    )
    first_name: Optional[str] = Field(
        None,
        description="Given name",
    )
    last_name: Optional[str] = Field(
        None,
        description="Family name",
    )
    avatar: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("avatar", "avatar_url"),
        description="URL to user's avatar image",
    )
