"""Pydantic schemas for whiteboard documents, elements and collaborators."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import AliasChoices, Field

from .base import InboundModel, WireModel
from .user import UserSummary


class ElementType(str, Enum):
    """Kinds of whiteboard elements."""

    TEXT = "text"
    SHAPE = "shape"
    IMAGE = "image"
    STICKY_NOTE = "sticky-note"
    LINE = "line"
    ARROW = "arrow"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    TRIANGLE = "triangle"
    PEN = "pen"


class Point(InboundModel):
    """A canvas coordinate."""

    x: float = Field(..., description="Horizontal position")
    y: float = Field(..., description="Vertical position")


class Size(InboundModel):
    """Element dimensions."""

    width: float = Field(100, ge=0)
    height: float = Field(100, ge=0)


def _default_style() -> dict[str, Any]:
    return {"opacity": 1}


class ElementCreate(InboundModel):
    """Element as sent by a client in ``whiteboard-element-add``.

    ``id`` is optional; the server generates one when it is omitted.
    """

    id: Optional[str] = Field(
        None,
        min_length=1,
        max_length=100,
        description="Client-generated element id, unique within the whiteboard",
    )
    type: ElementType
    position: Point
    size: Size = Field(default_factory=Size)
    content: Optional[Any] = None
    style: dict[str, Any] = Field(default_factory=_default_style)
    rotation: float = 0
    z_index: int = 0
    points: Optional[list[Any]] = None


class ElementUpdate(InboundModel):
    """Partial element update; only fields present on the wire are applied."""

    type: Optional[ElementType] = None
    position: Optional[Point] = None
    size: Optional[Size] = None
    content: Optional[Any] = None
    style: Optional[dict[str, Any]] = None
    rotation: Optional[float] = None
    z_index: Optional[int] = None
    points: Optional[list[Any]] = None


class ElementResponse(WireModel):
    """Element as broadcast to room members."""

    id: str = Field(
        ...,
        validation_alias=AliasChoices("element_id", "id"),
    )
    type: str
    position: dict[str, Any]
    size: dict[str, Any]
    content: Optional[Any] = None
    style: Optional[dict[str, Any]] = None
    rotation: float = 0
    z_index: int = 0
    points: Optional[list[Any]] = None
    created_by: Optional[UUID] = None
    updated_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WhiteboardResponse(WireModel):
    """Whiteboard document metadata (elements are sent alongside)."""

    id: UUID
    project_id: UUID
    name: str
    description: Optional[str] = None
    created_by: Optional[UUID] = None
    canvas: dict[str, Any]
    settings: dict[str, Any]
    version: int
    is_archived: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CollaboratorResponse(WireModel):
    """Presence entry of one user on a whiteboard."""

    user: UserSummary
    cursor: Point
    last_active: datetime


class WhiteboardState(WireModel):
    """Payload of ``whiteboard-state``: the full document plus presence."""

    whiteboard: WhiteboardResponse
    elements: list[ElementResponse]
    collaborators: list[CollaboratorResponse]
