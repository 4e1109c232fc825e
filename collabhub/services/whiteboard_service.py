"""Whiteboard service for collaborative element editing and presence.

Provides business logic for:
- Loading a whiteboard document with its elements and live collaborators
- Adding, updating and removing elements (last-write-wins per element)
- Tracking collaborator cursors (ephemeral presence)
- Exporting a whiteboard as JSON

Every element mutation bumps the whiteboard ``version`` with a single
atomic UPDATE so concurrent writers never lose an increment.
"""

import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.whiteboard import Whiteboard, WhiteboardCollaborator, WhiteboardElement
from ..schemas.user import UserSummary
from ..schemas.whiteboard import (
    CollaboratorResponse,
    ElementCreate,
    ElementResponse,
    ElementUpdate,
    Point,
    WhiteboardResponse,
    WhiteboardState,
)

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json",)

_NOT_NULL_FIELDS = {"type", "position", "size", "rotation", "z_index"}


def generate_element_id() -> str:
    """Server-side element id for clients that did not supply one."""
    return f"element_{uuid4().hex}"


async def _bump_version(db: AsyncSession, whiteboard_id: UUID) -> None:
    await db.execute(
        update(Whiteboard)
        .where(Whiteboard.id == whiteboard_id)
        .values(version=Whiteboard.version + 1, updated_at=datetime.utcnow())
    )


# ============================================================================
# Document reads
# ============================================================================


async def get_whiteboard(db: AsyncSession, whiteboard_id: UUID) -> Optional[Whiteboard]:
    """Get a whiteboard by ID, or None."""
    result = await db.execute(
        select(Whiteboard)
        .where(Whiteboard.id == whiteboard_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_elements(db: AsyncSession, whiteboard_id: UUID) -> list[WhiteboardElement]:
    """Elements of a whiteboard in paint order."""
    result = await db.execute(
        select(WhiteboardElement)
        .where(WhiteboardElement.whiteboard_id == whiteboard_id)
        .order_by(
            WhiteboardElement.z_index,
            WhiteboardElement.created_at,
            WhiteboardElement.element_id,
        )
    )
    return list(result.scalars().all())


async def get_element(
    db: AsyncSession,
    whiteboard_id: UUID,
    element_id: str,
) -> Optional[WhiteboardElement]:
    result = await db.execute(
        select(WhiteboardElement).where(
            WhiteboardElement.whiteboard_id == whiteboard_id,
            WhiteboardElement.element_id == element_id,
        )
    )
    return result.scalar_one_or_none()


async def list_collaborators(
    db: AsyncSession,
    whiteboard_id: UUID,
) -> list[WhiteboardCollaborator]:
    result = await db.execute(
        select(WhiteboardCollaborator)
        .options(selectinload(WhiteboardCollaborator.user))
        .where(WhiteboardCollaborator.whiteboard_id == whiteboard_id)
        .order_by(WhiteboardCollaborator.last_active)
    )
    return list(result.scalars().all())


async def get_whiteboard_state(
    db: AsyncSession,
    whiteboard_id: UUID,
) -> Optional[WhiteboardState]:
    """
    Load the full document sent to a client on ``join-whiteboard``.

    Args:
        db: Database session
        whiteboard_id: Whiteboard to load

    Returns:
        WhiteboardState with metadata, elements and collaborators,
        or None if the whiteboard does not exist
    """
    whiteboard = await get_whiteboard(db, whiteboard_id)
    if whiteboard is None:
        return None

    elements = await list_elements(db, whiteboard_id)
    collaborators = await list_collaborators(db, whiteboard_id)

    return WhiteboardState(
        whiteboard=WhiteboardResponse.model_validate(whiteboard),
        elements=[ElementResponse.model_validate(e) for e in elements],
        collaborators=[
            CollaboratorResponse(
                user=UserSummary.model_validate(c.user),
                cursor=Point(x=c.cursor_x, y=c.cursor_y),
                last_active=c.last_active,
            )
            for c in collaborators
        ],
    )


# ============================================================================
# Element mutations
# ============================================================================


async def add_element(
    db: AsyncSession,
    whiteboard_id: UUID,
    element_data: ElementCreate,
    user_id: UUID,
) -> Optional[WhiteboardElement]:
    """
    Insert a new element, stamping creator and timestamps.

    Args:
        db: Database session
        whiteboard_id: Target whiteboard
        element_data: Validated element from the client
        user_id: Creator

    Returns:
        The created element, or None if the element id is already taken
        on this whiteboard
    """
    now = datetime.utcnow()
    element_id = element_data.id or generate_element_id()
    element = WhiteboardElement(
        whiteboard_id=whiteboard_id,
        element_id=element_id,
        type=element_data.type.value,
        position=element_data.position.model_dump(mode="json"),
        size=element_data.size.model_dump(mode="json"),
        content=element_data.content,
        style=element_data.style,
        rotation=element_data.rotation,
        z_index=element_data.z_index,
        points=element_data.points,
        created_by=user_id,
        updated_by=user_id,
        created_at=now,
        updated_at=now,
    )
    db.add(element)

    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        logger.info(
            f"Duplicate element id {element_id} on whiteboard {whiteboard_id}"
        )
        return None

    await _bump_version(db, whiteboard_id)
    await db.commit()
    return element


async def update_element(
    db: AsyncSession,
    whiteboard_id: UUID,
    element_id: str,
    updates: ElementUpdate,
    user_id: UUID,
) -> Optional[WhiteboardElement]:
    """
    Merge the fields present in ``updates`` into an element.

    Returns:
        Updated element, or None if no such element exists
    """
    element = await get_element(db, whiteboard_id, element_id)
    if element is None:
        return None

    for field, value in updates.model_dump(mode="json", exclude_unset=True).items():
        if value is None and field in _NOT_NULL_FIELDS:
            continue
        setattr(element, field, value)

    element.updated_by = user_id
    element.updated_at = datetime.utcnow()

    await _bump_version(db, whiteboard_id)
    await db.commit()
    return element


async def remove_element(
    db: AsyncSession,
    whiteboard_id: UUID,
    element_id: str,
) -> bool:
    """
    Delete an element.

    Returns:
        True if a row was deleted, False if the id was unknown
    """
    result = await db.execute(
        delete(WhiteboardElement).where(
            WhiteboardElement.whiteboard_id == whiteboard_id,
            WhiteboardElement.element_id == element_id,
        )
    )
    if result.rowcount == 0:
        await db.rollback()
        return False

    await _bump_version(db, whiteboard_id)
    await db.commit()
    return True


# ============================================================================
# Presence
# ============================================================================


async def upsert_cursor(
    db: AsyncSession,
    whiteboard_id: UUID,
    user_id: UUID,
    x: float = 0,
    y: float = 0,
) -> None:
    """Create or move a collaborator's cursor."""
    now = datetime.utcnow()
    result = await db.execute(
        update(WhiteboardCollaborator)
        .where(
            WhiteboardCollaborator.whiteboard_id == whiteboard_id,
            WhiteboardCollaborator.user_id == user_id,
        )
        .values(cursor_x=x, cursor_y=y, last_active=now)
    )
    if result.rowcount:
        await db.commit()
        return

    db.add(
        WhiteboardCollaborator(
            whiteboard_id=whiteboard_id,
            user_id=user_id,
            cursor_x=x,
            cursor_y=y,
            last_active=now,
        )
    )
    try:
        await db.commit()
    except IntegrityError:
        # Another session of the same user inserted first; move its row instead
        await db.rollback()
        await db.execute(
            update(WhiteboardCollaborator)
            .where(
                WhiteboardCollaborator.whiteboard_id == whiteboard_id,
                WhiteboardCollaborator.user_id == user_id,
            )
            .values(cursor_x=x, cursor_y=y, last_active=now)
        )
        await db.commit()


async def remove_collaborator(
    db: AsyncSession,
    whiteboard_id: UUID,
    user_id: UUID,
) -> bool:
    """Drop a user's presence entry. Returns False if there was none."""
    result = await db.execute(
        delete(WhiteboardCollaborator).where(
            WhiteboardCollaborator.whiteboard_id == whiteboard_id,
            WhiteboardCollaborator.user_id == user_id,
        )
    )
    await db.commit()
    return result.rowcount > 0


# ============================================================================
# Export
# ============================================================================


async def export_whiteboard(
    db: AsyncSession,
    whiteboard_id: UUID,
    export_format: str = "json",
) -> Optional[dict[str, Any]]:
    """
    Export a whiteboard document.

    Args:
        db: Database session
        whiteboard_id: Whiteboard to export
        export_format: Only "json" is supported

    Returns:
        Export dict, or None if the whiteboard does not exist

    Raises:
        ValueError: If the format is not supported
    """
    if export_format not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {export_format}")

    whiteboard = await get_whiteboard(db, whiteboard_id)
    if whiteboard is None:
        return None

    elements = await list_elements(db, whiteboard_id)
    return {
        "name": whiteboard.name,
        "description": whiteboard.description,
        "canvas": whiteboard.canvas,
        "elements": [ElementResponse.model_validate(e).to_wire() for e in elements],
        "version": whiteboard.version,
        "exportedAt": datetime.utcnow().isoformat(),
    }
