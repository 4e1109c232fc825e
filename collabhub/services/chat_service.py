"""Chat service for the message lifecycle, typing state and read receipts.

Provides business logic for:
- Loading chat history (soft-deleted messages excluded)
- Sending, editing, soft-deleting and pinning messages
- Emoji reactions (at most one per user per emoji)
- Typing flags and read receipts (at most one per user per message)

Uniqueness is enforced by the database; a losing concurrent insert is
rolled back and treated as "already present".
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.chat import (
    Chat,
    ChatMessage,
    ChatMessageRead,
    ChatParticipant,
    ChatReaction,
)
from ..schemas.chat import (
    Attachment,
    ChatHistory,
    ChatMessageType,
    ChatResponse,
    MessageResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


def generate_message_id() -> str:
    return f"msg_{uuid4().hex}"


def _message_options():
    return (
        selectinload(ChatMessage.sender),
        selectinload(ChatMessage.reactions),
        selectinload(ChatMessage.read_by),
    )


# ============================================================================
# Reads
# ============================================================================


async def get_chat(db: AsyncSession, chat_id: UUID) -> Optional[Chat]:
    """Get a chat by ID, or None."""
    result = await db.execute(select(Chat).where(Chat.id == chat_id))
    return result.scalar_one_or_none()


async def get_message(
    db: AsyncSession,
    chat_id: UUID,
    message_id: str,
) -> Optional[ChatMessage]:
    """
    Get a message by its public id with sender, reactions and reads loaded.

    Soft-deleted messages are returned too; callers decide what to allow.
    """
    result = await db.execute(
        select(ChatMessage)
        .options(*_message_options())
        .where(
            ChatMessage.chat_id == chat_id,
            ChatMessage.message_id == message_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_history(
    db: AsyncSession,
    chat_id: UUID,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> list[ChatMessage]:
    """
    Most recent non-deleted messages, oldest first.

    Args:
        db: Database session
        chat_id: Chat to read
        limit: Maximum number of messages

    Returns:
        Messages in chronological order
    """
    result = await db.execute(
        select(ChatMessage)
        .options(*_message_options())
        .where(
            ChatMessage.chat_id == chat_id,
            ChatMessage.is_deleted.is_(False),
        )
        .order_by(ChatMessage.created_at.desc(), ChatMessage.message_id.desc())
        .limit(limit)
    )
    messages = list(result.scalars().all())
    messages.reverse()
    return messages


async def get_chat_history(
    db: AsyncSession,
    chat_id: UUID,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> Optional[ChatHistory]:
    """Payload for ``chat-history``, or None if the chat does not exist."""
    chat = await get_chat(db, chat_id)
    if chat is None:
        return None

    messages = await get_history(db, chat_id, limit)
    return ChatHistory(
        chat=ChatResponse.model_validate(chat),
        messages=[MessageResponse.model_validate(m) for m in messages],
    )


# ============================================================================
# Participants
# ============================================================================


async def _upsert_participant(
    db: AsyncSession,
    chat_id: UUID,
    user_id: UUID,
    **values,
) -> None:
    """Update a participant row, creating it on first contact. Commits."""
    stmt = (
        update(ChatParticipant)
        .where(
            ChatParticipant.chat_id == chat_id,
            ChatParticipant.user_id == user_id,
        )
        .values(**values)
    )
    result = await db.execute(stmt)
    if result.rowcount:
        await db.commit()
        return

    db.add(ChatParticipant(chat_id=chat_id, user_id=user_id, **values))
    try:
        await db.commit()
    except IntegrityError:
        # Inserted concurrently by another session of the same user
        await db.rollback()
        await db.execute(stmt)
        await db.commit()


async def set_typing(
    db: AsyncSession,
    chat_id: UUID,
    user_id: UUID,
    is_typing: bool,
) -> None:
    """Set a participant's typing flag."""
    await _upsert_participant(db, chat_id, user_id, is_typing=is_typing)


async def _add_read_receipt(
    db: AsyncSession,
    message_pk: UUID,
    user_id: UUID,
    read_at: datetime,
) -> bool:
    existing = await db.execute(
        select(ChatMessageRead.id).where(
            ChatMessageRead.message_pk == message_pk,
            ChatMessageRead.user_id == user_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        return False

    db.add(ChatMessageRead(message_pk=message_pk, user_id=user_id, read_at=read_at))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        return False
    return True


async def mark_read(
    db: AsyncSession,
    chat_id: UUID,
    user_id: UUID,
    message_id: Optional[str] = None,
) -> Optional[datetime]:
    """
    Record that a user has read a chat, optionally a specific message.

    The read receipt is appended once per user; repeated reads only
    advance the participant's ``last_read``.

    Returns:
        The read timestamp, or None if ``message_id`` is unknown
    """
    now = datetime.utcnow()

    if message_id is not None:
        message = await get_message(db, chat_id, message_id)
        if message is None:
            return None
        await _add_read_receipt(db, message.id, user_id, now)

    await _upsert_participant(db, chat_id, user_id, last_read=now)
    return now


# ============================================================================
# Message lifecycle
# ============================================================================


async def add_message(
    db: AsyncSession,
    chat_id: UUID,
    sender_id: UUID,
    content: str,
    message_type: ChatMessageType = ChatMessageType.TEXT,
    attachments: Optional[list[Attachment]] = None,
    mentions: Optional[list[UUID]] = None,
) -> ChatMessage:
    """
    Append a message to a chat.

    The sender is recorded as having read it, and the chat's
    ``last_activity`` is bumped.

    Returns:
        The persisted message with sender, reactions and reads loaded
    """
    now = datetime.utcnow()
    message = ChatMessage(
        chat_id=chat_id,
        message_id=generate_message_id(),
        sender_id=sender_id,
        content=content,
        type=message_type.value,
        attachments=[a.model_dump(mode="json", by_alias=True) for a in attachments or []],
        mentions=[str(m) for m in mentions or []],
        created_at=now,
    )
    db.add(message)
    await db.flush()

    db.add(ChatMessageRead(message_pk=message.id, user_id=sender_id, read_at=now))
    await db.execute(
        update(Chat)
        .where(Chat.id == chat_id)
        .values(last_activity=now, updated_at=now)
    )
    await db.commit()
    await _upsert_participant(db, chat_id, sender_id, last_read=now)

    return await get_message(db, chat_id, message.message_id)


async def edit_message(
    db: AsyncSession,
    chat_id: UUID,
    message_id: str,
    content: str,
) -> Optional[ChatMessage]:
    """
    Replace a message's content and flag it as edited.

    Returns:
        Updated message, or None if not found or soft-deleted
    """
    message = await get_message(db, chat_id, message_id)
    if message is None or message.is_deleted:
        return None

    message.content = content
    message.is_edited = True
    message.edited_at = datetime.utcnow()
    await db.commit()

    return await get_message(db, chat_id, message_id)


async def delete_message(
    db: AsyncSession,
    chat_id: UUID,
    message_id: str,
    deleted_by: UUID,
) -> Optional[ChatMessage]:
    """
    Soft-delete a message. The row, id and metadata are kept.

    Deleting an already deleted message returns it unchanged.

    Returns:
        The message, or None if not found
    """
    message = await get_message(db, chat_id, message_id)
    if message is None:
        return None

    if not message.is_deleted:
        message.is_deleted = True
        message.deleted_at = datetime.utcnow()
        message.deleted_by = deleted_by
        await db.commit()

    return message


async def add_reaction(
    db: AsyncSession,
    message: ChatMessage,
    user_id: UUID,
    emoji: str,
) -> bool:
    """
    Add an emoji reaction.

    Returns:
        True if added, False if this user already reacted with this emoji
    """
    existing = await db.execute(
        select(ChatReaction.id).where(
            ChatReaction.message_pk == message.id,
            ChatReaction.user_id == user_id,
            ChatReaction.emoji == emoji,
        )
    )
    if existing.scalar_one_or_none() is not None:
        return False

    db.add(ChatReaction(message_pk=message.id, user_id=user_id, emoji=emoji))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        return False
    return True


async def remove_reaction(
    db: AsyncSession,
    message: ChatMessage,
    user_id: UUID,
    emoji: str,
) -> bool:
    """Remove a reaction. Returns False if there was nothing to remove."""
    result = await db.execute(
        delete(ChatReaction).where(
            ChatReaction.message_pk == message.id,
            ChatReaction.user_id == user_id,
            ChatReaction.emoji == emoji,
        )
    )
    await db.commit()
    return result.rowcount > 0


async def set_pinned(
    db: AsyncSession,
    message: ChatMessage,
    pinned_by: Optional[UUID],
) -> ChatMessage:
    """Pin (``pinned_by`` set) or unpin (``pinned_by`` None) a message."""
    message.pinned_by = pinned_by
    message.pinned_at = datetime.utcnow() if pinned_by else None
    await db.commit()
    return message
