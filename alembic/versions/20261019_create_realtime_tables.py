"""create_realtime_tables

Revision ID: a1c4e7f20b91
Revises:
Create Date: 2026-10-19 09:00:00.000000

This migration creates the tables used by the realtime layer:
1. Users (identities that may open sessions)
2. Whiteboards, WhiteboardElements, WhiteboardCollaborators
3. Chats, ChatParticipants, ChatMessages
4. ChatReactions, ChatMessageReads

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'a1c4e7f20b91'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    # ==========================================================================
    # 1. Users
    # ==========================================================================
    op.create_table('Users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=50), nullable=True),
        sa.Column('last_name', sa.String(length=50), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='member'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_Users_email'), 'Users', ['email'], unique=True)
    op.create_index(op.f('ix_Users_username'), 'Users', ['username'], unique=True)

    # ==========================================================================
    # 2. Whiteboards
    # ==========================================================================
    op.create_table('Whiteboards',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('canvas', sa.JSON(), nullable=False),
        sa.Column('settings', sa.JSON(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['created_by'], ['Users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_Whiteboards_project_id'), 'Whiteboards', ['project_id'], unique=False)
    op.create_index(op.f('ix_Whiteboards_created_by'), 'Whiteboards', ['created_by'], unique=False)

    op.create_table('WhiteboardElements',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('whiteboard_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('element_id', sa.String(length=100), nullable=False),
        sa.Column('type', sa.String(length=30), nullable=False),
        sa.Column('position', sa.JSON(), nullable=False),
        sa.Column('size', sa.JSON(), nullable=False),
        sa.Column('content', sa.JSON(), nullable=True),
        sa.Column('style', sa.JSON(), nullable=True),
        sa.Column('rotation', sa.Float(), nullable=False, server_default='0'),
        sa.Column('z_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('points', sa.JSON(), nullable=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('updated_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['whiteboard_id'], ['Whiteboards.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('whiteboard_id', 'element_id', name='uq_whiteboard_element_id')
    )
    op.create_index(
        op.f('ix_WhiteboardElements_whiteboard_id'),
        'WhiteboardElements',
        ['whiteboard_id'],
        unique=False,
    )

    op.create_table('WhiteboardCollaborators',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('whiteboard_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('cursor_x', sa.Float(), nullable=False, server_default='0'),
        sa.Column('cursor_y', sa.Float(), nullable=False, server_default='0'),
        sa.Column('last_active', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['whiteboard_id'], ['Whiteboards.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['Users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('whiteboard_id', 'user_id', name='uq_whiteboard_collaborator')
    )
    op.create_index(
        op.f('ix_WhiteboardCollaborators_whiteboard_id'),
        'WhiteboardCollaborators',
        ['whiteboard_id'],
        unique=False,
    )
    op.create_index(
        op.f('ix_WhiteboardCollaborators_user_id'),
        'WhiteboardCollaborators',
        ['user_id'],
        unique=False,
    )

    # ==========================================================================
    # 3. Chats
    # ==========================================================================
    op.create_table('Chats',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('type', sa.String(length=20), nullable=False, server_default='project'),
        sa.Column('settings', sa.JSON(), nullable=False),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_activity', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_Chats_project_id'), 'Chats', ['project_id'], unique=False)
    op.create_index(op.f('ix_Chats_last_activity'), 'Chats', ['last_activity'], unique=False)

    op.create_table('ChatParticipants',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('chat_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='member'),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.Column('last_read', sa.DateTime(), nullable=False),
        sa.Column('is_typing', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(['chat_id'], ['Chats.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['Users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('chat_id', 'user_id', name='uq_chat_participant')
    )
    op.create_index(op.f('ix_ChatParticipants_chat_id'), 'ChatParticipants', ['chat_id'], unique=False)
    op.create_index(op.f('ix_ChatParticipants_user_id'), 'ChatParticipants', ['user_id'], unique=False)

    op.create_table('ChatMessages',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('chat_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('message_id', sa.String(length=64), nullable=False),
        sa.Column('sender_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False, server_default='text'),
        sa.Column('attachments', sa.JSON(), nullable=False),
        sa.Column('mentions', sa.JSON(), nullable=False),
        sa.Column('is_edited', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('edited_at', sa.DateTime(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.Column('deleted_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('pinned_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('pinned_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['chat_id'], ['Chats.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sender_id'], ['Users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('chat_id', 'message_id', name='uq_chat_message_id')
    )
    op.create_index(op.f('ix_ChatMessages_sender_id'), 'ChatMessages', ['sender_id'], unique=False)
    # History reads: newest messages of a chat
    op.create_index(
        'ix_chat_messages_chat_created',
        'ChatMessages',
        ['chat_id', 'created_at'],
    )

    # ==========================================================================
    # 4. Reactions and read receipts
    # ==========================================================================
    op.create_table('ChatReactions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('message_pk', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('emoji', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['message_pk'], ['ChatMessages.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['Users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('message_pk', 'user_id', 'emoji', name='uq_chat_reaction')
    )
    op.create_index(op.f('ix_ChatReactions_message_pk'), 'ChatReactions', ['message_pk'], unique=False)

    op.create_table('ChatMessageReads',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('message_pk', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('read_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['message_pk'], ['ChatMessages.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['Users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('message_pk', 'user_id', name='uq_chat_message_read')
    )
    op.create_index(op.f('ix_ChatMessageReads_message_pk'), 'ChatMessageReads', ['message_pk'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('ChatMessageReads')
    op.drop_table('ChatReactions')
    op.drop_table('ChatMessages')
    op.drop_table('ChatParticipants')
    op.drop_table('Chats')
    op.drop_table('WhiteboardCollaborators')
    op.drop_table('WhiteboardElements')
    op.drop_table('Whiteboards')
    op.drop_table('Users')
