"""Baseline migration - users, boards, cases and case correspondence

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Portable DDL (runs on PostgreSQL and SQLite).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(*, updated: bool = True) -> list[sa.Column]:
    columns = [sa.Column('created_at', sa.DateTime(timezone=True), nullable=False)]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False))
    return columns


def upgrade() -> None:
    """Create all tables."""

    # ==========================================================================
    # Users
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='member'),
        sa.Column('token_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # ==========================================================================
    # Boards & Columns
    # ==========================================================================
    op.create_table(
        'boards',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(120), nullable=False, unique=True),
        sa.Column('color', sa.String(7), nullable=False, server_default='#3b82f6'),
        *_timestamps(),
    )

    op.create_table(
        'columns',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('board_id', sa.Uuid(), sa.ForeignKey('boards.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('color', sa.String(7), nullable=True),
        sa.Column('is_final', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(updated=False),
        sa.UniqueConstraint('board_id', 'name', name='uq_column_board_name'),
        sa.UniqueConstraint('board_id', 'position', name='uq_column_board_position'),
    )

    # ==========================================================================
    # Cases
    # ==========================================================================
    op.create_table(
        'cases',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email_slug', sa.String(32), nullable=False, unique=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('priority', sa.String(20), nullable=False, server_default='medium'),
        sa.Column('board_id', sa.Uuid(), sa.ForeignKey('boards.id', ondelete='CASCADE'), nullable=False),
        sa.Column('column_id', sa.Uuid(), sa.ForeignKey('columns.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('case_type', sa.String(20), nullable=False, server_default='ORDER'),
        sa.Column('quote_id', sa.String(16), nullable=True, unique=True),
        sa.Column('product_type', sa.String(100), nullable=True),
        sa.Column('specs', sa.Text(), nullable=True),
        sa.Column('customer_name', sa.String(255), nullable=True),
        sa.Column('form_payload', sa.JSON(), nullable=True),
        sa.Column('crm_system', sa.String(50), nullable=True),
        sa.Column('crm_id', sa.String(100), nullable=True),
        sa.Column('crm_data', sa.JSON(), nullable=True),
        sa.Column('creator_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('assignee_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('escalated_to_id', sa.Uuid(), sa.ForeignKey('cases.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_cases_column_position', 'cases', ['column_id', 'position'])
    op.create_index('idx_cases_board', 'cases', ['board_id'])
    op.create_index('idx_cases_escalated_to', 'cases', ['escalated_to_id'])
    op.create_index('idx_cases_deleted_at', 'cases', ['deleted_at'])
    op.create_index('idx_cases_creator', 'cases', ['creator_id'])

    op.create_table(
        'case_notes',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('case_id', sa.Uuid(), sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=False),
        sa.Column('author_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index('idx_case_notes_case', 'case_notes', ['case_id', 'created_at'])

    # ==========================================================================
    # Correspondence & Files
    # ==========================================================================
    op.create_table(
        'case_emails',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('case_id', sa.Uuid(), sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=False),
        sa.Column('direction', sa.String(3), nullable=False),
        sa.Column('from_address', sa.Text(), nullable=False, server_default=''),
        sa.Column('to_address', sa.Text(), nullable=False, server_default=''),
        sa.Column('cc', sa.Text(), nullable=False, server_default=''),
        sa.Column('subject', sa.Text(), nullable=False, server_default=''),
        sa.Column('body_text', sa.Text(), nullable=False, server_default=''),
        sa.Column('body_html', sa.Text(), nullable=False, server_default=''),
        sa.Column('message_id', sa.String(998), nullable=True),
        sa.Column('in_reply_to', sa.String(998), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_case_emails_case', 'case_emails', ['case_id', 'received_at'])
    op.create_index('idx_case_emails_message_id', 'case_emails', ['case_id', 'message_id'])

    op.create_table(
        'case_email_attachments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email_id', sa.Uuid(), sa.ForeignKey('case_emails.id', ondelete='CASCADE'), nullable=False),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('mime_type', sa.String(100), nullable=False),
        sa.Column('size_bytes', sa.Integer(), nullable=False),
        sa.Column('blob_path', sa.String(512), nullable=False),
        sa.Column('content_id', sa.String(255), nullable=True),
    )
    op.create_index('ix_case_email_attachments_email_id', 'case_email_attachments', ['email_id'])

    op.create_table(
        'case_attachments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('case_id', sa.Uuid(), sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=False),
        sa.Column('uploaded_by_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('mime_type', sa.String(100), nullable=False),
        sa.Column('size_bytes', sa.Integer(), nullable=False),
        sa.Column('blob_path', sa.String(512), nullable=False),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_case_attachments_case_id', 'case_attachments', ['case_id'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('case_attachments')
    op.drop_table('case_email_attachments')
    op.drop_table('case_emails')
    op.drop_table('case_notes')
    op.drop_table('cases')
    op.drop_table('columns')
    op.drop_table('boards')
    op.drop_table('users')
