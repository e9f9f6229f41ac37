"""Initial schema: users, reports, attachments

Revision ID: 001_initial
Revises:
Create Date: 2025-11-16 00:00:00.000000

NOTE: media_url is Text (not VARCHAR(255)) to support long signed blob URLs.
tags and location are JSON so the schema runs on both SQLite and PostgreSQL.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

media_type = sa.Enum('picture', 'video', 'audio', 'sketch', 'document', name='media_type')


def upgrade() -> None:
    """Create users, reports and attachments tables."""
    op.create_table(
        'users',
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('google_id', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('avatar_url', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('user_id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('username'),
    )
    op.create_index(op.f('ix_users_google_id'), 'users', ['google_id'], unique=True)

    op.create_table(
        'reports',
        sa.Column('report_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('location', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id']),
        sa.PrimaryKeyConstraint('report_id'),
    )
    op.create_index(op.f('ix_reports_user_id'), 'reports', ['user_id'], unique=False)
    op.create_index(op.f('ix_reports_updated_at'), 'reports', ['updated_at'], unique=False)

    op.create_table(
        'attachments',
        sa.Column('attachment_id', sa.String(length=36), nullable=False),
        sa.Column('report_id', sa.String(length=36), nullable=False),
        sa.Column('media_type', media_type, nullable=False),
        sa.Column('title', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('media_url', sa.Text(), nullable=False),  # Text for long signed URLs
        sa.Column('location', sa.JSON(), nullable=True),
        sa.Column('attachment_metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['report_id'], ['reports.report_id']),
        sa.PrimaryKeyConstraint('attachment_id'),
    )
    op.create_index(op.f('ix_attachments_report_id'), 'attachments', ['report_id'], unique=False)
    op.create_index(op.f('ix_attachments_media_type'), 'attachments', ['media_type'], unique=False)


def downgrade() -> None:
    """Drop attachments, reports and users tables."""
    op.drop_index(op.f('ix_attachments_media_type'), table_name='attachments')
    op.drop_index(op.f('ix_attachments_report_id'), table_name='attachments')
    op.drop_table('attachments')
    op.drop_index(op.f('ix_reports_updated_at'), table_name='reports')
    op.drop_index(op.f('ix_reports_user_id'), table_name='reports')
    op.drop_table('reports')
    op.drop_index(op.f('ix_users_google_id'), table_name='users')
    op.drop_table('users')
    media_type.drop(op.get_bind(), checkfirst=True)
