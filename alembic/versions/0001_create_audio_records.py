"""create audio_records table

Revision ID: 0001_create_audio_records
Revises: 
Create Date: 2024-09-20 12:16:36

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_create_audio_records"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "audio_records",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("display_title", sa.String(length=255), nullable=False),
        sa.Column("storage_locator", sa.String(length=255), nullable=False),
        sa.Column("content_hash", sa.String(length=255), nullable=False),
        sa.Column("size_bytes", sa.BigInteger(), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("uploaded_by", sa.String(length=255), nullable=True),
    )
    op.create_index(
        "ix_audio_records_uploaded_at", "audio_records", ["uploaded_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_audio_records_uploaded_at", table_name="audio_records")
    op.drop_table("audio_records")
