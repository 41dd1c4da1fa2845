"""add extension to audio_records

Revision ID: 0002_add_audio_extension
Revises: 0001_create_audio_records
Create Date: 2024-10-20 17:42:43

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

revision = "0002_add_audio_extension"
down_revision = "0001_create_audio_records"
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)
    existing_columns = {column["name"] for column in inspector.get_columns("audio_records")}

    if "extension" not in existing_columns:
        op.add_column(
            "audio_records",
            sa.Column("extension", sa.String(length=15), nullable=True),
        )


def downgrade() -> None:
    op.drop_column("audio_records", "extension")
