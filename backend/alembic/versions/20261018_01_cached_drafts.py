"""Cached practice drafts, one row per user."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261018_01_cached_drafts"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "cached_drafts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("session_length", sa.Integer(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
    )
    op.create_index("ix_cached_drafts_user_id", "cached_drafts", ["user_id"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_cached_drafts_user_id", table_name="cached_drafts")
    op.drop_table("cached_drafts")
