"""edit suggestions

Revision ID: 0002_edit_suggestions
Revises: 0001_baseline
Create Date: 2026-10-19 16:00:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0002_edit_suggestions"
down_revision: Union[str, Sequence[str], None] = "0001_baseline"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the edit suggestion review queue."""
    op.create_table(
        "edit_suggestion",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("suggester_id", sa.Integer(), nullable=False),
        sa.Column("edit_type", sa.String(length=16), nullable=False),
        sa.Column("suggested_title", sa.Text(), nullable=True),
        sa.Column("suggested_excerpt", sa.Text(), nullable=True),
        sa.Column("suggested_content", sa.Text(), nullable=False),
        sa.Column("edit_summary", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("reviewer_id", sa.Integer(), nullable=True),
        sa.Column("reviewer_notes", sa.Text(), nullable=True),
        sa.Column("merged_as_version", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_edit_suggestion_status",
        ),
        sa.CheckConstraint(
            "edit_type IN ('content_edit', 'typo_fix', 'add_section', 'remove_section', 'formatting')",
            name="ck_edit_suggestion_edit_type",
        ),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["suggester_id"], ["app_user.id"]),
        sa.ForeignKeyConstraint(["reviewer_id"], ["app_user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_edit_suggestion_status_created",
        "edit_suggestion",
        ["status", "created_at"],
    )


def downgrade() -> None:
    """Drop the edit suggestion review queue."""
    op.drop_index("ix_edit_suggestion_status_created", table_name="edit_suggestion")
    op.drop_table("edit_suggestion")
