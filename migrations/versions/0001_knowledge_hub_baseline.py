"""knowledge hub baseline

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_baseline"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Create the scoring core tables."""
    op.create_table(
        "app_user",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.CheckConstraint(
            "role IN ('user', 'contributor', 'moderator', 'admin')",
            name="ck_app_user_role",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "post",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("slug", sa.String(length=128), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("upvote_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comment_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("followers_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("accepted_answer_id", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        _timestamp("published_at", nullable=True),
        _timestamp("last_activity_at", nullable=True),
        _timestamp("last_edited_at", nullable=True),
        sa.CheckConstraint(
            "status IN ('draft', 'pending_moderation', 'approved', 'rejected', 'archived')",
            name="ck_post_status",
        ),
        sa.CheckConstraint("upvote_count >= 0", name="ck_post_upvote_count"),
        sa.CheckConstraint("followers_count >= 0", name="ck_post_followers_count"),
        sa.ForeignKeyConstraint(["author_id"], ["app_user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("ix_post_author_id", "post", ["author_id"])
    op.create_index("ix_post_status_activity", "post", ["status", "last_activity_at"])

    op.create_table(
        "comment",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("upvote_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_accepted_answer", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("has_urls", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
        sa.CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="ck_comment_status"),
        sa.CheckConstraint("upvote_count >= 0", name="ck_comment_upvote_count"),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["app_user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_comment_post_created", "comment", ["post_id", "created_at"])
    op.create_index(
        "uq_comment_accepted_per_post",
        "comment",
        ["post_id"],
        unique=True,
        sqlite_where=sa.text("is_accepted_answer = 1"),
        postgresql_where=sa.text("is_accepted_answer"),
    )
    with op.batch_alter_table("post") as batch_op:
        batch_op.create_foreign_key(
            "fk_post_accepted_answer_id",
            "comment",
            ["accepted_answer_id"],
            ["id"],
        )

    op.create_table(
        "vote",
        sa.Column("voter_id", sa.Integer(), nullable=False),
        sa.Column("target_type", sa.String(length=16), nullable=False),
        sa.Column("target_id", sa.Integer(), nullable=False),
        sa.Column("weight", sa.Numeric(8, 4), nullable=False),
        sa.Column("participation_awarded", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
        sa.CheckConstraint("target_type IN ('post', 'comment')", name="ck_vote_target_type"),
        sa.ForeignKeyConstraint(["voter_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("voter_id", "target_type", "target_id"),
    )
    op.create_index("ix_vote_target", "vote", ["target_type", "target_id"])

    op.create_table(
        "reputation_record",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("reputation_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("accepted_answers_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("helpful_answers_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("questions_asked", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("answers_given", sa.Integer(), nullable=False, server_default="0"),
        _timestamp("updated_at"),
        sa.CheckConstraint("reputation_points >= 0", name="ck_reputation_points_non_negative"),
        sa.ForeignKeyConstraint(["user_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "reputation_event",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("applied_delta", sa.Integer(), nullable=False),
        sa.Column("points_after", sa.Integer(), nullable=False),
        sa.Column("post_id", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["user_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_reputation_event_user_kind_created",
        "reputation_event",
        ["user_id", "kind", "created_at"],
    )

    op.create_table(
        "post_version",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("editor_id", sa.Integer(), nullable=False),
        sa.Column("change_type", sa.String(length=16), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        _timestamp("created_at"),
        sa.CheckConstraint(
            "change_type IN ('created', 'minor_edit', 'major_edit')",
            name="ck_post_version_change_type",
        ),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"]),
        sa.ForeignKeyConstraint(["editor_id"], ["app_user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("post_id", "version_number", name="uq_post_version_number"),
    )

    op.create_table(
        "follow",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("notification_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["user_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "post_id"),
    )
    op.create_index("ix_follow_post_id", "follow", ["post_id"])

    op.create_table(
        "notification_queue",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("recipient_id", sa.Integer(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("answerer_name", sa.Text(), nullable=False),
        sa.Column("processed", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"]),
        sa.ForeignKeyConstraint(["recipient_id"], ["app_user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notification_queue_processed", "notification_queue", ["processed"])


def downgrade() -> None:
    """Drop the scoring core tables."""
    op.drop_index("ix_notification_queue_processed", table_name="notification_queue")
    op.drop_table("notification_queue")
    op.drop_index("ix_follow_post_id", table_name="follow")
    op.drop_table("follow")
    op.drop_table("post_version")
    op.drop_index("ix_reputation_event_user_kind_created", table_name="reputation_event")
    op.drop_table("reputation_event")
    op.drop_table("reputation_record")
    op.drop_index("ix_vote_target", table_name="vote")
    op.drop_table("vote")
    with op.batch_alter_table("post") as batch_op:
        batch_op.drop_constraint("fk_post_accepted_answer_id", type_="foreignkey")
    op.drop_index("uq_comment_accepted_per_post", table_name="comment")
    op.drop_index("ix_comment_post_created", table_name="comment")
    op.drop_table("comment")
    op.drop_index("ix_post_status_activity", table_name="post")
    op.drop_index("ix_post_author_id", table_name="post")
    op.drop_table("post")
    op.drop_table("app_user")
