"""SQLAlchemy model for answers (comments) attached to posts."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_hub.db.session import Base
from knowledge_hub.db.time import utcnow

COMMENT_STATUS_PENDING = "pending"
COMMENT_STATUS_APPROVED = "approved"
COMMENT_STATUS_REJECTED = "rejected"

COMMENT_STATUSES = (COMMENT_STATUS_PENDING, COMMENT_STATUS_APPROVED, COMMENT_STATUS_REJECTED)


class Comment(Base):
    """An answer on exactly one post."""

    __tablename__ = "comment"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_comment_status",
        ),
        CheckConstraint("upvote_count >= 0", name="ck_comment_upvote_count"),
        # At most one accepted answer per post.
        Index(
            "uq_comment_accepted_per_post",
            "post_id",
            unique=True,
            sqlite_where=text("is_accepted_answer = 1"),
            postgresql_where=text("is_accepted_answer"),
        ),
        Index("ix_comment_post_created", "post_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        nullable=False,
    )
    author_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_user.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    upvote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_accepted_answer: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=COMMENT_STATUS_APPROVED,
    )
    # Answers containing links wait for moderation before they count.
    has_urls: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
