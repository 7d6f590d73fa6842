"""SQLAlchemy models for knowledge posts and their denormalized counters."""

from datetime import datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_hub.db.session import Base
from knowledge_hub.db.time import utcnow

POST_STATUS_DRAFT = "draft"
POST_STATUS_PENDING = "pending_moderation"
POST_STATUS_APPROVED = "approved"
POST_STATUS_REJECTED = "rejected"
POST_STATUS_ARCHIVED = "archived"

POST_STATUSES = (
    POST_STATUS_DRAFT,
    POST_STATUS_PENDING,
    POST_STATUS_APPROVED,
    POST_STATUS_REJECTED,
    POST_STATUS_ARCHIVED,
)


class Post(Base):
    """A question or article in the Knowledge Hub.

    Counter columns are written only by the vote, follow, comment and answer
    services, always through SQL expressions inside their transaction.
    """

    __tablename__ = "post"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'pending_moderation', 'approved', 'rejected', 'archived')",
            name="ck_post_status",
        ),
        CheckConstraint("upvote_count >= 0", name="ck_post_upvote_count"),
        CheckConstraint("followers_count >= 0", name="ck_post_followers_count"),
        Index("ix_post_status_activity", "status", "last_activity_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=POST_STATUS_PENDING)

    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    upvote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    followers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Circular with comment.post_id; created after both tables exist.
    accepted_answer_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("comment.id", use_alter=True, name="fk_post_accepted_answer_id"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_activity_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    last_edited_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def has_accepted_answer(self) -> bool:
        """Return True if an answer has been accepted."""
        return self.accepted_answer_id is not None
