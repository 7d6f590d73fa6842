"""Models for question follows and queued follower notifications."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_hub.db.session import Base
from knowledge_hub.db.time import utcnow


class Follow(Base):
    """Subscription of a user to new-answer notifications on a post."""

    __tablename__ = "follow"
    __table_args__ = (Index("ix_follow_post_id", "post_id"),)

    # Composite primary key keeps one follow per (user, post).
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id", ondelete="CASCADE"),
        primary_key=True,
    )
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    notification_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class NotificationQueue(Base):
    """Outbound notification waiting for a delivery worker."""

    __tablename__ = "notification_queue"
    __table_args__ = (Index("ix_notification_queue_processed", "processed"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(Integer, ForeignKey("post.id"), nullable=False)
    recipient_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_user.id"), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    answerer_name: Mapped[str] = mapped_column(Text, nullable=False)
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
