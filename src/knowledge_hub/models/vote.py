# src/knowledge_hub/models/vote.py
"""Models capturing up-votes on posts and answers."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_hub.db.session import Base
from knowledge_hub.db.time import utcnow

TARGET_POST = "post"
TARGET_COMMENT = "comment"
VOTE_TARGETS = (TARGET_POST, TARGET_COMMENT)


class Vote(Base):
    """Per-user active up-vote on a post or comment.

    Presence of a row means the vote is active; toggling off deletes it.
    """

    __tablename__ = "vote"
    __table_args__ = (
        CheckConstraint("target_type IN ('post', 'comment')", name="ck_vote_target_type"),
        Index("ix_vote_target", "target_type", "target_id"),
    )

    # Composite primary key prevents duplicate votes from the same user.
    voter_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id", ondelete="CASCADE"),
        primary_key=True,
    )
    target_type: Mapped[str] = mapped_column(String(16), primary_key=True)
    target_id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # Reputation-derived multiplier at cast time; counters themselves are unweighted.
    weight: Mapped[float] = mapped_column(
        Numeric(8, 4, asdecimal=False),
        nullable=False,
        default=1.0,
    )
    # Whether the voter received the participation point for this vote.
    participation_awarded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
