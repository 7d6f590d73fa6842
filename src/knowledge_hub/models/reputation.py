"""Models backing the reputation ledger."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_hub.db.session import Base
from knowledge_hub.db.time import utcnow


class ReputationRecord(Base):
    """Cumulative reputation for one user.

    Created lazily on the first scoring-relevant action and mutated only by
    the reputation ledger.
    """

    __tablename__ = "reputation_record"
    __table_args__ = (
        CheckConstraint("reputation_points >= 0", name="ck_reputation_points_non_negative"),
    )

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id", ondelete="CASCADE"),
        primary_key=True,
    )
    reputation_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    accepted_answers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    helpful_answers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    questions_asked: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    answers_given: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )


class ReputationEvent(Base):
    """Append-only audit row for every delta the ledger applies."""

    __tablename__ = "reputation_event"
    __table_args__ = (
        Index("ix_reputation_event_user_kind_created", "user_id", "kind", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id", ondelete="CASCADE"),
        nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    # Requested delta and the delta left after clamping at zero.
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    applied_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    points_after: Mapped[int] = mapped_column(Integer, nullable=False)
    post_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
