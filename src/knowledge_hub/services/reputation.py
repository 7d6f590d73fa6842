"""Reputation ledger: points, tiers and vote weight.

Every reputation change goes through `ReputationLedger`. Point updates are
single SQL statements that clamp at zero, and each applied delta is written to
the append-only `reputation_event` table in the caller's transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from sqlalchemy import case, func, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from knowledge_hub.core.errors import NotFound
from knowledge_hub.core.settings import settings
from knowledge_hub.db.time import utcnow
from knowledge_hub.models import ReputationEvent, ReputationRecord, User
from knowledge_hub.models.user import PRIVILEGED_ROLES

logger = logging.getLogger(__name__)

PARTICIPATION_WINDOW = timedelta(hours=24)


class EventKind(str, Enum):
    """Events that move a user's reputation."""

    ANSWER_UPVOTED = "answer_upvoted"
    ANSWER_UPVOTE_REMOVED = "answer_upvote_removed"
    ANSWER_ACCEPTED = "answer_accepted"
    ANSWER_UNACCEPTED = "answer_unaccepted"
    QUESTION_UPVOTED = "question_upvoted"
    QUESTION_UPVOTE_REMOVED = "question_upvote_removed"
    VOTE_CAST = "vote_cast"
    VOTE_RETRACTED = "vote_retracted"


EVENT_DELTAS: dict[EventKind, int] = {
    EventKind.ANSWER_UPVOTED: 10,
    EventKind.ANSWER_UPVOTE_REMOVED: -10,
    EventKind.ANSWER_ACCEPTED: 25,
    EventKind.ANSWER_UNACCEPTED: -25,
    EventKind.QUESTION_UPVOTED: 5,
    EventKind.QUESTION_UPVOTE_REMOVED: -5,
    EventKind.VOTE_CAST: 1,
    EventKind.VOTE_RETRACTED: -1,
}


@dataclass(frozen=True)
class ReputationTier:
    """A reputation band and the vote weight it grants."""

    name: str
    vote_weight: float
    min_points: int
    max_points: int | None


TIERS: tuple[ReputationTier, ...] = (
    ReputationTier("Novice", 0.5, 0, 50),
    ReputationTier("Contributor", 0.75, 51, 100),
    ReputationTier("Regular", 1.0, 101, 500),
    ReputationTier("Expert", 1.5, 501, 1000),
    ReputationTier("Master", 2.0, 1001, None),
)


def reputation_tier(points: int) -> ReputationTier:
    """Return the tier for `points`."""
    for tier in TIERS:
        if tier.max_points is None or points <= tier.max_points:
            return tier
    return TIERS[-1]


def vote_weight(points: int) -> float:
    """Return the vote weight multiplier for `points`."""
    return reputation_tier(points).vote_weight


@dataclass(frozen=True)
class ReputationSummary:
    """Read model combining the stored record with its derived tier."""

    user_id: int
    reputation_points: int
    tier: str
    vote_weight: float
    accepted_answers_count: int
    helpful_answers_count: int
    questions_asked: int
    answers_given: int


class ReputationLedger:
    """Owns reputation records; never commits, callers own the transaction."""

    def __init__(
        self,
        *,
        participation_daily_cap: int | None = None,
        privileged_seed: int | None = None,
        helpful_threshold: int | None = None,
    ) -> None:
        self.participation_daily_cap = (
            settings.vote_participation_daily_cap
            if participation_daily_cap is None
            else participation_daily_cap
        )
        self.privileged_seed = (
            settings.privileged_reputation_seed if privileged_seed is None else privileged_seed
        )
        self.helpful_threshold = (
            settings.helpful_answer_threshold if helpful_threshold is None else helpful_threshold
        )

    def seed_points(self, user: User) -> int:
        """Return the starting balance for a user's first record."""
        return self.privileged_seed if user.role in PRIVILEGED_ROLES else 0

    def get_or_create_record(self, db: Session, user: User) -> ReputationRecord:
        """Return the user's record, creating it with the role seed if needed.

        Creation is an insert-or-ignore on the primary key so two writers
        racing on a brand new user end up with exactly one seeded record.
        """
        values = {
            "user_id": user.id,
            "reputation_points": self.seed_points(user),
            "accepted_answers_count": 0,
            "helpful_answers_count": 0,
            "questions_asked": 0,
            "answers_given": 0,
            "updated_at": utcnow(),
        }
        dialect = db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = pg_insert(ReputationRecord).values(**values).on_conflict_do_nothing(
                index_elements=["user_id"],
            )
            db.execute(stmt)
        elif dialect == "sqlite":
            stmt = sqlite_insert(ReputationRecord).values(**values).on_conflict_do_nothing(
                index_elements=["user_id"],
            )
            db.execute(stmt)
        elif self._load(db, user.id) is None:
            db.execute(insert(ReputationRecord).values(**values))

        return db.execute(
            select(ReputationRecord)
            .where(ReputationRecord.user_id == user.id)
            .execution_options(populate_existing=True)
        ).scalar_one()

    def apply_delta(
        self,
        db: Session,
        user: User,
        kind: EventKind,
        post_id: int | None = None,
    ) -> int:
        """Apply the delta for `kind` to `user` and return the new balance.

        Points never drop below zero; the clamp happens inside the UPDATE.
        """
        delta = EVENT_DELTAS[kind]
        before = self.get_or_create_record(db, user).reputation_points

        db.execute(
            update(ReputationRecord)
            .where(ReputationRecord.user_id == user.id)
            .values(
                reputation_points=case(
                    (ReputationRecord.reputation_points + delta < 0, 0),
                    else_=ReputationRecord.reputation_points + delta,
                ),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        after = self._points(db, user.id)

        db.add(
            ReputationEvent(
                user_id=user.id,
                kind=kind.value,
                delta=delta,
                applied_delta=after - before,
                points_after=after,
                post_id=post_id,
            )
        )
        db.flush()
        logger.debug(
            "Reputation %s for user %s: %s -> %s", kind.value, user.id, before, after
        )
        return after

    def participation_allowed(self, db: Session, user: User, now: datetime | None = None) -> bool:
        """Return True if `user` may still earn a point for casting a vote."""
        since = (now or utcnow()) - PARTICIPATION_WINDOW
        awarded = db.execute(
            select(func.count())
            .select_from(ReputationEvent)
            .where(
                ReputationEvent.user_id == user.id,
                ReputationEvent.kind == EventKind.VOTE_CAST.value,
                ReputationEvent.applied_delta > 0,
                ReputationEvent.created_at >= since,
            )
        ).scalar_one()
        return awarded < self.participation_daily_cap

    def record_question(self, db: Session, user: User) -> None:
        """Count a question asked by `user`."""
        self._adjust_counter(db, user, ReputationRecord.questions_asked, 1)

    def record_answer(self, db: Session, user: User, delta: int = 1) -> None:
        """Count (or uncount) an answer given by `user`."""
        self._adjust_counter(db, user, ReputationRecord.answers_given, delta)

    def record_accepted_answer(self, db: Session, user: User, delta: int) -> None:
        """Adjust the accepted answer count for `user`."""
        self._adjust_counter(db, user, ReputationRecord.accepted_answers_count, delta)

    def record_helpful_transition(
        self, db: Session, user: User, previous_count: int, new_count: int
    ) -> None:
        """Track answers crossing the helpful threshold in either direction."""
        threshold = self.helpful_threshold
        if previous_count < threshold <= new_count:
            self._adjust_counter(db, user, ReputationRecord.helpful_answers_count, 1)
        elif new_count < threshold <= previous_count:
            self._adjust_counter(db, user, ReputationRecord.helpful_answers_count, -1)

    def get_reputation(self, db: Session, user: User) -> ReputationSummary:
        """Return the user's reputation with tier and weight evaluated now."""
        record = self.get_or_create_record(db, user)
        tier = reputation_tier(record.reputation_points)
        return ReputationSummary(
            user_id=user.id,
            reputation_points=record.reputation_points,
            tier=tier.name,
            vote_weight=tier.vote_weight,
            accepted_answers_count=record.accepted_answers_count,
            helpful_answers_count=record.helpful_answers_count,
            questions_asked=record.questions_asked,
            answers_given=record.answers_given,
        )

    def current_weight(self, db: Session, user: User) -> float:
        """Return the vote weight `user` would cast with right now."""
        return vote_weight(self.get_or_create_record(db, user).reputation_points)

    def _adjust_counter(self, db: Session, user: User, column, delta: int) -> None:  # noqa: ANN001
        self.get_or_create_record(db, user)
        db.execute(
            update(ReputationRecord)
            .where(ReputationRecord.user_id == user.id)
            .values(
                {
                    column: case((column + delta < 0, 0), else_=column + delta),
                    ReputationRecord.updated_at: utcnow(),
                }
            )
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def _load(db: Session, user_id: int) -> ReputationRecord | None:
        return db.execute(
            select(ReputationRecord)
            .where(ReputationRecord.user_id == user_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    @staticmethod
    def _points(db: Session, user_id: int) -> int:
        return db.execute(
            select(ReputationRecord.reputation_points).where(ReputationRecord.user_id == user_id)
        ).scalar_one()


def get_user_or_404(db: Session, user_id: int) -> User:
    """Return the user with `user_id` or raise NotFound."""
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def get_reputation_ledger() -> ReputationLedger:
    """Return a reputation ledger configured from settings."""
    return ReputationLedger()
