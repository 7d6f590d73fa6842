"""Vote coordination: idempotent up-vote toggles on posts and answers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from knowledge_hub.core.errors import NotFound, Unauthorized
from knowledge_hub.models import Comment, Post, User, Vote
from knowledge_hub.models.comment import COMMENT_STATUS_APPROVED
from knowledge_hub.models.post import POST_STATUS_APPROVED
from knowledge_hub.models.vote import TARGET_COMMENT, TARGET_POST
from knowledge_hub.services.locks import keyed_lock
from knowledge_hub.services.rate_limit import VoteRateLimiter, get_vote_rate_limiter
from knowledge_hub.services.reputation import EventKind, ReputationLedger
from knowledge_hub.services.transactions import atomic

logger = logging.getLogger(__name__)

VoteAction = Literal["added", "removed"]
VoteTarget = Post | Comment

_AUTHOR_EVENTS: dict[str, tuple[EventKind, EventKind]] = {
    TARGET_POST: (EventKind.QUESTION_UPVOTED, EventKind.QUESTION_UPVOTE_REMOVED),
    TARGET_COMMENT: (EventKind.ANSWER_UPVOTED, EventKind.ANSWER_UPVOTE_REMOVED),
}


@dataclass(frozen=True)
class VoteToggleResult:
    """Authoritative outcome of a toggle."""

    action: VoteAction
    resulting_count: int
    vote_weight: float


class VoteCoordinator:
    """Enforces at most one vote per (voter, target) and keeps counters in step.

    The whole toggle (vote row, target counter, reputation deltas) is one
    transaction. Writers on the same target are serialized by a keyed lock in
    process and a row lock on the target in the database.
    """

    def __init__(
        self,
        ledger: ReputationLedger | None = None,
        rate_limiter: VoteRateLimiter | None = None,
    ) -> None:
        self.ledger = ledger or ReputationLedger()
        self.rate_limiter = rate_limiter or get_vote_rate_limiter()

    def toggle_vote(
        self,
        db: Session,
        voter: User | None,
        target_type: str,
        target_id: int,
    ) -> VoteToggleResult:
        """Add the voter's vote if absent, remove it if present.

        Raises:
            Unauthorized: No voter identity was supplied.
            NotFound: The target does not exist or is not open for voting.
            RateLimited: The voter exceeded a rate window.
            TransientStoreFailure: The store failed; nothing was applied.
        """
        if voter is None:
            raise Unauthorized("You must be logged in to vote")
        model = _target_model(target_type)
        if self._load_target(db, model, target_id) is None:
            raise NotFound(f"{target_type.capitalize()} not found")

        recorded = self.rate_limiter.hit(voter.id)
        try:
            with keyed_lock("vote", target_type, target_id), atomic(db, "Vote toggle"):
                result = self._toggle_locked(db, voter, target_type, model, target_id)
        except Exception:
            # A rolled-back toggle does not count against the limits.
            self.rate_limiter.release(recorded)
            raise

        logger.debug(
            "Vote %s by user %s on %s %s (count=%s)",
            result.action,
            voter.id,
            target_type,
            target_id,
            result.resulting_count,
        )
        return result

    def get_vote_state(self, db: Session, voter: User | None, target_type: str, target_id: int) -> bool:
        """Return True if `voter` has an active vote on the target."""
        if voter is None:
            raise Unauthorized("You must be logged in to view your vote")
        _target_model(target_type)
        return db.get(Vote, (voter.id, target_type, target_id)) is not None

    def _toggle_locked(
        self,
        db: Session,
        voter: User,
        target_type: str,
        model: type[VoteTarget],
        target_id: int,
    ) -> VoteToggleResult:
        target = self._load_target(db, model, target_id, for_update=True)
        if target is None:
            raise NotFound(f"{target_type.capitalize()} not found")

        author = db.get(User, target.author_id)
        self_vote = target.author_id == voter.id
        added_event, removed_event = _AUTHOR_EVENTS[target_type]
        post_id = target.id if isinstance(target, Post) else target.post_id
        previous_count = target.upvote_count

        existing = db.execute(
            select(Vote)
            .where(
                Vote.voter_id == voter.id,
                Vote.target_type == target_type,
                Vote.target_id == target_id,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if existing is None:
            weight = self.ledger.current_weight(db, voter)
            awarded = not self_vote and self.ledger.participation_allowed(db, voter)
            db.add(
                Vote(
                    voter_id=voter.id,
                    target_type=target_type,
                    target_id=target_id,
                    weight=weight,
                    participation_awarded=awarded,
                )
            )
            db.flush()
            self._bump_counter(db, model, target_id, 1)
            if not self_vote and author is not None:
                self.ledger.apply_delta(db, author, added_event, post_id=post_id)
            if awarded:
                self.ledger.apply_delta(db, voter, EventKind.VOTE_CAST, post_id=post_id)
            action: VoteAction = "added"
        else:
            weight = float(existing.weight)
            awarded = existing.participation_awarded
            db.delete(existing)
            db.flush()
            self._bump_counter(db, model, target_id, -1)
            if not self_vote and author is not None:
                self.ledger.apply_delta(db, author, removed_event, post_id=post_id)
            if awarded:
                self.ledger.apply_delta(db, voter, EventKind.VOTE_RETRACTED, post_id=post_id)
            action = "removed"

        resulting_count = db.execute(
            select(model.upvote_count).where(model.id == target_id)
        ).scalar_one()

        if model is Comment and author is not None and not self_vote:
            self.ledger.record_helpful_transition(db, author, previous_count, resulting_count)

        return VoteToggleResult(action=action, resulting_count=resulting_count, vote_weight=weight)

    @staticmethod
    def _bump_counter(db: Session, model: type[VoteTarget], target_id: int, delta: int) -> None:
        if delta >= 0:
            new_value = model.upvote_count + delta
        else:
            new_value = case(
                (model.upvote_count + delta < 0, 0),
                else_=model.upvote_count + delta,
            )
        db.execute(
            update(model)
            .where(model.id == target_id)
            .values(upvote_count=new_value)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def _load_target(
        db: Session,
        model: type[VoteTarget],
        target_id: int,
        *,
        for_update: bool = False,
    ) -> VoteTarget | None:
        if model is Post:
            stmt = select(Post).where(Post.id == target_id, Post.status == POST_STATUS_APPROVED)
        else:
            stmt = (
                select(Comment)
                .join(Post, Post.id == Comment.post_id)
                .where(
                    Comment.id == target_id,
                    Comment.status == COMMENT_STATUS_APPROVED,
                    Post.status == POST_STATUS_APPROVED,
                )
            )
        stmt = stmt.execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update(of=model)
        return db.execute(stmt).scalar_one_or_none()


def _target_model(target_type: str) -> type[VoteTarget]:
    if target_type == TARGET_POST:
        return Post
    if target_type == TARGET_COMMENT:
        return Comment
    raise NotFound(f"Unknown vote target type: {target_type}")


def get_vote_coordinator() -> VoteCoordinator:
    """Return a vote coordinator wired to the shared rate limiter."""
    return VoteCoordinator()
