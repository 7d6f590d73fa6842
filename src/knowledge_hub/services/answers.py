"""Accepted-answer state machine.

A post is either in ``no_accepted_answer`` or ``has_accepted_answer(comment)``.
Transitions keep `Post.accepted_answer_id` and `Comment.is_accepted_answer` in
agreement and drive the accepted-answer reputation deltas.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from knowledge_hub.core.errors import Conflict, Forbidden, NotFound, Unauthorized
from knowledge_hub.db.time import utcnow
from knowledge_hub.models import Comment, Post, User
from knowledge_hub.models.comment import COMMENT_STATUS_APPROVED
from knowledge_hub.services.locks import keyed_lock
from knowledge_hub.services.reputation import EventKind, ReputationLedger
from knowledge_hub.services.transactions import atomic

logger = logging.getLogger(__name__)

STATE_NO_ACCEPTED_ANSWER = "no_accepted_answer"
STATE_HAS_ACCEPTED_ANSWER = "has_accepted_answer"


@dataclass(frozen=True)
class AnswerState:
    """Accepted-answer state of one post."""

    post_id: int
    state: str
    comment_id: int | None = None

    @classmethod
    def of(cls, post: Post) -> AnswerState:
        if post.accepted_answer_id is None:
            return cls(post_id=post.id, state=STATE_NO_ACCEPTED_ANSWER)
        return cls(
            post_id=post.id,
            state=STATE_HAS_ACCEPTED_ANSWER,
            comment_id=post.accepted_answer_id,
        )


class AnswerStateMachine:
    """Accept and unaccept answers on behalf of the post author."""

    def __init__(self, ledger: ReputationLedger | None = None) -> None:
        self.ledger = ledger or ReputationLedger()

    def accept(self, db: Session, actor: User | None, post_id: int, comment_id: int) -> AnswerState:
        """Mark `comment_id` as the accepted answer of `post_id`.

        Any previously accepted answer is unmarked first. Accepting the answer
        that is already accepted changes nothing.

        Raises:
            Unauthorized: No identity was supplied.
            Forbidden: The actor is not the post author.
            NotFound: The post or comment does not exist.
            Conflict: The comment belongs to another post or is not approved.
            TransientStoreFailure: The store failed; nothing was applied.
        """
        if actor is None:
            raise Unauthorized("You must be logged in to accept an answer")

        with keyed_lock("accept", post_id), atomic(db, "Accept answer"):
            post = self._load_post(db, post_id)
            self._check_author(post, actor)
            comment = self._load_comment(db, comment_id)
            if comment.post_id != post.id:
                raise Conflict("Answer does not belong to this post")
            if comment.status != COMMENT_STATUS_APPROVED:
                raise Conflict("Only approved answers can be accepted")

            previous_id = post.accepted_answer_id
            if previous_id == comment.id:
                return AnswerState.of(post)

            now = utcnow()
            if previous_id is not None:
                previous = db.get(Comment, previous_id)
                # Clear the old flag before setting the new one; the partial
                # unique index allows one flagged answer per post.
                db.execute(
                    update(Comment)
                    .where(Comment.post_id == post.id, Comment.is_accepted_answer.is_(True))
                    .values(is_accepted_answer=False)
                    .execution_options(synchronize_session=False)
                )
                if previous is not None:
                    self._reverse_credit(db, post, previous)

            db.execute(
                update(Comment)
                .where(Comment.id == comment.id)
                .values(is_accepted_answer=True)
                .execution_options(synchronize_session=False)
            )
            db.execute(
                update(Post)
                .where(Post.id == post.id)
                .values(accepted_answer_id=comment.id, last_activity_at=now)
                .execution_options(synchronize_session=False)
            )
            self._grant_credit(db, post, comment)

        logger.debug(
            "Answer %s accepted on post %s (previous=%s)", comment_id, post_id, previous_id
        )
        return self.state(db, post_id)

    def unaccept(self, db: Session, actor: User | None, comment_id: int) -> AnswerState:
        """Clear the accepted flag from `comment_id`.

        Unaccepting an answer that is not accepted changes nothing.
        """
        if actor is None:
            raise Unauthorized("You must be logged in to unaccept an answer")

        comment = self._load_comment(db, comment_id)
        post_id = comment.post_id

        with keyed_lock("accept", post_id), atomic(db, "Unaccept answer"):
            post = self._load_post(db, post_id)
            self._check_author(post, actor)
            comment = self._load_comment(db, comment_id)
            if post.accepted_answer_id != comment.id and not comment.is_accepted_answer:
                return AnswerState.of(post)

            db.execute(
                update(Comment)
                .where(Comment.id == comment.id)
                .values(is_accepted_answer=False)
                .execution_options(synchronize_session=False)
            )
            db.execute(
                update(Post)
                .where(Post.id == post.id, Post.accepted_answer_id == comment.id)
                .values(accepted_answer_id=None)
                .execution_options(synchronize_session=False)
            )
            self._reverse_credit(db, post, comment)

        logger.debug("Answer %s unaccepted on post %s", comment_id, post_id)
        return self.state(db, post_id)

    def state(self, db: Session, post_id: int) -> AnswerState:
        """Return the current accepted-answer state of `post_id`."""
        return AnswerState.of(self._load_post(db, post_id))

    def _grant_credit(self, db: Session, post: Post, comment: Comment) -> None:
        if comment.author_id == post.author_id:
            return
        author = db.get(User, comment.author_id)
        if author is None:
            return
        self.ledger.apply_delta(db, author, EventKind.ANSWER_ACCEPTED, post_id=post.id)
        self.ledger.record_accepted_answer(db, author, 1)

    def _reverse_credit(self, db: Session, post: Post, comment: Comment) -> None:
        if comment.author_id == post.author_id:
            return
        author = db.get(User, comment.author_id)
        if author is None:
            return
        self.ledger.apply_delta(db, author, EventKind.ANSWER_UNACCEPTED, post_id=post.id)
        self.ledger.record_accepted_answer(db, author, -1)

    @staticmethod
    def _check_author(post: Post, actor: User) -> None:
        if post.author_id != actor.id:
            raise Forbidden("Only the post author can change the accepted answer")

    @staticmethod
    def _load_post(db: Session, post_id: int) -> Post:
        post = db.execute(
            select(Post)
            .where(Post.id == post_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if post is None:
            raise NotFound("Post not found")
        return post

    @staticmethod
    def _load_comment(db: Session, comment_id: int) -> Comment:
        comment = db.execute(
            select(Comment)
            .where(Comment.id == comment_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if comment is None:
            raise NotFound("Answer not found")
        return comment


def list_answers(db: Session, post_id: int) -> list[Comment]:
    """Return approved answers: accepted first, then most up-voted, then newest."""
    return list(
        db.execute(
            select(Comment)
            .where(Comment.post_id == post_id, Comment.status == COMMENT_STATUS_APPROVED)
            .order_by(
                Comment.is_accepted_answer.desc(),
                Comment.upvote_count.desc(),
                Comment.created_at.desc(),
                Comment.id.desc(),
            )
        ).scalars()
    )


def get_answer_state_machine() -> AnswerStateMachine:
    """Return an answer state machine backed by the default ledger."""
    return AnswerStateMachine()
