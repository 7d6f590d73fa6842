"""Answer creation and moderation.

Only approved answers count toward `Post.comment_count` and the author's
`answers_given`; answers containing links wait in moderation first.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from knowledge_hub.core.errors import Conflict, Forbidden, NotFound, Unauthorized
from knowledge_hub.db.time import utcnow
from knowledge_hub.models import Comment, Post, User
from knowledge_hub.models.comment import (
    COMMENT_STATUS_APPROVED,
    COMMENT_STATUS_PENDING,
    COMMENT_STATUSES,
)
from knowledge_hub.models.post import POST_STATUS_APPROVED
from knowledge_hub.services.locks import keyed_lock
from knowledge_hub.services.notifier import NewAnswerSummary
from knowledge_hub.services.reputation import ReputationLedger
from knowledge_hub.services.transactions import atomic

logger = logging.getLogger(__name__)

_URL_PATTERN = re.compile(r"https?://", re.IGNORECASE)


def contains_url(content: str) -> bool:
    """Return True if `content` contains an http(s) link."""
    return _URL_PATTERN.search(content) is not None


def create_comment(
    db: Session,
    author: User | None,
    post_id: int,
    content: str,
    ledger: ReputationLedger | None = None,
) -> Comment:
    """Add an answer to an approved post."""
    if author is None:
        raise Unauthorized("You must be logged in to answer")
    content = content.strip()
    if not content:
        raise Conflict("Answer content must not be empty")
    ledger = ledger or ReputationLedger()
    has_urls = contains_url(content)

    with keyed_lock("comment", post_id), atomic(db, "Create answer"):
        post = db.execute(
            select(Post).where(Post.id == post_id, Post.status == POST_STATUS_APPROVED)
        ).scalar_one_or_none()
        if post is None:
            raise NotFound("Post not found")

        comment = Comment(
            post_id=post_id,
            author_id=author.id,
            content=content,
            status=COMMENT_STATUS_PENDING if has_urls else COMMENT_STATUS_APPROVED,
            has_urls=has_urls,
            created_at=utcnow(),
        )
        db.add(comment)
        db.flush()
        if not has_urls:
            _count_answer(db, ledger, post_id, author, 1)

    logger.info(
        "Answer %s on post %s by user %s (%s)", comment.id, post_id, author.id, comment.status
    )
    return comment


def set_comment_status(
    db: Session,
    moderator: User | None,
    comment_id: int,
    status: str,
    ledger: ReputationLedger | None = None,
) -> Comment:
    """Approve or reject an answer, keeping the answer counters in step."""
    if moderator is None:
        raise Unauthorized("You must be logged in to moderate answers")
    if not moderator.can_moderate:
        raise Forbidden("Moderator privileges required")
    if status not in COMMENT_STATUSES:
        raise Conflict(f"Unknown answer status: {status}")
    ledger = ledger or ReputationLedger()

    comment = db.get(Comment, comment_id)
    if comment is None:
        raise NotFound("Answer not found")
    post_id = comment.post_id

    with keyed_lock("comment", post_id), atomic(db, "Set answer status"):
        comment = db.execute(
            select(Comment)
            .where(Comment.id == comment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one()
        previous = comment.status
        if previous == status:
            return comment
        if comment.is_accepted_answer and status != COMMENT_STATUS_APPROVED:
            raise Conflict("Unaccept the answer before removing it")

        comment.status = status
        author = db.get(User, comment.author_id)
        if author is not None:
            if status == COMMENT_STATUS_APPROVED:
                _count_answer(db, ledger, post_id, author, 1)
            elif previous == COMMENT_STATUS_APPROVED:
                _count_answer(db, ledger, post_id, author, -1)
        db.flush()

    logger.info("Answer %s moved %s -> %s by user %s", comment_id, previous, status, moderator.id)
    return comment


def _count_answer(
    db: Session, ledger: ReputationLedger, post_id: int, author: User, delta: int
) -> None:
    values: dict = {
        "comment_count": case(
            (Post.comment_count + delta < 0, 0),
            else_=Post.comment_count + delta,
        )
    }
    if delta > 0:
        values["last_activity_at"] = utcnow()
    db.execute(
        update(Post)
        .where(Post.id == post_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    ledger.record_answer(db, author, delta)


def answer_summary(comment: Comment, author: User) -> NewAnswerSummary:
    """Return the follower notification summary for an approved answer."""
    return NewAnswerSummary(
        comment_id=comment.id,
        answerer_id=author.id,
        answerer_name=author.public_name,
        content=comment.content,
    )
