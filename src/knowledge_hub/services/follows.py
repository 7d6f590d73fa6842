"""Follow toggling on posts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from knowledge_hub.core.errors import NotFound, Unauthorized
from knowledge_hub.models import Follow, Post, User
from knowledge_hub.services.locks import keyed_lock
from knowledge_hub.services.transactions import atomic

logger = logging.getLogger(__name__)

FollowAction = Literal["followed", "unfollowed"]


@dataclass(frozen=True)
class FollowToggleResult:
    action: FollowAction
    followers_count: int


def toggle_follow(db: Session, actor: User | None, post_id: int) -> FollowToggleResult:
    """Follow the post if the actor does not follow it yet, unfollow otherwise.

    `Post.followers_count` changes in the same transaction as the follow row.
    """
    if actor is None:
        raise Unauthorized("You must be logged in to follow posts")
    if db.get(Post, post_id) is None:
        raise NotFound("Post not found")

    with keyed_lock("follow", post_id), atomic(db, "Follow toggle"):
        db.execute(select(Post.id).where(Post.id == post_id).with_for_update())
        existing = db.execute(
            select(Follow)
            .where(Follow.user_id == actor.id, Follow.post_id == post_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if existing is None:
            db.add(Follow(user_id=actor.id, post_id=post_id, notification_enabled=True))
            delta = 1
            action: FollowAction = "followed"
        else:
            db.delete(existing)
            delta = -1
            action = "unfollowed"
        db.flush()

        db.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(
                followers_count=case(
                    (Post.followers_count + delta < 0, 0),
                    else_=Post.followers_count + delta,
                )
            )
            .execution_options(synchronize_session=False)
        )
        followers = db.execute(select(Post.followers_count).where(Post.id == post_id)).scalar_one()

    logger.debug("User %s %s post %s", actor.id, action, post_id)
    return FollowToggleResult(action=action, followers_count=followers)


def is_following(db: Session, actor: User, post_id: int) -> bool:
    """Return True if `actor` follows the post."""
    return db.get(Follow, (actor.id, post_id)) is not None
