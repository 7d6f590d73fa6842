"""Trending score and listing order for knowledge posts.

Everything here is a pure function of the stored counters and timestamps, so
scores can be recomputed at any time and never need to be persisted.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta
from typing import Literal, Protocol, TypeVar

from knowledge_hub.core.settings import settings
from knowledge_hub.db.time import as_utc

COMMENT_WEIGHT = 50
UPVOTE_WEIGHT = 10
VIEW_WEIGHT = 0.5
ACCEPTED_ANSWER_BONUS = 20

SortMode = Literal["recent", "popular", "answered", "unanswered", "trending"]
SORT_MODES: tuple[str, ...] = ("recent", "popular", "answered", "unanswered", "trending")

_EPOCH = datetime.min.replace(tzinfo=UTC)


class ScoredPost(Protocol):
    """Attributes the ranking functions read from a post."""

    id: int
    category_id: int | None
    tags: list[str] | None
    view_count: int
    upvote_count: int
    comment_count: int
    accepted_answer_id: int | None
    created_at: datetime | None
    published_at: datetime | None
    last_activity_at: datetime | None


P = TypeVar("P", bound=ScoredPost)


def activity_time(post: ScoredPost) -> datetime:
    """Return the last activity time, falling back to publication then creation."""
    for value in (post.last_activity_at, post.published_at, post.created_at):
        if value is not None:
            return as_utc(value)
    return _EPOCH


def is_recent(post: ScoredPost, as_of: datetime, window_days: int | None = None) -> bool:
    """Return True if the post had activity inside the trending window."""
    days = settings.trending_window_days if window_days is None else window_days
    return activity_time(post) >= as_utc(as_of) - timedelta(days=days)


def trending_score(post: ScoredPost, as_of: datetime, window_days: int | None = None) -> float:
    """Return the trending score of `post` at `as_of`.

    Answers weigh most, then up-votes, then views; an accepted answer adds a
    flat bonus. Posts without activity in the window score 0.
    """
    if not is_recent(post, as_of, window_days):
        return 0.0
    score = (
        (post.comment_count or 0) * COMMENT_WEIGHT
        + (post.upvote_count or 0) * UPVOTE_WEIGHT
        + (post.view_count or 0) * VIEW_WEIGHT
    )
    if post.accepted_answer_id is not None:
        score += ACCEPTED_ANSWER_BONUS
    return float(score)


def rank_trending(
    posts: Iterable[P],
    as_of: datetime,
    limit: int | None = None,
    window_days: int | None = None,
) -> list[tuple[P, float]]:
    """Return (post, score) pairs with a positive score, best first.

    Equal scores are ordered by most recent activity.
    """
    scored = [(post, trending_score(post, as_of, window_days)) for post in posts]
    ranked = sorted(
        (pair for pair in scored if pair[1] > 0),
        key=lambda pair: (pair[1], activity_time(pair[0])),
        reverse=True,
    )
    return ranked if limit is None else ranked[:limit]


def is_unanswered(post: ScoredPost) -> bool:
    """Return True if the post has no answers and no accepted answer."""
    return post.accepted_answer_id is None and (post.comment_count or 0) == 0


def sort_posts(posts: Iterable[P], mode: str, as_of: datetime) -> list[P]:
    """Order posts for a hub listing.

    Modes: ``recent`` (latest activity), ``popular`` (up-votes), ``answered``
    (accepted answers first, then answer count), ``unanswered`` (unanswered
    first, then latest activity) and ``trending`` (trending score).
    """
    items = list(posts)
    # Sorts are stable: apply the recency order first, then the primary key.
    items.sort(key=activity_time, reverse=True)
    if mode == "recent":
        return items
    if mode == "popular":
        return sorted(items, key=lambda p: p.upvote_count or 0, reverse=True)
    if mode == "answered":
        return sorted(
            items,
            key=lambda p: (p.accepted_answer_id is not None, p.comment_count or 0),
            reverse=True,
        )
    if mode == "unanswered":
        return sorted(items, key=is_unanswered, reverse=True)
    if mode == "trending":
        return sorted(items, key=lambda p: trending_score(p, as_of), reverse=True)
    raise ValueError(f"Unknown sort mode: {mode}")


def related_posts(post: ScoredPost, candidates: Sequence[P], limit: int = 5) -> list[P]:
    """Return the posts most related to `post` among `candidates`.

    Same category scores 5, each shared tag 3, plus a small popularity boost
    of views/100 and up-votes/2.
    """
    own_tags = set(post.tags or [])

    def relatedness(other: P) -> float:
        score = 0.0
        if post.category_id is not None and other.category_id == post.category_id:
            score += 5
        score += 3 * len(own_tags & set(other.tags or []))
        score += (other.view_count or 0) / 100
        score += (other.upvote_count or 0) * 0.5
        return score

    others = [other for other in candidates if other.id != post.id]
    return sorted(others, key=relatedness, reverse=True)[:limit]
