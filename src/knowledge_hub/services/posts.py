"""Post authoring, moderation and listing."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from knowledge_hub.core.errors import (
    Conflict,
    Forbidden,
    NotFound,
    TransientStoreFailure,
    Unauthorized,
)
from knowledge_hub.core.settings import settings
from knowledge_hub.db.time import utcnow
from knowledge_hub.models import EditSuggestion, Post, PostVersion, User
from knowledge_hub.models.post import (
    POST_STATUS_APPROVED,
    POST_STATUS_PENDING,
    POST_STATUSES,
)
from knowledge_hub.models.suggestion import (
    EDIT_TYPE_CHANGES,
    SUGGESTION_STATUS_APPROVED,
    SUGGESTION_STATUS_PENDING,
    SUGGESTION_STATUS_REJECTED,
    SUGGESTION_STATUSES,
)
from knowledge_hub.services.locks import keyed_lock
from knowledge_hub.services.reputation import ReputationLedger
from knowledge_hub.services.slugs import (
    SLUG_MAX_ATTEMPTS,
    allocate_slug,
    append_version,
    is_slug_collision,
)
from knowledge_hub.services.transactions import atomic
from knowledge_hub.services.trending import rank_trending, related_posts, sort_posts

logger = logging.getLogger(__name__)

EXCERPT_MAX_CHARS = 160
RELATED_CANDIDATES = 50

T = TypeVar("T")


def _default_excerpt(content: str) -> str:
    return content.strip()[:EXCERPT_MAX_CHARS]


def _retry_slug_collisions(action: Callable[[], T], description: str) -> T:
    """Run `action`, retrying when another process claimed the same slug first.

    The keyed slug lock only orders writers inside one process; across
    processes the unique index on `post.slug` is the arbiter. Each retry runs a
    fresh transaction, so the winner's slug is visible and gets skipped.
    """
    for attempt in range(1, SLUG_MAX_ATTEMPTS + 1):
        try:
            return action()
        except TransientStoreFailure as err:
            if not is_slug_collision(err.__cause__):
                raise
            logger.info("%s lost a slug race (attempt %d)", description, attempt)
    raise Conflict("Could not allocate a unique slug, please retry")


def create_post(
    db: Session,
    author: User | None,
    title: str,
    content: str,
    excerpt: str | None = None,
    category_id: int | None = None,
    tags: list[str] | None = None,
    ledger: ReputationLedger | None = None,
) -> tuple[Post, PostVersion]:
    """Create a post with its slug and initial ``created`` version.

    Moderators and admins publish directly; everyone else lands in the
    moderation queue.
    """
    if author is None:
        raise Unauthorized("You must be logged in to create posts")
    ledger = ledger or ReputationLedger()
    author_id = author.id
    can_publish = author.can_moderate

    def _create() -> tuple[Post, PostVersion]:
        now = utcnow()
        with keyed_lock("slug"), atomic(db, "Create post"):
            post = Post(
                title=title,
                slug=allocate_slug(db, title),
                content=content,
                excerpt=excerpt if excerpt is not None else _default_excerpt(content),
                category_id=category_id,
                tags=list(tags or []),
                author_id=author_id,
                status=POST_STATUS_APPROVED if can_publish else POST_STATUS_PENDING,
                published_at=now if can_publish else None,
                created_at=now,
                last_activity_at=now,
            )
            db.add(post)
            db.flush()
            version = append_version(db, post, author, summary="Initial creation")
            ledger.record_question(db, author)
        return post, version

    post, version = _retry_slug_collisions(_create, "Create post")
    logger.info("Post %s created by user %s with slug %r", post.id, author_id, post.slug)
    return post, version


def _apply_revision(
    db: Session,
    post: Post,
    title: str | None,
    content: str | None,
    excerpt: str | None,
) -> None:
    # The slug follows the title only when the title actually changes.
    if title is not None and title != post.title:
        post.slug = allocate_slug(db, title, existing_slug=post.slug, post_id=post.id)
        post.title = title
    if content is not None:
        post.content = content
    if excerpt is not None:
        post.excerpt = excerpt
    post.last_edited_at = utcnow()


def _lock_post(db: Session, post_id: int) -> Post:
    post = db.execute(
        select(Post)
        .where(Post.id == post_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if post is None:
        raise NotFound("Post not found")
    return post


def edit_post(
    db: Session,
    editor: User | None,
    post_id: int,
    *,
    title: str | None = None,
    content: str | None = None,
    excerpt: str | None = None,
    category_id: int | None = None,
    tags: list[str] | None = None,
    change_type: str | None = None,
    summary: str | None = None,
) -> tuple[Post, PostVersion]:
    """Apply an edit and append the next version.

    The slug changes only when the title changes and yields a different slug.
    """
    if editor is None:
        raise Unauthorized("You must be logged in to edit posts")
    editor_id = editor.id

    def _edit() -> tuple[Post, PostVersion]:
        with keyed_lock("slug"), atomic(db, "Edit post"):
            post = _lock_post(db, post_id)
            if post.author_id != editor_id and not editor.can_moderate:
                raise Forbidden("Only the author or a moderator can edit this post")
            _apply_revision(db, post, title, content, excerpt)
            if category_id is not None:
                post.category_id = category_id
            if tags is not None:
                post.tags = list(tags)
            db.flush()
            version = append_version(db, post, editor, change_type=change_type, summary=summary)
        return post, version

    post, version = _retry_slug_collisions(_edit, "Edit post")
    logger.info("Post %s edited by user %s (version %s)", post.id, editor_id, version.version_number)
    return post, version


def suggest_edit(
    db: Session,
    suggester: User | None,
    post_id: int,
    *,
    content: str,
    edit_type: str = "content_edit",
    title: str | None = None,
    excerpt: str | None = None,
    summary: str | None = None,
) -> EditSuggestion:
    """Queue a proposed revision of an approved post for moderator review."""
    if suggester is None:
        raise Unauthorized("You must be logged in to suggest edits")
    if edit_type not in EDIT_TYPE_CHANGES:
        raise Conflict(f"Unknown edit type: {edit_type}")
    if not content.strip():
        raise Conflict("Suggested content must not be empty")

    with atomic(db, "Suggest edit"):
        exists = db.execute(
            select(Post.id).where(Post.id == post_id, Post.status == POST_STATUS_APPROVED)
        ).scalar_one_or_none()
        if exists is None:
            raise NotFound("Post not found")
        suggestion = EditSuggestion(
            post_id=post_id,
            suggester_id=suggester.id,
            edit_type=edit_type,
            suggested_title=title or None,
            suggested_excerpt=excerpt or None,
            suggested_content=content,
            edit_summary=summary,
            status=SUGGESTION_STATUS_PENDING,
            created_at=utcnow(),
        )
        db.add(suggestion)
        db.flush()

    logger.info("Edit suggestion %s on post %s by user %s", suggestion.id, post_id, suggester.id)
    return suggestion


def _require_moderator(user: User | None, action: str) -> User:
    if user is None:
        raise Unauthorized(f"You must be logged in to {action}")
    if not user.can_moderate:
        raise Forbidden("Moderator privileges required")
    return user


def _lock_pending_suggestion(db: Session, suggestion_id: int) -> EditSuggestion:
    suggestion = db.execute(
        select(EditSuggestion)
        .where(EditSuggestion.id == suggestion_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if suggestion is None:
        raise NotFound("Edit suggestion not found")
    if suggestion.status != SUGGESTION_STATUS_PENDING:
        raise Conflict(f"Edit suggestion was already {suggestion.status}")
    return suggestion


def approve_suggestion(
    db: Session, moderator: User | None, suggestion_id: int
) -> tuple[Post, PostVersion, EditSuggestion]:
    """Merge a pending suggestion into its post as the next version.

    The version is credited to the suggester and carries the change type of
    the suggested edit; the suggestion records the version it became.
    """
    moderator = _require_moderator(moderator, "review edit suggestions")
    moderator_id = moderator.id

    def _approve() -> tuple[Post, PostVersion, EditSuggestion]:
        with keyed_lock("slug"), atomic(db, "Approve edit suggestion"):
            suggestion = _lock_pending_suggestion(db, suggestion_id)
            post = _lock_post(db, suggestion.post_id)
            suggester = db.get(User, suggestion.suggester_id)
            if suggester is None:
                raise NotFound("Suggester not found")

            _apply_revision(
                db,
                post,
                suggestion.suggested_title,
                suggestion.suggested_content,
                suggestion.suggested_excerpt,
            )
            db.flush()
            version = append_version(
                db,
                post,
                suggester,
                change_type=suggestion.change_type,
                summary=suggestion.edit_summary,
            )
            suggestion.status = SUGGESTION_STATUS_APPROVED
            suggestion.merged_as_version = version.version_number
            suggestion.reviewer_id = moderator_id
            suggestion.reviewed_at = utcnow()
            db.flush()
        return post, version, suggestion

    post, version, suggestion = _retry_slug_collisions(_approve, "Approve edit suggestion")
    logger.info(
        "Edit suggestion %s merged into post %s as version %s by user %s",
        suggestion_id,
        post.id,
        version.version_number,
        moderator_id,
    )
    return post, version, suggestion


def reject_suggestion(
    db: Session, moderator: User | None, suggestion_id: int, notes: str | None = None
) -> EditSuggestion:
    """Close a pending suggestion without touching the post."""
    moderator = _require_moderator(moderator, "review edit suggestions")

    with atomic(db, "Reject edit suggestion"):
        suggestion = _lock_pending_suggestion(db, suggestion_id)
        suggestion.status = SUGGESTION_STATUS_REJECTED
        suggestion.reviewer_id = moderator.id
        suggestion.reviewer_notes = notes
        suggestion.reviewed_at = utcnow()
        db.flush()

    logger.info("Edit suggestion %s rejected by user %s", suggestion_id, moderator.id)
    return suggestion


def list_suggestions(
    db: Session,
    moderator: User | None,
    status: str = SUGGESTION_STATUS_PENDING,
    post_id: int | None = None,
) -> list[EditSuggestion]:
    """Return suggestions in `status`, oldest first."""
    _require_moderator(moderator, "review edit suggestions")
    if status not in SUGGESTION_STATUSES:
        raise Conflict(f"Unknown suggestion status: {status}")
    stmt = select(EditSuggestion).where(EditSuggestion.status == status)
    if post_id is not None:
        stmt = stmt.where(EditSuggestion.post_id == post_id)
    stmt = stmt.order_by(EditSuggestion.created_at, EditSuggestion.id)
    return list(db.execute(stmt).scalars())



def set_post_status(db: Session, moderator: User | None, post_id: int, status: str) -> Post:
    """Move a post through moderation. Counters are left as they are."""
    if moderator is None:
        raise Unauthorized("You must be logged in to moderate posts")
    if not moderator.can_moderate:
        raise Forbidden("Moderator privileges required")
    if status not in POST_STATUSES:
        raise Conflict(f"Unknown post status: {status}")

    with atomic(db, "Set post status"):
        post = db.get(Post, post_id, with_for_update=True)
        if post is None:
            raise NotFound("Post not found")
        post.status = status
        if status == POST_STATUS_APPROVED and post.published_at is None:
            post.published_at = utcnow()

    logger.info("Post %s moved to %s by user %s", post_id, status, moderator.id)
    return post


def record_view(db: Session, post_id: int) -> int:
    """Count one view of an approved post and return the new view count."""
    with atomic(db, "Record view"):
        result = db.execute(
            update(Post)
            .where(Post.id == post_id, Post.status == POST_STATUS_APPROVED)
            .values(view_count=Post.view_count + 1, last_activity_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFound("Post not found")
        views = db.execute(select(Post.view_count).where(Post.id == post_id)).scalar_one()
    return views


def get_post(db: Session, post_id: int, viewer: User | None = None) -> Post:
    """Return a post visible to `viewer` or raise NotFound."""
    post = db.get(Post, post_id)
    if post is None or not _visible(post, viewer):
        raise NotFound("Post not found")
    return post


def get_post_by_slug(db: Session, slug: str, viewer: User | None = None) -> Post:
    """Return the post with `slug` if `viewer` may see it."""
    post = db.execute(select(Post).where(Post.slug == slug)).scalar_one_or_none()
    if post is None or not _visible(post, viewer):
        raise NotFound("Post not found")
    return post


def _visible(post: Post, viewer: User | None) -> bool:
    if post.status == POST_STATUS_APPROVED:
        return True
    if viewer is None:
        return False
    return viewer.can_moderate or viewer.id == post.author_id


def list_posts(
    db: Session,
    mode: str = "recent",
    as_of: datetime | None = None,
    category_id: int | None = None,
    tag: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[Post]:
    """Return approved posts ordered by `mode`."""
    stmt = select(Post).where(Post.status == POST_STATUS_APPROVED)
    if category_id is not None:
        stmt = stmt.where(Post.category_id == category_id)
    posts = list(db.execute(stmt).scalars())
    if tag is not None:
        posts = [post for post in posts if tag in (post.tags or [])]
    ordered = sort_posts(posts, mode, as_of or utcnow())
    return ordered[offset : offset + limit]


def trending_posts(
    db: Session,
    as_of: datetime | None = None,
    limit: int | None = None,
) -> list[tuple[Post, float]]:
    """Return approved posts with recent activity, ranked by trending score."""
    as_of = as_of or utcnow()
    since = as_of - timedelta(days=settings.trending_window_days)
    activity = func.coalesce(Post.last_activity_at, Post.published_at, Post.created_at)
    candidates = db.execute(
        select(Post).where(Post.status == POST_STATUS_APPROVED, activity >= since)
    ).scalars()
    return rank_trending(candidates, as_of, limit=limit or settings.trending_limit)


def related_to(db: Session, post: Post, limit: int = 5) -> list[Post]:
    """Return approved posts related to `post` by category, tags and popularity."""
    stmt = (
        select(Post)
        .where(Post.status == POST_STATUS_APPROVED, Post.id != post.id)
        .order_by(Post.last_activity_at.desc())
        .limit(RELATED_CANDIDATES)
    )
    return related_posts(post, list(db.execute(stmt).scalars()), limit=limit)
