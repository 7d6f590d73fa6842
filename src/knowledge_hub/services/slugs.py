"""Slug allocation and append-only post version history."""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from knowledge_hub.core.errors import Conflict
from knowledge_hub.models import Post, PostVersion, User
from knowledge_hub.models.version import CHANGE_CREATED, CHANGE_MINOR_EDIT, EDIT_CHANGE_TYPES

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 100
SLUG_MAX_ATTEMPTS = 3
DEFAULT_SLUG = "post"
# Microseconds since the epoch; the suffix allocate_slug appends.
SUFFIX_MIN_DIGITS = 16

_INVALID_CHARS = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def slugify(title: str) -> str:
    """Return the URL slug candidate for `title`.

    >>> slugify("How do I apply?")
    'how-do-i-apply'
    """
    slug = _INVALID_CHARS.sub("", title.lower())
    slug = _WHITESPACE.sub("-", slug.strip())
    slug = _HYPHENS.sub("-", slug).strip("-")
    slug = slug[:SLUG_MAX_LENGTH].rstrip("-")
    return slug or DEFAULT_SLUG


def _is_variant(existing_slug: str, candidate: str) -> bool:
    """Return True if `existing_slug` is `candidate` or a timestamp-suffixed copy of it.

    Only suffixes `allocate_slug` produces count; a number that belongs to the
    title itself (``visa-fees-2024``) does not.
    """
    pattern = rf"{re.escape(candidate)}(-\d{{{SUFFIX_MIN_DIGITS},}})?"
    return re.fullmatch(pattern, existing_slug) is not None


def is_slug_collision(err: BaseException | None) -> bool:
    """Return True if `err` is a unique violation on `post.slug`."""
    return isinstance(err, IntegrityError) and "slug" in str(err.orig).lower()


def _slug_owner(db: Session, slug: str) -> int | None:
    return db.execute(select(Post.id).where(Post.slug == slug)).scalar_one_or_none()


def allocate_slug(
    db: Session,
    title: str,
    existing_slug: str | None = None,
    post_id: int | None = None,
    clock: Callable[[], int] = time.time_ns,
) -> str:
    """Return a slug for `title` that no other post uses.

    A post keeps `existing_slug` when retitling yields the same candidate. A
    candidate owned by a different post gets a microsecond timestamp suffix.

    Args:
        db: Session used to look up slugs already taken.
        title: Title the slug is derived from.
        existing_slug: The post's current slug, if it has one.
        post_id: The post being slugged; its own slug never counts as taken.
        clock: Nanosecond clock used for the disambiguating suffix.

    Raises:
        Conflict: No free slug was found after `SLUG_MAX_ATTEMPTS` suffixes.
    """
    candidate = slugify(title)
    if existing_slug and _is_variant(existing_slug, candidate):
        return existing_slug

    owner = _slug_owner(db, candidate)
    if owner is None or owner == post_id:
        return candidate

    for _ in range(SLUG_MAX_ATTEMPTS):
        suffixed = f"{candidate}-{clock() // 1_000}"
        owner = _slug_owner(db, suffixed)
        if owner is None or owner == post_id:
            logger.debug("Slug %r taken, allocated %r", candidate, suffixed)
            return suffixed

    raise Conflict(f"Could not allocate a unique slug for {title!r}")


def append_version(
    db: Session,
    post: Post,
    editor: User,
    change_type: str | None = None,
    summary: str | None = None,
) -> PostVersion:
    """Snapshot the post's editable fields as its next version.

    The first version of a post is always ``created``; later ones are
    ``minor_edit`` (the default) or ``major_edit``. Does not commit.
    """
    latest = db.execute(
        select(func.max(PostVersion.version_number)).where(PostVersion.post_id == post.id)
    ).scalar_one()
    number = (latest or 0) + 1

    if number == 1:
        change_type = CHANGE_CREATED
    elif change_type is None:
        change_type = CHANGE_MINOR_EDIT
    elif change_type not in EDIT_CHANGE_TYPES:
        raise Conflict(f"Invalid change type for an edit: {change_type}")

    version = PostVersion(
        post_id=post.id,
        version_number=number,
        title=post.title,
        content=post.content,
        excerpt=post.excerpt,
        editor_id=editor.id,
        change_type=change_type,
        summary=summary,
    )
    db.add(version)
    db.flush()
    return version


def list_versions(db: Session, post_id: int) -> list[PostVersion]:
    """Return the version history of a post, newest first."""
    return list(
        db.execute(
            select(PostVersion)
            .where(PostVersion.post_id == post_id)
            .order_by(PostVersion.version_number.desc())
        ).scalars()
    )
