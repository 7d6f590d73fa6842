# src/knowledge_hub/api/v1/endpoints/posts.py
"""Post-related endpoints for the Knowledge Hub API."""

from typing import Annotated, Literal

from fastapi import APIRouter, Query, status

from knowledge_hub.api.v1.dependencies import CurrentUserDep, OptionalUserDep, SessionDep
from knowledge_hub.models import Post
from knowledge_hub.schemas.post import (
    PostCreate,
    PostResponse,
    PostStatusUpdate,
    PostUpdate,
    PostVersionResponse,
    ViewResponse,
)
from knowledge_hub.services import posts as post_service
from knowledge_hub.services.slugs import list_versions

router = APIRouter(prefix="/posts", tags=["posts"])

SortQuery = Literal["recent", "popular", "answered", "unanswered", "trending"]


@router.get("", response_model=list[PostResponse])
def list_posts(
    db: SessionDep,
    sort: Annotated[SortQuery, Query()] = "recent",
    category_id: int | None = None,
    tag: str | None = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[Post]:
    """List approved posts in the requested order."""
    return post_service.list_posts(
        db,
        mode=sort,
        category_id=category_id,
        tag=tag,
        limit=limit,
        offset=offset,
    )


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
def create_post(payload: PostCreate, current_user: CurrentUserDep, db: SessionDep) -> Post:
    """Create a post; it is published directly only for moderators."""
    post, _version = post_service.create_post(
        db,
        current_user,
        title=payload.title,
        content=payload.content,
        excerpt=payload.excerpt,
        category_id=payload.category_id,
        tags=payload.tags,
    )
    return post


@router.get("/{slug}", response_model=PostResponse)
def get_post(slug: str, viewer: OptionalUserDep, db: SessionDep) -> Post:
    """Return a post by slug."""
    return post_service.get_post_by_slug(db, slug, viewer)


@router.patch("/{post_id}", response_model=PostResponse)
def edit_post(
    post_id: int,
    payload: PostUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Post:
    """Edit a post and append a version."""
    post, _version = post_service.edit_post(
        db,
        current_user,
        post_id,
        title=payload.title,
        content=payload.content,
        excerpt=payload.excerpt,
        category_id=payload.category_id,
        tags=payload.tags,
        change_type=payload.change_type,
        summary=payload.summary,
    )
    return post


@router.post("/{post_id}/status", response_model=PostResponse)
def set_post_status(
    post_id: int,
    payload: PostStatusUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Post:
    """Moderate a post."""
    return post_service.set_post_status(db, current_user, post_id, payload.status)


@router.post("/{post_id}/view", response_model=ViewResponse)
def record_view(post_id: int, db: SessionDep) -> ViewResponse:
    """Count a view of the post."""
    views = post_service.record_view(db, post_id)
    return ViewResponse(post_id=post_id, view_count=views)


@router.get("/{post_id}/versions", response_model=list[PostVersionResponse])
def get_versions(post_id: int, viewer: OptionalUserDep, db: SessionDep) -> list:
    """Return the version history of a post, newest first."""
    post_service.get_post(db, post_id, viewer)
    return list_versions(db, post_id)


@router.get("/{post_id}/related", response_model=list[PostResponse])
def get_related(
    post_id: int,
    viewer: OptionalUserDep,
    db: SessionDep,
    limit: Annotated[int, Query(ge=1, le=20)] = 5,
) -> list[Post]:
    """Return posts related to this one."""
    post = post_service.get_post(db, post_id, viewer)
    return post_service.related_to(db, post, limit=limit)
