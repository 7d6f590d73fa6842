# src/knowledge_hub/schemas/post.py
"""Post-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from knowledge_hub.models.version import CHANGE_MAJOR_EDIT, CHANGE_MINOR_EDIT


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    title: str = Field(..., min_length=1, max_length=300)
    content: str = Field(..., min_length=1, description="Rich text body")
    excerpt: str | None = Field(None, max_length=500)
    category_id: int | None = None
    tags: list[str] = Field(default_factory=list)


class PostUpdate(BaseModel):
    """Schema for editing a post; omitted fields stay unchanged."""

    title: str | None = Field(None, min_length=1, max_length=300)
    content: str | None = Field(None, min_length=1)
    excerpt: str | None = Field(None, max_length=500)
    category_id: int | None = None
    tags: list[str] | None = None
    change_type: Literal["minor_edit", "major_edit"] = Field(
        CHANGE_MINOR_EDIT,
        description=f"{CHANGE_MINOR_EDIT} or {CHANGE_MAJOR_EDIT}",
    )
    summary: str | None = Field(None, max_length=500, description="Edit summary")


class PostStatusUpdate(BaseModel):
    """Schema for a moderation status change."""

    status: Literal["draft", "pending_moderation", "approved", "rejected", "archived"]


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    content: str
    excerpt: str | None
    category_id: int | None
    tags: list[str]
    author_id: int
    status: str
    view_count: int
    upvote_count: int
    comment_count: int
    followers_count: int
    accepted_answer_id: int | None
    created_at: datetime
    published_at: datetime | None
    last_activity_at: datetime | None
    last_edited_at: datetime | None


class TrendingPostResponse(BaseModel):
    """A post together with its trending score."""

    post: PostResponse
    score: float


class PostVersionResponse(BaseModel):
    """Schema for one entry of a post's version history."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    post_id: int
    version_number: int
    title: str
    content: str
    excerpt: str | None
    editor_id: int
    change_type: str
    summary: str | None
    created_at: datetime


class ViewResponse(BaseModel):
    post_id: int
    view_count: int
