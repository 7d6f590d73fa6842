# src/knowledge_hub/schemas/comment.py
"""Answer-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CommentCreate(BaseModel):
    """Schema for posting an answer."""

    content: str = Field(..., min_length=1, max_length=10000)


class CommentStatusUpdate(BaseModel):
    """Schema for a moderation decision on an answer."""

    status: Literal["pending", "approved", "rejected"]


class CommentResponse(BaseModel):
    """Schema for answer information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    post_id: int
    author_id: int
    content: str
    upvote_count: int
    is_accepted_answer: bool
    status: str
    has_urls: bool
    created_at: datetime


class AnswerStateResponse(BaseModel):
    """Accepted-answer state of a post."""

    model_config = ConfigDict(from_attributes=True)

    post_id: int
    state: Literal["no_accepted_answer", "has_accepted_answer"]
    comment_id: int | None = None
