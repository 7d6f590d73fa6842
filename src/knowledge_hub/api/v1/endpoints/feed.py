# src/knowledge_hub/api/v1/endpoints/feed.py
"""Trending feed endpoint."""

from typing import Annotated

from fastapi import APIRouter, Query

from knowledge_hub.api.v1.dependencies import SessionDep
from knowledge_hub.schemas.post import PostResponse, TrendingPostResponse
from knowledge_hub.services.posts import trending_posts

router = APIRouter(prefix="/feed", tags=["feed"])


@router.get("/trending", response_model=list[TrendingPostResponse])
def get_trending(
    db: SessionDep,
    limit: Annotated[int | None, Query(ge=1, le=50)] = None,
) -> list[TrendingPostResponse]:
    """Return the top trending posts of the last week."""
    return [
        TrendingPostResponse(post=PostResponse.model_validate(post), score=score)
        for post, score in trending_posts(db, limit=limit)
    ]
