# src/knowledge_hub/api/v1/endpoints/follows.py
"""Follow endpoints for the Knowledge Hub API."""

from fastapi import APIRouter

from knowledge_hub.api.v1.dependencies import OptionalUserDep, SessionDep
from knowledge_hub.schemas.follow import FollowToggleResponse
from knowledge_hub.services.follows import FollowToggleResult, toggle_follow

router = APIRouter(tags=["follows"])


@router.post("/posts/{post_id}/follow", response_model=FollowToggleResponse)
def follow_post(post_id: int, actor: OptionalUserDep, db: SessionDep) -> FollowToggleResult:
    """Follow or unfollow a post."""
    return toggle_follow(db, actor, post_id)
