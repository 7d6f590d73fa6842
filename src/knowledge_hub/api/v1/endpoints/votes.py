# src/knowledge_hub/api/v1/endpoints/votes.py
"""Vote-related endpoints for the Knowledge Hub API."""

from typing import Literal

from fastapi import APIRouter

from knowledge_hub.api.v1.dependencies import (
    CurrentUserDep,
    OptionalUserDep,
    SessionDep,
    VoteCoordinatorDep,
)
from knowledge_hub.schemas.vote import VoteStateResponse, VoteToggle, VoteToggleResponse
from knowledge_hub.services.votes import VoteToggleResult

router = APIRouter(prefix="/votes", tags=["votes"])


@router.post("", response_model=VoteToggleResponse)
def toggle_vote(
    payload: VoteToggle,
    voter: OptionalUserDep,
    coordinator: VoteCoordinatorDep,
    db: SessionDep,
) -> VoteToggleResult:
    """Add the caller's up-vote, or remove it if already present.

    The response carries the authoritative counter after the toggle.
    """
    return coordinator.toggle_vote(db, voter, payload.target_type, payload.target_id)


@router.get("/{target_type}/{target_id}", response_model=VoteStateResponse)
def get_vote_state(
    target_type: Literal["post", "comment"],
    target_id: int,
    current_user: CurrentUserDep,
    coordinator: VoteCoordinatorDep,
    db: SessionDep,
) -> VoteStateResponse:
    """Report whether the caller has an active vote on the target."""
    voted = coordinator.get_vote_state(db, current_user, target_type, target_id)
    return VoteStateResponse(target_type=target_type, target_id=target_id, voted=voted)
