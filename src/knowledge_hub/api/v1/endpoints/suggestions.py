# src/knowledge_hub/api/v1/endpoints/suggestions.py
"""Edit suggestion endpoints for the Knowledge Hub API."""

from typing import Annotated, Literal

from fastapi import APIRouter, Query, status

from knowledge_hub.api.v1.dependencies import CurrentUserDep, SessionDep
from knowledge_hub.models import EditSuggestion
from knowledge_hub.schemas.suggestion import (
    EditSuggestionCreate,
    EditSuggestionReject,
    EditSuggestionResponse,
)
from knowledge_hub.services import posts as post_service

router = APIRouter(tags=["suggestions"])


@router.post(
    "/posts/{post_id}/suggestions",
    response_model=EditSuggestionResponse,
    status_code=status.HTTP_201_CREATED,
)
def suggest_edit(
    post_id: int,
    payload: EditSuggestionCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> EditSuggestion:
    """Propose an edit for moderator review."""
    return post_service.suggest_edit(
        db,
        current_user,
        post_id,
        content=payload.suggested_content,
        edit_type=payload.edit_type,
        title=payload.suggested_title,
        excerpt=payload.suggested_excerpt,
        summary=payload.edit_summary,
    )


@router.get("/suggestions", response_model=list[EditSuggestionResponse])
def list_suggestions(
    current_user: CurrentUserDep,
    db: SessionDep,
    status_filter: Annotated[
        Literal["pending", "approved", "rejected"], Query(alias="status")
    ] = "pending",
    post_id: int | None = None,
) -> list[EditSuggestion]:
    """Return the review queue."""
    return post_service.list_suggestions(db, current_user, status=status_filter, post_id=post_id)


@router.post("/suggestions/{suggestion_id}/approve", response_model=EditSuggestionResponse)
def approve_suggestion(
    suggestion_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> EditSuggestion:
    """Merge a suggestion into its post as a new version."""
    _post, _version, suggestion = post_service.approve_suggestion(db, current_user, suggestion_id)
    return suggestion


@router.post("/suggestions/{suggestion_id}/reject", response_model=EditSuggestionResponse)
def reject_suggestion(
    suggestion_id: int,
    payload: EditSuggestionReject,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> EditSuggestion:
    """Reject a suggestion with optional reviewer notes."""
    return post_service.reject_suggestion(
        db, current_user, suggestion_id, notes=payload.reviewer_notes
    )
