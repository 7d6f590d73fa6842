# src/knowledge_hub/api/v1/endpoints/answers.py
"""Accepted-answer endpoints for the Knowledge Hub API."""

from fastapi import APIRouter

from knowledge_hub.api.v1.dependencies import AnswerStateMachineDep, OptionalUserDep, SessionDep
from knowledge_hub.schemas.comment import AnswerStateResponse
from knowledge_hub.services.answers import AnswerState

router = APIRouter(tags=["answers"])


@router.post("/posts/{post_id}/answers/{comment_id}/accept", response_model=AnswerStateResponse)
def accept_answer(
    post_id: int,
    comment_id: int,
    actor: OptionalUserDep,
    machine: AnswerStateMachineDep,
    db: SessionDep,
) -> AnswerState:
    """Mark an answer as accepted; only the post author may do this."""
    return machine.accept(db, actor, post_id, comment_id)


@router.post("/answers/{comment_id}/unaccept", response_model=AnswerStateResponse)
def unaccept_answer(
    comment_id: int,
    actor: OptionalUserDep,
    machine: AnswerStateMachineDep,
    db: SessionDep,
) -> AnswerState:
    """Clear the accepted flag from an answer."""
    return machine.unaccept(db, actor, comment_id)


@router.get("/posts/{post_id}/answer-state", response_model=AnswerStateResponse)
def get_answer_state(post_id: int, machine: AnswerStateMachineDep, db: SessionDep) -> AnswerState:
    return machine.state(db, post_id)
