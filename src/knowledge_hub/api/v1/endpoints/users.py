# src/knowledge_hub/api/v1/endpoints/users.py
"""User reputation endpoints."""

from fastapi import APIRouter

from knowledge_hub.api.v1.dependencies import ReputationLedgerDep, SessionDep
from knowledge_hub.schemas.reputation import ReputationResponse
from knowledge_hub.services.reputation import ReputationSummary, get_user_or_404
from knowledge_hub.services.transactions import atomic

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}/reputation", response_model=ReputationResponse)
def get_reputation(user_id: int, ledger: ReputationLedgerDep, db: SessionDep) -> ReputationSummary:
    """Return a user's points, tier and vote weight."""
    user = get_user_or_404(db, user_id)
    # Reading may seed the record for a user without one.
    with atomic(db, "Load reputation"):
        summary = ledger.get_reputation(db, user)
    return summary
