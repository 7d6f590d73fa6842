"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from knowledge_hub.core.errors import Unauthorized
from knowledge_hub.core.security import decode_subject
from knowledge_hub.db.session import get_db
from knowledge_hub.models import User
from knowledge_hub.services.answers import AnswerStateMachine, get_answer_state_machine
from knowledge_hub.services.notifier import FollowNotifier, get_follow_notifier
from knowledge_hub.services.reputation import ReputationLedger, get_reputation_ledger
from knowledge_hub.services.votes import VoteCoordinator, get_vote_coordinator

# Missing credentials are not rejected here; services decide whether an identity is required.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User | None:
    """Resolve the bearer token to a user, or None when no token was sent.

    Raises:
        Unauthorized: A token was sent but is invalid or names an unknown user.
    """
    if credentials is None:
        return None
    user_id = decode_subject(credentials.credentials)
    if user_id is None:
        raise Unauthorized("Could not validate credentials")
    user = db.get(User, user_id)
    if user is None:
        raise Unauthorized("User not found")
    return user


def get_current_user(user: Annotated[User | None, Depends(get_optional_user)]) -> User:
    """Return the authenticated user or raise Unauthorized."""
    if user is None:
        raise Unauthorized("Not authenticated")
    return user


def get_vote_coordinator_dep() -> VoteCoordinator:
    """Return the vote coordinator."""
    return get_vote_coordinator()


def get_answer_state_machine_dep() -> AnswerStateMachine:
    """Return the accepted-answer state machine."""
    return get_answer_state_machine()


def get_reputation_ledger_dep() -> ReputationLedger:
    """Return the reputation ledger."""
    return get_reputation_ledger()


def get_follow_notifier_dep() -> FollowNotifier:
    """Return the shared follow notifier."""
    return get_follow_notifier()


OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]
CurrentUserDep = Annotated[User, Depends(get_current_user)]
VoteCoordinatorDep = Annotated[VoteCoordinator, Depends(get_vote_coordinator_dep)]
AnswerStateMachineDep = Annotated[AnswerStateMachine, Depends(get_answer_state_machine_dep)]
ReputationLedgerDep = Annotated[ReputationLedger, Depends(get_reputation_ledger_dep)]
FollowNotifierDep = Annotated[FollowNotifier, Depends(get_follow_notifier_dep)]
