# src/knowledge_hub/services/__init__.py
"""Scoring and content services for the Knowledge Hub."""

from .answers import AnswerStateMachine
from .notifier import FollowNotifier
from .rate_limit import VoteRateLimiter
from .reputation import ReputationLedger
from .votes import VoteCoordinator

__all__ = [
    "AnswerStateMachine",
    "FollowNotifier",
    "ReputationLedger",
    "VoteCoordinator",
    "VoteRateLimiter",
]
