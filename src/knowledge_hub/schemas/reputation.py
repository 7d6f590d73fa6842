# src/knowledge_hub/schemas/reputation.py
"""Reputation-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict


class ReputationResponse(BaseModel):
    """A user's reputation with the tier derived from it."""

    model_config = ConfigDict(from_attributes=True)

    user_id: int
    reputation_points: int
    tier: str
    vote_weight: float
    accepted_answers_count: int
    helpful_answers_count: int
    questions_asked: int
    answers_given: int
