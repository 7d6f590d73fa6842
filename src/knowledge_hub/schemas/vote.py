# src/knowledge_hub/schemas/vote.py
"""Vote-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class VoteToggle(BaseModel):
    """Schema for toggling an up-vote."""

    target_type: Literal["post", "comment"]
    target_id: int = Field(..., ge=1)


class VoteToggleResponse(BaseModel):
    """Authoritative result of a vote toggle."""

    model_config = ConfigDict(from_attributes=True)

    action: Literal["added", "removed"]
    resulting_count: int
    vote_weight: float = Field(..., description="Weight captured for the vote")


class VoteStateResponse(BaseModel):
    target_type: Literal["post", "comment"]
    target_id: int
    voted: bool
