# src/knowledge_hub/schemas/follow.py
"""Follow-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict


class FollowToggleResponse(BaseModel):
    """Result of a follow toggle."""

    model_config = ConfigDict(from_attributes=True)

    action: Literal["followed", "unfollowed"]
    followers_count: int
