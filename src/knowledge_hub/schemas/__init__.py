# src/knowledge_hub/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .comment import AnswerStateResponse, CommentCreate, CommentResponse, CommentStatusUpdate
from .follow import FollowToggleResponse
from .post import (
    PostCreate,
    PostResponse,
    PostStatusUpdate,
    PostUpdate,
    PostVersionResponse,
    TrendingPostResponse,
    ViewResponse,
)
from .reputation import ReputationResponse
from .suggestion import EditSuggestionCreate, EditSuggestionReject, EditSuggestionResponse
from .vote import VoteStateResponse, VoteToggle, VoteToggleResponse

__all__ = [
    "AnswerStateResponse", "CommentCreate", "CommentResponse", "CommentStatusUpdate",
    "FollowToggleResponse",
    "PostCreate", "PostResponse", "PostStatusUpdate", "PostUpdate",
    "PostVersionResponse", "TrendingPostResponse", "ViewResponse",
    "ReputationResponse",
    "EditSuggestionCreate", "EditSuggestionReject", "EditSuggestionResponse",
    "VoteStateResponse", "VoteToggle", "VoteToggleResponse",
]
