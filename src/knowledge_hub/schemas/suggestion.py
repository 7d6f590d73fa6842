# src/knowledge_hub/schemas/suggestion.py
"""Edit suggestion Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

EditType = Literal["content_edit", "typo_fix", "add_section", "remove_section", "formatting"]


class EditSuggestionCreate(BaseModel):
    """Schema for proposing an edit to a post."""

    edit_type: EditType = "content_edit"
    suggested_title: str | None = Field(None, max_length=300)
    suggested_excerpt: str | None = Field(None, max_length=500)
    suggested_content: str = Field(..., min_length=1)
    edit_summary: str | None = Field(None, max_length=500)


class EditSuggestionReject(BaseModel):
    """Schema for rejecting a suggestion."""

    reviewer_notes: str | None = Field(None, max_length=2000)


class EditSuggestionResponse(BaseModel):
    """Schema for suggestion information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    post_id: int
    suggester_id: int
    edit_type: EditType
    suggested_title: str | None
    suggested_excerpt: str | None
    suggested_content: str
    edit_summary: str | None
    status: Literal["pending", "approved", "rejected"]
    reviewer_id: int | None
    reviewer_notes: str | None
    merged_as_version: int | None
    created_at: datetime
    reviewed_at: datetime | None
