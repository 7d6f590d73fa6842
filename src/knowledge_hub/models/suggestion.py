"""Edits proposed by readers and merged by moderators."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_hub.db.session import Base
from knowledge_hub.db.time import utcnow
from knowledge_hub.models.version import CHANGE_MAJOR_EDIT, CHANGE_MINOR_EDIT

SUGGESTION_STATUS_PENDING = "pending"
SUGGESTION_STATUS_APPROVED = "approved"
SUGGESTION_STATUS_REJECTED = "rejected"

SUGGESTION_STATUSES = (
    SUGGESTION_STATUS_PENDING,
    SUGGESTION_STATUS_APPROVED,
    SUGGESTION_STATUS_REJECTED,
)

# Kind of edit the suggester proposes, and the version change type it merges as.
EDIT_TYPE_CHANGES: dict[str, str] = {
    "content_edit": CHANGE_MAJOR_EDIT,
    "add_section": CHANGE_MAJOR_EDIT,
    "remove_section": CHANGE_MAJOR_EDIT,
    "typo_fix": CHANGE_MINOR_EDIT,
    "formatting": CHANGE_MINOR_EDIT,
}


class EditSuggestion(Base):
    """A proposed revision of a post awaiting moderator review."""

    __tablename__ = "edit_suggestion"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_edit_suggestion_status",
        ),
        CheckConstraint(
            "edit_type IN ('content_edit', 'typo_fix', 'add_section', 'remove_section', 'formatting')",
            name="ck_edit_suggestion_edit_type",
        ),
        Index("ix_edit_suggestion_status_created", "status", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        nullable=False,
    )
    suggester_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_user.id"), nullable=False)
    edit_type: Mapped[str] = mapped_column(String(16), nullable=False)
    suggested_title: Mapped[str | None] = mapped_column(Text, nullable=True)
    suggested_excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)
    suggested_content: Mapped[str] = mapped_column(Text, nullable=False)
    edit_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=SUGGESTION_STATUS_PENDING,
    )
    reviewer_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("app_user.id"),
        nullable=True,
    )
    reviewer_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    merged_as_version: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def change_type(self) -> str:
        """Return the version change type this suggestion merges as."""
        return EDIT_TYPE_CHANGES[self.edit_type]
