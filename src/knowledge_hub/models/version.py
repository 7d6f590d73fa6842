"""Append-only version history for posts."""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_hub.core.errors import AppendOnlyViolation
from knowledge_hub.db.session import Base
from knowledge_hub.db.time import utcnow

CHANGE_CREATED = "created"
CHANGE_MINOR_EDIT = "minor_edit"
CHANGE_MAJOR_EDIT = "major_edit"

EDIT_CHANGE_TYPES = (CHANGE_MINOR_EDIT, CHANGE_MAJOR_EDIT)


class PostVersion(Base):
    """Snapshot of a post's editable fields at one point in time."""

    __tablename__ = "post_version"
    __table_args__ = (
        UniqueConstraint("post_id", "version_number", name="uq_post_version_number"),
        CheckConstraint(
            "change_type IN ('created', 'minor_edit', 'major_edit')",
            name="ck_post_version_change_type",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(Integer, ForeignKey("post.id"), nullable=False)
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)
    editor_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_user.id"), nullable=False)
    change_type: Mapped[str] = mapped_column(String(16), nullable=False)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


@event.listens_for(PostVersion, "before_update")
def _reject_version_update(mapper, connection, target: PostVersion) -> None:  # noqa: ANN001
    raise AppendOnlyViolation(f"Post version {target.id} is immutable")


@event.listens_for(PostVersion, "before_delete")
def _reject_version_delete(mapper, connection, target: PostVersion) -> None:  # noqa: ANN001
    raise AppendOnlyViolation(f"Post version {target.id} cannot be deleted")
