"""SQLAlchemy model mirroring identities supplied by the session collaborator."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_hub.db.session import Base

ROLE_USER = "user"
ROLE_CONTRIBUTOR = "contributor"
ROLE_MODERATOR = "moderator"
ROLE_ADMIN = "admin"

USER_ROLES = (ROLE_USER, ROLE_CONTRIBUTOR, ROLE_MODERATOR, ROLE_ADMIN)
# Roles that start above the Novice tier.
PRIVILEGED_ROLES = frozenset({ROLE_CONTRIBUTOR, ROLE_MODERATOR, ROLE_ADMIN})
MODERATION_ROLES = frozenset({ROLE_MODERATOR, ROLE_ADMIN})


class User(Base):
    """Authenticated identity as seen by the scoring core."""

    __tablename__ = "app_user"
    __table_args__ = (
        CheckConstraint(
            "role IN ('user', 'contributor', 'moderator', 'admin')",
            name="ck_app_user_role",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=ROLE_USER)

    @property
    def can_moderate(self) -> bool:
        """Return True if the user may approve content directly."""
        return self.role in MODERATION_ROLES

    @property
    def public_name(self) -> str:
        """Return the name shown next to the user's contributions."""
        return self.display_name or self.email.split("@", 1)[0]
