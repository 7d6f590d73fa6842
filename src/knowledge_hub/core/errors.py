"""Error taxonomy shared by the scoring core and the HTTP layer."""

from __future__ import annotations


class KnowledgeHubError(RuntimeError):
    """Base exception raised by Knowledge Hub services.

    Subclasses carry the HTTP status code the API layer reports for them.
    """

    status_code: int = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class Unauthorized(KnowledgeHubError):
    """Raised when an operation requires an identity and none was supplied."""

    status_code = 401


class Forbidden(Unauthorized):
    """Raised when the caller is identified but not allowed to act."""

    status_code = 403


class NotFound(KnowledgeHubError):
    """Raised when the target post, comment or user does not exist."""

    status_code = 404


class Conflict(KnowledgeHubError):
    """Raised when the request contradicts the current state."""

    status_code = 409


class RateLimited(KnowledgeHubError):
    """Raised when a user exceeds a vote rate window."""

    status_code = 429

    def __init__(self, detail: str, retry_after: int) -> None:
        super().__init__(detail)
        self.retry_after = retry_after


class TransientStoreFailure(KnowledgeHubError):
    """Raised when the backing store failed and the unit of work was rolled back."""

    status_code = 503


class AppendOnlyViolation(KnowledgeHubError):
    """Raised when code attempts to mutate an append-only audit row."""
