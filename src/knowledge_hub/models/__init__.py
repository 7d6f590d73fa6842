"""SQLAlchemy models for the Knowledge Hub scoring core."""

from .comment import Comment
from .follow import Follow, NotificationQueue
from .post import Post
from .reputation import ReputationEvent, ReputationRecord
from .suggestion import EditSuggestion
from .user import User
from .version import PostVersion
from .vote import Vote

__all__ = [
    "Comment",
    "EditSuggestion",
    "Follow", "NotificationQueue",
    "Post",
    "PostVersion",
    "ReputationEvent", "ReputationRecord",
    "User",
    "Vote",
]
