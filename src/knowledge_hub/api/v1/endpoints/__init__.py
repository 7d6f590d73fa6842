# src/knowledge_hub/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .answers import router as answers_router
from .comments import router as comments_router
from .feed import router as feed_router
from .follows import router as follows_router
from .posts import router as posts_router
from .suggestions import router as suggestions_router
from .users import router as users_router
from .votes import router as votes_router

__all__ = [
    "answers_router",
    "comments_router",
    "feed_router",
    "follows_router",
    "posts_router",
    "suggestions_router",
    "users_router",
    "votes_router",
]
