# src/knowledge_hub/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    answers_router,
    comments_router,
    feed_router,
    follows_router,
    posts_router,
    suggestions_router,
    users_router,
    votes_router,
)

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
