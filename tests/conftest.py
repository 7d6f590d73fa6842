# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from knowledge_hub.api.v1.dependencies import (
    get_follow_notifier_dep,
    get_vote_coordinator_dep,
)
from knowledge_hub.core.security import create_access_token
from knowledge_hub.db.session import Base
from knowledge_hub.db.session import get_db as app_get_session
from knowledge_hub.db.time import utcnow
from knowledge_hub.main import app as fastapi_app
from knowledge_hub.models import Comment, Post, User
from knowledge_hub.models.comment import COMMENT_STATUS_APPROVED
from knowledge_hub.models.post import POST_STATUS_APPROVED
from knowledge_hub.services.notifier import FollowNotifier, QueueSink
from knowledge_hub.services.rate_limit import VoteRateLimiter
from knowledge_hub.services.reputation import ReputationLedger
from knowledge_hub.services.votes import VoteCoordinator

TEST_DB_URL = "sqlite://"

_USER_COUNTER = count(1)
_POST_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db_session(engine: Engine, session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Services commit, so every test starts from empty tables.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def rate_limiter() -> VoteRateLimiter:
    """Return an in-memory limiter with the default windows."""
    return VoteRateLimiter(redis_url="")


@pytest.fixture()
def unlimited_rate_limiter() -> VoteRateLimiter:
    return VoteRateLimiter(limits={}, redis_url="")


@pytest.fixture()
def ledger() -> ReputationLedger:
    return ReputationLedger()


@pytest.fixture()
def coordinator(ledger: ReputationLedger, unlimited_rate_limiter: VoteRateLimiter) -> VoteCoordinator:
    return VoteCoordinator(ledger=ledger, rate_limiter=unlimited_rate_limiter)


@pytest.fixture()
def notifier(session_factory: sessionmaker[Session]) -> FollowNotifier:
    return FollowNotifier(sinks=[QueueSink()], session_factory=session_factory)


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    rate_limiter: VoteRateLimiter,
    notifier: FollowNotifier,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    overrides: dict[Callable[..., Any], Callable[..., Any]] = {
        app_get_session: _get_session_override,
        get_vote_coordinator_dep: lambda: VoteCoordinator(rate_limiter=rate_limiter),
        get_follow_notifier_dep: lambda: notifier,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory creating committed users."""

    def _make(role: str = "user", display_name: str | None = None) -> User:
        number = next(_USER_COUNTER)
        user = User(
            email=f"user{number}@example.com",
            display_name=display_name or f"User {number}",
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture()
def make_post(db_session: Session) -> Callable[..., Post]:
    """Return a factory creating committed posts, approved by default."""

    def _make(author: User, **fields: Any) -> Post:
        number = next(_POST_COUNTER)
        now = utcnow()
        values: dict[str, Any] = {
            "title": f"Question {number}",
            "slug": f"question-{number}",
            "content": "How does this work?",
            "tags": [],
            "status": POST_STATUS_APPROVED,
            "created_at": now,
            "published_at": now,
            "last_activity_at": now,
        }
        values.update(fields)
        post = Post(author_id=author.id, **values)
        db_session.add(post)
        db_session.commit()
        return post

    return _make


@pytest.fixture()
def make_comment(db_session: Session) -> Callable[..., Comment]:
    """Return a factory creating committed answers, approved by default."""

    def _make(post: Post, author: User, **fields: Any) -> Comment:
        values: dict[str, Any] = {
            "content": "Here is how.",
            "status": COMMENT_STATUS_APPROVED,
            "created_at": utcnow(),
        }
        values.update(fields)
        comment = Comment(post_id=post.id, author_id=author.id, **values)
        db_session.add(comment)
        db_session.commit()
        return comment

    return _make


@pytest.fixture()
def user(make_user: Callable[..., User]) -> User:
    return make_user()


@pytest.fixture()
def other_user(make_user: Callable[..., User]) -> User:
    return make_user()


@pytest.fixture()
def moderator(make_user: Callable[..., User]) -> User:
    return make_user(role="moderator")


@pytest.fixture()
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Return a helper building authorization headers for a user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers
