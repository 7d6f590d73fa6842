# tests/test_votes.py
"""Tests for the vote coordinator."""

from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from knowledge_hub.core.errors import NotFound, RateLimited, TransientStoreFailure, Unauthorized
from knowledge_hub.db.session import Base
from knowledge_hub.models import Comment, Post, ReputationRecord, User, Vote
from knowledge_hub.models.post import POST_STATUS_PENDING
from knowledge_hub.services.rate_limit import VoteRateLimiter
from knowledge_hub.services.reputation import ReputationLedger
from knowledge_hub.services.votes import VoteCoordinator


def _vote_rows(db_session, target_type: str, target_id: int) -> int:
    return db_session.execute(
        select(func.count())
        .select_from(Vote)
        .where(Vote.target_type == target_type, Vote.target_id == target_id)
    ).scalar_one()


def _points(db_session, user: User) -> int:
    record = db_session.get(ReputationRecord, user.id, populate_existing=True)
    return 0 if record is None else record.reputation_points


def test_toggle_adds_then_removes(db_session, coordinator, user, other_user, make_post) -> None:
    """First toggle adds the vote, the second removes it."""
    post = make_post(other_user)

    added = coordinator.toggle_vote(db_session, user, "post", post.id)
    assert added.action == "added"
    assert added.resulting_count == 1
    assert _vote_rows(db_session, "post", post.id) == 1

    removed = coordinator.toggle_vote(db_session, user, "post", post.id)
    assert removed.action == "removed"
    assert removed.resulting_count == 0
    assert _vote_rows(db_session, "post", post.id) == 0


@pytest.mark.parametrize("toggles", [1, 2, 3, 4, 7])
def test_toggle_parity(db_session, coordinator, user, other_user, make_post, toggles: int) -> None:
    """Odd toggle counts leave one vote; even counts restore the baseline."""
    post = make_post(other_user, upvote_count=3)

    for _ in range(toggles):
        coordinator.toggle_vote(db_session, user, "post", post.id)

    db_session.refresh(post)
    assert post.upvote_count == 3 + toggles % 2
    assert _vote_rows(db_session, "post", post.id) == toggles % 2


def test_votes_from_different_users_all_count(
    db_session, coordinator, make_user, make_post
) -> None:
    """Each voter contributes exactly one to the counter."""
    author = make_user()
    post = make_post(author)
    voters = [make_user() for _ in range(4)]

    for voter in voters:
        coordinator.toggle_vote(db_session, voter, "post", post.id)

    db_session.refresh(post)
    assert post.upvote_count == 4


def test_post_upvote_reputation(db_session, coordinator, user, other_user, make_post) -> None:
    """Question author earns +5, the voter +1; retraction reverses both."""
    post = make_post(other_user)

    coordinator.toggle_vote(db_session, user, "post", post.id)
    assert _points(db_session, other_user) == 5
    assert _points(db_session, user) == 1

    coordinator.toggle_vote(db_session, user, "post", post.id)
    assert _points(db_session, other_user) == 0
    assert _points(db_session, user) == 0


def test_answer_upvote_reputation(
    db_session, coordinator, user, other_user, make_user, make_post, make_comment
) -> None:
    """Answer author earns +10 per up-vote."""
    post = make_post(make_user())
    answer = make_comment(post, other_user)

    result = coordinator.toggle_vote(db_session, user, "comment", answer.id)

    assert result.resulting_count == 1
    assert _points(db_session, other_user) == 10


def test_self_vote_counts_without_reputation(db_session, coordinator, user, make_post) -> None:
    """Voting on your own post moves the counter but awards nothing."""
    post = make_post(user)

    result = coordinator.toggle_vote(db_session, user, "post", post.id)

    assert result.resulting_count == 1
    assert _points(db_session, user) == 0


def test_vote_weight_captured_from_reputation(
    db_session, coordinator, make_user, make_post
) -> None:
    """The stored weight reflects the voter's tier at cast time."""
    post = make_post(make_user())
    novice = make_user()
    contributor = make_user(role="contributor")

    assert coordinator.toggle_vote(db_session, novice, "post", post.id).vote_weight == 0.5
    assert coordinator.toggle_vote(db_session, contributor, "post", post.id).vote_weight == 1.0

    vote = db_session.get(Vote, (contributor.id, "post", post.id))
    assert vote is not None
    assert vote.weight == 1.0


def test_participation_cap_not_reversed(db_session, make_user, make_post) -> None:
    """Votes beyond the cap award no point, so retracting them removes none."""
    coordinator = VoteCoordinator(
        ledger=ReputationLedger(participation_daily_cap=1),
        rate_limiter=VoteRateLimiter(limits={}, redis_url=""),
    )
    voter = make_user()
    first = make_post(make_user())
    second = make_post(make_user())

    coordinator.toggle_vote(db_session, voter, "post", first.id)
    coordinator.toggle_vote(db_session, voter, "post", second.id)
    assert _points(db_session, voter) == 1

    vote = db_session.get(Vote, (voter.id, "post", second.id))
    assert vote is not None
    assert vote.participation_awarded is False

    coordinator.toggle_vote(db_session, voter, "post", second.id)
    assert _points(db_session, voter) == 1


def test_helpful_answer_counter(
    db_session, coordinator, make_user, make_post, make_comment
) -> None:
    """An answer reaching five up-votes counts as helpful for its author."""
    answerer = make_user()
    post = make_post(make_user())
    answer = make_comment(post, answerer)

    for _ in range(5):
        coordinator.toggle_vote(db_session, make_user(), "comment", answer.id)

    record = db_session.get(ReputationRecord, answerer.id, populate_existing=True)
    assert record.helpful_answers_count == 1


def test_missing_identity_rejected(db_session, coordinator, user, make_post) -> None:
    """Anonymous toggles are rejected without touching state."""
    post = make_post(user)

    with pytest.raises(Unauthorized):
        coordinator.toggle_vote(db_session, None, "post", post.id)

    assert _vote_rows(db_session, "post", post.id) == 0


def test_missing_target_not_found(db_session, coordinator, user) -> None:
    with pytest.raises(NotFound):
        coordinator.toggle_vote(db_session, user, "post", 9999)
    with pytest.raises(NotFound):
        coordinator.toggle_vote(db_session, user, "comment", 9999)
    with pytest.raises(NotFound):
        coordinator.toggle_vote(db_session, user, "profile", 1)


def test_unapproved_post_not_votable(db_session, coordinator, user, other_user, make_post) -> None:
    """Posts waiting for moderation cannot be voted on."""
    post = make_post(other_user, status=POST_STATUS_PENDING)

    with pytest.raises(NotFound):
        coordinator.toggle_vote(db_session, user, "post", post.id)


def test_rate_limit_rejects_without_side_effects(db_session, user, make_user, make_post) -> None:
    """Over-limit toggles raise RateLimited and leave the counter untouched."""
    coordinator = VoteCoordinator(
        rate_limiter=VoteRateLimiter(limits={"minute": (2, 60)}, redis_url=""),
    )
    posts = [make_post(make_user()) for _ in range(3)]

    coordinator.toggle_vote(db_session, user, "post", posts[0].id)
    coordinator.toggle_vote(db_session, user, "post", posts[1].id)
    with pytest.raises(RateLimited) as excinfo:
        coordinator.toggle_vote(db_session, user, "post", posts[2].id)

    assert excinfo.value.retry_after >= 1
    db_session.refresh(posts[2])
    assert posts[2].upvote_count == 0
    assert _vote_rows(db_session, "post", posts[2].id) == 0


def test_failed_toggle_does_not_use_rate_limit(
    db_session, user, other_user, make_post, monkeypatch
) -> None:
    """A toggle rolled back by a store failure leaves the quota untouched."""
    coordinator = VoteCoordinator(
        rate_limiter=VoteRateLimiter(limits={"minute": (1, 60)}, redis_url=""),
    )
    post = make_post(other_user)
    real_bump = VoteCoordinator._bump_counter
    calls = {"count": 0}

    def flaky_bump(db, model, target_id, delta):
        calls["count"] += 1
        if calls["count"] == 1:
            raise OperationalError("UPDATE post", {}, Exception("database is locked"))
        return real_bump(db, model, target_id, delta)

    monkeypatch.setattr(VoteCoordinator, "_bump_counter", staticmethod(flaky_bump))

    with pytest.raises(TransientStoreFailure):
        coordinator.toggle_vote(db_session, user, "post", post.id)
    assert _vote_rows(db_session, "post", post.id) == 0

    result = coordinator.toggle_vote(db_session, user, "post", post.id)

    assert result.action == "added"
    assert result.resulting_count == 1


def test_get_vote_state(db_session, coordinator, user, other_user, make_post) -> None:
    post = make_post(other_user)
    assert coordinator.get_vote_state(db_session, user, "post", post.id) is False

    coordinator.toggle_vote(db_session, user, "post", post.id)

    assert coordinator.get_vote_state(db_session, user, "post", post.id) is True


@pytest.fixture()
def file_session_factory(tmp_path):
    """Sessions on a file-backed database shared by several threads."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'votes.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    finally:
        engine.dispose()


def _seed(factory) -> tuple[int, list[int]]:
    with factory() as session:
        author = User(email="author@example.com", role="user")
        voters = [User(email=f"voter{i}@example.com", role="user") for i in range(6)]
        session.add_all([author, *voters])
        session.flush()
        post = Post(
            title="Concurrent",
            slug="concurrent",
            content="body",
            tags=[],
            author_id=author.id,
            status="approved",
        )
        session.add(post)
        session.commit()
        return post.id, [voter.id for voter in voters]


@pytest.mark.parametrize("toggles", [6, 7])
def test_concurrent_toggles_same_voter(file_session_factory, toggles: int) -> None:
    """Concurrent toggles by one voter never drift the counter past one."""
    post_id, voter_ids = _seed(file_session_factory)
    coordinator = VoteCoordinator(rate_limiter=VoteRateLimiter(limits={}, redis_url=""))

    def toggle(_: int) -> str:
        with file_session_factory() as session:
            voter = session.get(User, voter_ids[0])
            return coordinator.toggle_vote(session, voter, "post", post_id).action

    with ThreadPoolExecutor(max_workers=4) as pool:
        actions = list(pool.map(toggle, range(toggles)))

    assert actions.count("added") - actions.count("removed") == toggles % 2
    with file_session_factory() as session:
        post = session.get(Post, post_id)
        rows = _vote_rows(session, "post", post_id)
        assert post.upvote_count == rows == toggles % 2


def test_concurrent_votes_different_voters(file_session_factory) -> None:
    """Concurrent votes from different users are all reflected."""
    post_id, voter_ids = _seed(file_session_factory)
    coordinator = VoteCoordinator(rate_limiter=VoteRateLimiter(limits={}, redis_url=""))

    def vote(voter_id: int) -> int:
        with file_session_factory() as session:
            voter = session.get(User, voter_id)
            return coordinator.toggle_vote(session, voter, "post", post_id).resulting_count

    with ThreadPoolExecutor(max_workers=len(voter_ids)) as pool:
        counts = list(pool.map(vote, voter_ids))

    assert sorted(counts) == list(range(1, len(voter_ids) + 1))
    with file_session_factory() as session:
        assert session.get(Post, post_id).upvote_count == len(voter_ids)


def test_comment_counter_matches_rows(
    db_session, coordinator, make_user, make_post, make_comment
) -> None:
    post = make_post(make_user())
    answer = make_comment(post, make_user())
    voters = [make_user() for _ in range(3)]

    for voter in voters:
        coordinator.toggle_vote(db_session, voter, "comment", answer.id)
    coordinator.toggle_vote(db_session, voters[0], "comment", answer.id)

    refreshed = db_session.get(Comment, answer.id, populate_existing=True)
    assert refreshed.upvote_count == _vote_rows(db_session, "comment", answer.id) == 2
