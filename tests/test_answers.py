# tests/test_answers.py
"""Tests for the accepted-answer state machine."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from knowledge_hub.core.errors import Conflict, Forbidden, NotFound, Unauthorized
from knowledge_hub.db.time import utcnow
from knowledge_hub.models import Comment, Post, ReputationRecord
from knowledge_hub.models.comment import COMMENT_STATUS_PENDING
from knowledge_hub.services.answers import (
    STATE_HAS_ACCEPTED_ANSWER,
    STATE_NO_ACCEPTED_ANSWER,
    AnswerStateMachine,
    list_answers,
)


@pytest.fixture()
def machine(ledger) -> AnswerStateMachine:
    return AnswerStateMachine(ledger=ledger)


def _record(db_session, user) -> ReputationRecord | None:
    return db_session.get(ReputationRecord, user.id, populate_existing=True)


def _accepted_ids(db_session, post_id: int) -> list[int]:
    return list(
        db_session.execute(
            select(Comment.id).where(
                Comment.post_id == post_id, Comment.is_accepted_answer.is_(True)
            )
        ).scalars()
    )


def _assert_exclusive(db_session, post_id: int) -> None:
    post = db_session.get(Post, post_id, populate_existing=True)
    flagged = _accepted_ids(db_session, post_id)
    assert len(flagged) <= 1
    if post.accepted_answer_id is None:
        assert flagged == []
    else:
        assert flagged == [post.accepted_answer_id]


def test_accept_marks_answer_and_awards(
    db_session, machine, user, other_user, make_post, make_comment
) -> None:
    """Accepting flags the answer, links the post and credits the answerer."""
    post = make_post(user)
    answer = make_comment(post, other_user)
    before = utcnow() - timedelta(seconds=1)

    state = machine.accept(db_session, user, post.id, answer.id)

    assert state.state == STATE_HAS_ACCEPTED_ANSWER
    assert state.comment_id == answer.id
    db_session.refresh(post)
    assert post.accepted_answer_id == answer.id
    assert post.last_activity_at.replace(tzinfo=None) >= before.replace(tzinfo=None)
    record = _record(db_session, other_user)
    assert record.reputation_points == 25
    assert record.accepted_answers_count == 1


def test_accept_replaces_previous(
    db_session, machine, user, make_user, make_post, make_comment
) -> None:
    """Accepting a second answer moves the flag and the reputation."""
    post = make_post(user)
    first_author, second_author = make_user(), make_user()
    first = make_comment(post, first_author)
    second = make_comment(post, second_author)

    machine.accept(db_session, user, post.id, first.id)
    machine.accept(db_session, user, post.id, second.id)

    assert _accepted_ids(db_session, post.id) == [second.id]
    _assert_exclusive(db_session, post.id)
    assert _record(db_session, first_author).reputation_points == 0
    assert _record(db_session, first_author).accepted_answers_count == 0
    assert _record(db_session, second_author).reputation_points == 25


def test_reaccept_is_noop(db_session, machine, user, other_user, make_post, make_comment) -> None:
    post = make_post(user)
    answer = make_comment(post, other_user)

    machine.accept(db_session, user, post.id, answer.id)
    machine.accept(db_session, user, post.id, answer.id)

    assert _record(db_session, other_user).reputation_points == 25


def test_unaccept_clears_state(
    db_session, machine, user, other_user, make_post, make_comment
) -> None:
    post = make_post(user)
    answer = make_comment(post, other_user)
    machine.accept(db_session, user, post.id, answer.id)

    state = machine.unaccept(db_session, user, answer.id)

    assert state.state == STATE_NO_ACCEPTED_ANSWER
    assert state.comment_id is None
    _assert_exclusive(db_session, post.id)
    assert _record(db_session, other_user).reputation_points == 0


def test_repeated_unaccept_never_negative(
    db_session, machine, user, other_user, make_post, make_comment
) -> None:
    """Unaccepting more often than accepting keeps points at zero."""
    post = make_post(user)
    answer = make_comment(post, other_user)
    machine.accept(db_session, user, post.id, answer.id)

    for _ in range(4):
        machine.unaccept(db_session, user, answer.id)

    assert _record(db_session, other_user).reputation_points == 0


def test_exclusivity_over_sequence(
    db_session, machine, user, make_user, make_post, make_comment
) -> None:
    """Any mix of accept and unaccept keeps a single accepted answer."""
    post = make_post(user)
    answers = [make_comment(post, make_user()) for _ in range(3)]
    steps = [
        ("accept", 0),
        ("accept", 1),
        ("unaccept", 0),
        ("accept", 2),
        ("accept", 2),
        ("unaccept", 2),
        ("accept", 0),
        ("accept", 1),
    ]

    for action, index in steps:
        if action == "accept":
            machine.accept(db_session, user, post.id, answers[index].id)
        else:
            machine.unaccept(db_session, user, answers[index].id)
        _assert_exclusive(db_session, post.id)

    assert machine.state(db_session, post.id).comment_id == answers[1].id


def test_only_author_may_accept(
    db_session, machine, user, other_user, make_post, make_comment
) -> None:
    post = make_post(user)
    answer = make_comment(post, other_user)

    with pytest.raises(Forbidden):
        machine.accept(db_session, other_user, post.id, answer.id)
    with pytest.raises(Unauthorized):
        machine.accept(db_session, None, post.id, answer.id)

    _assert_exclusive(db_session, post.id)
    assert _accepted_ids(db_session, post.id) == []


def test_forbidden_is_an_authorization_error() -> None:
    assert issubclass(Forbidden, Unauthorized)


def test_answer_from_other_post_conflicts(
    db_session, machine, user, other_user, make_post, make_comment
) -> None:
    post = make_post(user)
    elsewhere = make_post(other_user)
    foreign = make_comment(elsewhere, other_user)

    with pytest.raises(Conflict):
        machine.accept(db_session, user, post.id, foreign.id)


def test_pending_answer_conflicts(
    db_session, machine, user, other_user, make_post, make_comment
) -> None:
    post = make_post(user)
    pending = make_comment(post, other_user, status=COMMENT_STATUS_PENDING, has_urls=True)

    with pytest.raises(Conflict):
        machine.accept(db_session, user, post.id, pending.id)


def test_missing_entities(db_session, machine, user, make_post) -> None:
    post = make_post(user)

    with pytest.raises(NotFound):
        machine.accept(db_session, user, post.id, 12345)
    with pytest.raises(NotFound):
        machine.accept(db_session, user, 12345, 1)
    with pytest.raises(NotFound):
        machine.unaccept(db_session, user, 12345)


def test_self_accept_awards_nothing(db_session, machine, user, make_post, make_comment) -> None:
    """Accepting your own answer changes state but not reputation."""
    post = make_post(user)
    own = make_comment(post, user)

    machine.accept(db_session, user, post.id, own.id)

    assert _accepted_ids(db_session, post.id) == [own.id]
    record = _record(db_session, user)
    assert record is None or record.reputation_points == 0


def test_list_answers_order(db_session, machine, user, make_user, make_post, make_comment) -> None:
    """Accepted answer first, then by up-votes, then newest."""
    post = make_post(user)
    now = utcnow()
    old_popular = make_comment(post, make_user(), upvote_count=5, created_at=now - timedelta(hours=3))
    newer = make_comment(post, make_user(), upvote_count=1, created_at=now - timedelta(hours=1))
    older = make_comment(post, make_user(), upvote_count=1, created_at=now - timedelta(hours=2))
    accepted = make_comment(post, make_user(), created_at=now - timedelta(hours=4))
    make_comment(post, make_user(), status=COMMENT_STATUS_PENDING)

    machine.accept(db_session, user, post.id, accepted.id)

    ordered = [answer.id for answer in list_answers(db_session, post.id)]
    assert ordered == [accepted.id, old_popular.id, newer.id, older.id]
