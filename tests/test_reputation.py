# tests/test_reputation.py
"""Tests for the reputation ledger."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from knowledge_hub.db.time import utcnow
from knowledge_hub.models import ReputationEvent, ReputationRecord
from knowledge_hub.services.reputation import (
    EventKind,
    ReputationLedger,
    reputation_tier,
    vote_weight,
)


@pytest.mark.parametrize(
    ("points", "tier", "weight"),
    [
        (0, "Novice", 0.5),
        (50, "Novice", 0.5),
        (51, "Contributor", 0.75),
        (100, "Contributor", 0.75),
        (101, "Regular", 1.0),
        (500, "Regular", 1.0),
        (501, "Expert", 1.5),
        (1000, "Expert", 1.5),
        (1001, "Master", 2.0),
        (25_000, "Master", 2.0),
    ],
)
def test_tier_boundaries(points: int, tier: str, weight: float) -> None:
    """Tier and weight follow the documented point bands."""
    assert reputation_tier(points).name == tier
    assert vote_weight(points) == weight


@pytest.mark.parametrize(
    ("role", "expected"),
    [("user", 0), ("contributor", 101), ("moderator", 101), ("admin", 101)],
)
def test_record_seeded_by_role(db_session, make_user, ledger, role: str, expected: int) -> None:
    """First records start at 0 for users and at the Regular tier for privileged roles."""
    member = make_user(role=role)

    record = ledger.get_or_create_record(db_session, member)
    db_session.commit()

    assert record.reputation_points == expected
    assert db_session.get(ReputationRecord, member.id) is not None


def test_get_or_create_record_is_idempotent(db_session, user, ledger) -> None:
    """A second call returns the existing record instead of reseeding it."""
    ledger.get_or_create_record(db_session, user)
    ledger.apply_delta(db_session, user, EventKind.ANSWER_UPVOTED)
    db_session.commit()

    record = ledger.get_or_create_record(db_session, user)

    assert record.reputation_points == 10
    records = db_session.execute(select(ReputationRecord)).scalars().all()
    assert len(records) == 1


def test_apply_delta_records_event(db_session, user, ledger) -> None:
    """Each applied delta appends an audit event with the resulting balance."""
    assert ledger.apply_delta(db_session, user, EventKind.ANSWER_ACCEPTED, post_id=7) == 25
    assert ledger.apply_delta(db_session, user, EventKind.QUESTION_UPVOTED) == 30
    db_session.commit()

    events = db_session.execute(
        select(ReputationEvent).order_by(ReputationEvent.id)
    ).scalars().all()
    assert [(e.kind, e.delta, e.points_after) for e in events] == [
        ("answer_accepted", 25, 25),
        ("question_upvoted", 5, 30),
    ]
    assert events[0].post_id == 7


def test_points_never_drop_below_zero(db_session, user, ledger) -> None:
    """Repeated reversals beyond prior awards clamp at zero."""
    ledger.apply_delta(db_session, user, EventKind.ANSWER_ACCEPTED)
    for _ in range(3):
        ledger.apply_delta(db_session, user, EventKind.ANSWER_UNACCEPTED)
    db_session.commit()

    record = ledger.get_or_create_record(db_session, user)
    assert record.reputation_points == 0

    applied = db_session.execute(
        select(ReputationEvent.applied_delta)
        .where(ReputationEvent.kind == EventKind.ANSWER_UNACCEPTED.value)
        .order_by(ReputationEvent.id)
    ).scalars().all()
    assert applied == [-25, 0, 0]


def test_participation_cap(db_session, user) -> None:
    """Vote-cast points stop once the daily cap is reached."""
    ledger = ReputationLedger(participation_daily_cap=2)

    assert ledger.participation_allowed(db_session, user)
    ledger.apply_delta(db_session, user, EventKind.VOTE_CAST)
    assert ledger.participation_allowed(db_session, user)
    ledger.apply_delta(db_session, user, EventKind.VOTE_CAST)
    assert not ledger.participation_allowed(db_session, user)

    # The window is trailing 24 hours.
    tomorrow = utcnow() + timedelta(hours=25)
    assert ledger.participation_allowed(db_session, user, now=tomorrow)


def test_helpful_transition_counts_both_directions(db_session, user) -> None:
    """Crossing the helpful threshold up and down adjusts the counter."""
    ledger = ReputationLedger(helpful_threshold=5)

    ledger.record_helpful_transition(db_session, user, 4, 5)
    db_session.commit()
    assert ledger.get_reputation(db_session, user).helpful_answers_count == 1

    ledger.record_helpful_transition(db_session, user, 6, 7)
    ledger.record_helpful_transition(db_session, user, 5, 4)
    db_session.commit()
    assert ledger.get_reputation(db_session, user).helpful_answers_count == 0


def test_get_reputation_reports_tier(db_session, make_user, ledger) -> None:
    """The summary derives tier and weight from the current points."""
    contributor = make_user(role="contributor")

    summary = ledger.get_reputation(db_session, contributor)

    assert summary.reputation_points == 101
    assert summary.tier == "Regular"
    assert summary.vote_weight == 1.0
