# tests/test_suggestions.py
"""Tests for reader edit suggestions and their moderator review."""

import pytest

from knowledge_hub.core.errors import Conflict, Forbidden, NotFound, Unauthorized
from knowledge_hub.models import Post
from knowledge_hub.services.posts import (
    approve_suggestion,
    list_suggestions,
    reject_suggestion,
    suggest_edit,
)
from knowledge_hub.services.slugs import append_version, list_versions


def _post_with_history(db_session, author, make_post) -> Post:
    post = make_post(author, title="Visa guide", slug="visa-guide", content="Original body")
    append_version(db_session, post, author, summary="Initial creation")
    db_session.commit()
    return post


def test_suggest_edit_queues_pending(db_session, user, other_user, make_post) -> None:
    post = make_post(user)

    suggestion = suggest_edit(
        db_session,
        other_user,
        post.id,
        content="Better body",
        edit_type="typo_fix",
        summary="Fix spelling",
    )

    assert suggestion.status == "pending"
    assert suggestion.suggester_id == other_user.id
    assert suggestion.merged_as_version is None


def test_suggest_edit_requires_identity(db_session, user, make_post) -> None:
    post = make_post(user)

    with pytest.raises(Unauthorized):
        suggest_edit(db_session, None, post.id, content="Better body")


def test_suggest_edit_on_hidden_post(db_session, user, other_user, make_post) -> None:
    post = make_post(user, status="pending_moderation")

    with pytest.raises(NotFound):
        suggest_edit(db_session, other_user, post.id, content="Better body")


def test_suggest_edit_rejects_unknown_type(db_session, user, other_user, make_post) -> None:
    post = make_post(user)

    with pytest.raises(Conflict):
        suggest_edit(db_session, other_user, post.id, content="x", edit_type="rewrite")


def test_approve_merges_as_next_version(db_session, user, other_user, moderator, make_post) -> None:
    """Approval applies the edit and appends a version credited to the suggester."""
    post = _post_with_history(db_session, user, make_post)
    suggestion = suggest_edit(
        db_session,
        other_user,
        post.id,
        content="Updated body",
        edit_type="add_section",
        title="Visa guide 2026",
        summary="Add fees section",
    )

    merged_post, version, merged = approve_suggestion(db_session, moderator, suggestion.id)

    assert version.version_number == 2
    assert version.editor_id == other_user.id
    assert version.change_type == "major_edit"
    assert version.summary == "Add fees section"
    assert merged.status == "approved"
    assert merged.merged_as_version == 2
    assert merged.reviewer_id == moderator.id
    assert merged.reviewed_at is not None
    assert merged_post.content == "Updated body"
    assert merged_post.title == "Visa guide 2026"
    assert merged_post.slug == "visa-guide-2026"
    assert merged_post.last_edited_at is not None
    assert [v.version_number for v in list_versions(db_session, post.id)] == [2, 1]


def test_approve_keeps_title_when_not_suggested(
    db_session, user, other_user, moderator, make_post
) -> None:
    post = _post_with_history(db_session, user, make_post)
    suggestion = suggest_edit(db_session, other_user, post.id, content="Tidied", edit_type="formatting")

    merged_post, version, _ = approve_suggestion(db_session, moderator, suggestion.id)

    assert merged_post.title == "Visa guide"
    assert merged_post.slug == "visa-guide"
    assert version.change_type == "minor_edit"


def test_review_requires_moderator(db_session, user, other_user, make_post) -> None:
    post = make_post(user)
    suggestion = suggest_edit(db_session, other_user, post.id, content="Better body")

    with pytest.raises(Forbidden):
        approve_suggestion(db_session, user, suggestion.id)
    with pytest.raises(Forbidden):
        reject_suggestion(db_session, user, suggestion.id)
    with pytest.raises(Unauthorized):
        list_suggestions(db_session, None)


def test_reject_records_notes_without_touching_post(
    db_session, user, other_user, moderator, make_post
) -> None:
    post = _post_with_history(db_session, user, make_post)
    suggestion = suggest_edit(db_session, other_user, post.id, content="Spam")

    rejected = reject_suggestion(db_session, moderator, suggestion.id, notes="Not accurate")

    assert rejected.status == "rejected"
    assert rejected.reviewer_notes == "Not accurate"
    assert rejected.merged_as_version is None
    refreshed = db_session.get(Post, post.id, populate_existing=True)
    assert refreshed.content == "Original body"
    assert len(list_versions(db_session, post.id)) == 1


def test_reviewed_suggestion_cannot_be_reviewed_again(
    db_session, user, other_user, moderator, make_post
) -> None:
    post = _post_with_history(db_session, user, make_post)
    suggestion = suggest_edit(db_session, other_user, post.id, content="Updated body")
    approve_suggestion(db_session, moderator, suggestion.id)

    with pytest.raises(Conflict):
        approve_suggestion(db_session, moderator, suggestion.id)
    with pytest.raises(Conflict):
        reject_suggestion(db_session, moderator, suggestion.id)
    assert len(list_versions(db_session, post.id)) == 2


def test_missing_suggestion(db_session, moderator) -> None:
    with pytest.raises(NotFound):
        approve_suggestion(db_session, moderator, 999)


def test_list_suggestions_by_status(db_session, user, other_user, moderator, make_post) -> None:
    post = make_post(user)
    first = suggest_edit(db_session, other_user, post.id, content="One")
    second = suggest_edit(db_session, other_user, post.id, content="Two")
    reject_suggestion(db_session, moderator, first.id)

    pending = list_suggestions(db_session, moderator)
    rejected = list_suggestions(db_session, moderator, status="rejected")

    assert [item.id for item in pending] == [second.id]
    assert [item.id for item in rejected] == [first.id]


def test_suggestion_endpoints(
    client, db_session, user, other_user, moderator, make_post, auth_headers
) -> None:
    post = _post_with_history(db_session, user, make_post)

    created = client.post(
        f"/api/v1/posts/{post.id}/suggestions",
        json={"suggested_content": "Updated body", "edit_type": "typo_fix"},
        headers=auth_headers(other_user),
    )
    assert created.status_code == 201
    suggestion_id = created.json()["id"]

    queue = client.get("/api/v1/suggestions", headers=auth_headers(moderator))
    assert [item["id"] for item in queue.json()] == [suggestion_id]
    assert client.get("/api/v1/suggestions", headers=auth_headers(other_user)).status_code == 403

    approved = client.post(
        f"/api/v1/suggestions/{suggestion_id}/approve",
        headers=auth_headers(moderator),
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"
    assert approved.json()["merged_as_version"] == 2

    again = client.post(
        f"/api/v1/suggestions/{suggestion_id}/reject",
        json={"reviewer_notes": "late"},
        headers=auth_headers(moderator),
    )
    assert again.status_code == 409
