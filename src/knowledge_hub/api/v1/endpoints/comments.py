# src/knowledge_hub/api/v1/endpoints/comments.py
"""Answer endpoints for the Knowledge Hub API."""

from fastapi import APIRouter, BackgroundTasks, status

from knowledge_hub.api.v1.dependencies import (
    CurrentUserDep,
    FollowNotifierDep,
    OptionalUserDep,
    SessionDep,
)
from knowledge_hub.models import Comment, User
from knowledge_hub.models.comment import COMMENT_STATUS_APPROVED
from knowledge_hub.schemas.comment import CommentCreate, CommentResponse, CommentStatusUpdate
from knowledge_hub.services.answers import list_answers
from knowledge_hub.services.comments import answer_summary, create_comment, set_comment_status
from knowledge_hub.services.notifier import FollowNotifier
from knowledge_hub.services.posts import get_post

router = APIRouter(tags=["comments"])


def _schedule_notification(
    background_tasks: BackgroundTasks,
    notifier: FollowNotifier,
    comment: Comment,
    author: User,
) -> None:
    # Runs after the response, outside the answer's transaction.
    background_tasks.add_task(
        notifier.notify_followers,
        comment.post_id,
        answer_summary(comment, author),
    )


@router.post(
    "/posts/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
def post_comment(
    post_id: int,
    payload: CommentCreate,
    background_tasks: BackgroundTasks,
    current_user: CurrentUserDep,
    notifier: FollowNotifierDep,
    db: SessionDep,
) -> Comment:
    """Answer a post. Answers with links wait for moderation."""
    comment = create_comment(db, current_user, post_id, payload.content)
    if comment.status == COMMENT_STATUS_APPROVED:
        _schedule_notification(background_tasks, notifier, comment, current_user)
    return comment


@router.get("/posts/{post_id}/comments", response_model=list[CommentResponse])
def get_comments(post_id: int, viewer: OptionalUserDep, db: SessionDep) -> list[Comment]:
    """Return approved answers, accepted answer first."""
    get_post(db, post_id, viewer)
    return list_answers(db, post_id)


@router.post("/comments/{comment_id}/status", response_model=CommentResponse)
def moderate_comment(
    comment_id: int,
    payload: CommentStatusUpdate,
    background_tasks: BackgroundTasks,
    current_user: CurrentUserDep,
    notifier: FollowNotifierDep,
    db: SessionDep,
) -> Comment:
    """Approve or reject an answer."""
    previous = db.get(Comment, comment_id)
    was_approved = previous is not None and previous.status == COMMENT_STATUS_APPROVED
    comment = set_comment_status(db, current_user, comment_id, payload.status)
    if comment.status == COMMENT_STATUS_APPROVED and not was_approved:
        author = db.get(User, comment.author_id)
        if author is not None:
            _schedule_notification(background_tasks, notifier, comment, author)
    return comment
