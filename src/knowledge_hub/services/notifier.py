"""Best-effort "new answer" notifications for post followers.

Notification never affects the comment flow that triggers it: the notifier
runs after the comment transaction has committed, in its own session, and
every failure is logged and dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass
from typing import Protocol

import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session

from knowledge_hub.core.settings import settings
from knowledge_hub.db.session import SessionLocal
from knowledge_hub.models import Follow, NotificationQueue

logger = logging.getLogger(__name__)

SUMMARY_MAX_CHARS = 200


@dataclass(frozen=True)
class NewAnswerSummary:
    """What followers are told about a new answer."""

    comment_id: int
    answerer_id: int
    answerer_name: str
    content: str


@dataclass(frozen=True)
class FollowerNotification:
    """One payload addressed to one follower."""

    post_id: int
    recipient_id: int
    message: str
    answerer_name: str


class NotificationSink(Protocol):
    """Delivery transport for follower notifications."""

    def deliver(self, db: Session, notifications: Sequence[FollowerNotification]) -> None: ...


class QueueSink:
    """Store notifications in `notification_queue` for a delivery worker."""

    def deliver(self, db: Session, notifications: Sequence[FollowerNotification]) -> None:
        db.add_all(
            NotificationQueue(
                post_id=item.post_id,
                recipient_id=item.recipient_id,
                message=item.message,
                answerer_name=item.answerer_name,
                processed=False,
            )
            for item in notifications
        )
        db.commit()


class WebhookSink:
    """POST the notification batch as JSON to an external endpoint."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self.timeout_seconds = (
            settings.notify_http_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        self._client = client

    def deliver(self, db: Session, notifications: Sequence[FollowerNotification]) -> None:
        payload = {"notifications": [asdict(item) for item in notifications]}
        if self._client is not None:
            response = self._client.post(self.url, json=payload)
        else:
            with httpx.Client(timeout=httpx.Timeout(self.timeout_seconds)) as client:
                response = client.post(self.url, json=payload)
        response.raise_for_status()


class LoggingSink:
    """Log each notification; useful in development."""

    def deliver(self, db: Session, notifications: Sequence[FollowerNotification]) -> None:
        for item in notifications:
            logger.info("Notify user %s about post %s: %s", item.recipient_id, item.post_id, item.message)


def build_message(summary: NewAnswerSummary) -> str:
    """Return the follower-facing message for a new answer."""
    return f"New answer by {summary.answerer_name}: {summary.content[:SUMMARY_MAX_CHARS]}"


class FollowNotifier:
    """Fan a new answer out to the followers of a post."""

    def __init__(
        self,
        sinks: Sequence[NotificationSink] | None = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ) -> None:
        self.sinks = list(sinks) if sinks is not None else default_sinks()
        self.session_factory = session_factory

    def notify_followers(self, post_id: int, summary: NewAnswerSummary) -> int:
        """Notify followers of `post_id` about a new answer.

        Returns the number of followers addressed. Never raises.
        """
        try:
            with self.session_factory() as db:
                notifications = self._collect(db, post_id, summary)
                if not notifications:
                    return 0
                for sink in self.sinks:
                    self._deliver(db, sink, notifications)
                return len(notifications)
        except Exception:
            logger.exception("Failed to notify followers of post %s", post_id)
            return 0

    @staticmethod
    def _collect(
        db: Session, post_id: int, summary: NewAnswerSummary
    ) -> list[FollowerNotification]:
        recipients = db.execute(
            select(Follow.user_id).where(
                Follow.post_id == post_id,
                Follow.notification_enabled.is_(True),
                Follow.user_id != summary.answerer_id,
            )
        ).scalars()
        message = build_message(summary)
        return [
            FollowerNotification(
                post_id=post_id,
                recipient_id=recipient_id,
                message=message,
                answerer_name=summary.answerer_name,
            )
            for recipient_id in recipients
        ]

    @staticmethod
    def _deliver(
        db: Session, sink: NotificationSink, notifications: Sequence[FollowerNotification]
    ) -> None:
        try:
            sink.deliver(db, notifications)
        except Exception as exc:
            db.rollback()
            logger.warning(
                "%s failed to deliver %d notification(s): %s",
                type(sink).__name__,
                len(notifications),
                exc,
            )


def default_sinks() -> list[NotificationSink]:
    """Return the sinks enabled by configuration."""
    sinks: list[NotificationSink] = [QueueSink()]
    if settings.notify_webhook_url:
        sinks.append(WebhookSink(settings.notify_webhook_url))
    if settings.debug:
        sinks.append(LoggingSink())
    return sinks


class _FollowNotifierSingleton:
    _instance: FollowNotifier | None = None

    @classmethod
    def get_instance(cls) -> FollowNotifier:
        if cls._instance is None:
            cls._instance = FollowNotifier()
        return cls._instance


def get_follow_notifier() -> FollowNotifier:
    """Return the shared follow notifier."""
    return _FollowNotifierSingleton.get_instance()
