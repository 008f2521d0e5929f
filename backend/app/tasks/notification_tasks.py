# backend/app/tasks/notification_tasks.py
"""
Celery tasks for dispatching notification outbox events.

Implements a two-step workflow:
1. `outbox.dispatch_pending` periodically enqueues delivery tasks.
2. `outbox.deliver_event` performs delivery with retries and backoff.

Plus the daily `notifications.purge_read` cleanup.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from time import monotonic
from typing import Any, Iterator, Optional, cast

from celery.app.task import Task  # noqa: F401 - used for type hints
from celery.utils.log import get_task_logger
from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.monitoring.prometheus_metrics import PrometheusMetrics
from app.repositories.event_outbox_repository import EventOutboxRepository
from app.repositories.notification_repository import NotificationRepository
from app.services.notification_provider import NotificationProvider
from app.tasks.celery_app import celery_app

logger = get_task_logger(__name__)

MAX_DELIVERY_ATTEMPTS = 5
BACKOFF_SECONDS = [30, 120, 600, 1800, 7200]
READ_NOTIFICATION_RETENTION = timedelta(days=1)


def _next_backoff(attempt_number: int) -> int:
    """Return backoff delay for the given attempt (1-indexed)."""
    index = max(0, min(attempt_number - 1, len(BACKOFF_SECONDS) - 1))
    return BACKOFF_SECONDS[index]


@contextmanager
def _session_scope() -> Iterator[Session]:
    """Provide transactional scope for use in tasks."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@celery_app.task(name="outbox.dispatch_pending", max_retries=0, queue="notifications")
def dispatch_pending() -> int:
    """
    Fetch pending outbox events and enqueue delivery tasks.

    Returns the number of events scheduled.
    """
    with _session_scope() as session:
        pending = EventOutboxRepository(session).fetch_pending(limit=200)
        for event in pending:
            deliver_event.apply_async((event.id,), queue="notifications")
        scheduled: int = len(pending)
        if scheduled:
            logger.info("Scheduled %s outbox events for delivery", scheduled)
        return scheduled


def deliver(
    event_id: str, provider: Optional[NotificationProvider] = None
) -> tuple[Optional[str], Optional[int], Optional[Exception]]:
    """
    Attempt one delivery and record the outcome on the outbox row.

    Returns ``(delivered_id, retry_backoff, error)``: a delivered id on
    success, a backoff when another attempt should be scheduled, and the
    error for failed attempts.
    """
    provider = provider or NotificationProvider()
    with _session_scope() as session:
        repo = EventOutboxRepository(session)
        event = repo.get_by_id(event_id, for_update=True)
        if event is None:
            logger.warning("Outbox event %s missing; skipping", event_id)
            return None, None, None

        attempt_number = event.attempt_count + 1
        PrometheusMetrics.record_notification_attempt(event.event_type)
        start = monotonic()
        try:
            provider.send(
                event_type=event.event_type,
                payload=event.payload,
                idempotency_key=event.idempotency_key,
            )
        except Exception as exc:
            PrometheusMetrics.observe_notification_dispatch(event.event_type, monotonic() - start)
            backoff = _next_backoff(attempt_number)
            terminal = attempt_number >= MAX_DELIVERY_ATTEMPTS
            repo.mark_failed(
                event.id,
                attempt_count=attempt_number,
                backoff_seconds=backoff,
                error=str(exc),
                terminal=terminal,
            )
            if terminal:
                PrometheusMetrics.record_notification_outcome(event.event_type, "failed")
                logger.error(
                    "Outbox event %s failed permanently after %s attempts: %s",
                    event.id,
                    attempt_number,
                    exc,
                )
                return None, None, exc
            logger.warning(
                "Retrying outbox event %s attempt=%s backoff=%ss: %s",
                event.id,
                attempt_number,
                backoff,
                exc,
            )
            return None, backoff, exc

        PrometheusMetrics.observe_notification_dispatch(event.event_type, monotonic() - start)
        repo.mark_sent(event.id, attempt_number)
        PrometheusMetrics.record_notification_outcome(event.event_type, "sent")
        logger.info(
            "Delivered outbox event %s type=%s attempts=%s",
            event.id,
            event.event_type,
            attempt_number,
        )
        return cast(str, event.id), None, None


@celery_app.task(
    name="outbox.deliver_event",
    bind=True,
    max_retries=MAX_DELIVERY_ATTEMPTS,
    default_retry_delay=30,
    queue="notifications",
)
def deliver_event(self: "Task[Any, Any]", event_id: str) -> Optional[str]:
    """Deliver a single outbox event."""
    delivered_id, backoff, error = deliver(event_id)
    if error is not None:
        if backoff is None:
            raise error
        raise self.retry(countdown=backoff, exc=error)
    return delivered_id


@celery_app.task(name="notifications.purge_read", max_retries=0)
def purge_read_notifications() -> int:
    """Delete notifications that were read more than a day ago."""
    cutoff = datetime.now(timezone.utc) - READ_NOTIFICATION_RETENTION
    with _session_scope() as session:
        deleted = NotificationRepository(session).purge_read_before(cutoff)
    logger.info("Deleted %s old notifications", deleted)
    return deleted
