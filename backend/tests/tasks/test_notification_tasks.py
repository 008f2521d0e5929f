"""Outbox delivery and notification cleanup tasks."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from app.models.event_outbox import EventOutbox, EventOutboxStatus
from app.models.notification import Notification
from app.services.notification_service import NotificationService
from app.tasks import notification_tasks


@pytest.fixture(autouse=True)
def task_session(db, monkeypatch):
    """Tasks open their own sessions; point them at the test session."""
    monkeypatch.setattr(notification_tasks, "SessionLocal", lambda: db)
    return db


@pytest.fixture
def queued_event(db, host):
    notification = NotificationService(db).notify(host.id, "New Booking", "confirmed")
    db.commit()
    return db.query(EventOutbox).filter_by(aggregate_id=notification.id).one().id


def _event(db, event_id):
    return db.get(EventOutbox, event_id)


def test_deliver_marks_event_sent(db, queued_event):
    provider = MagicMock()

    delivered_id, backoff, error = notification_tasks.deliver(queued_event, provider)

    assert (delivered_id, backoff, error) == (queued_event, None, None)
    call = provider.send.call_args.kwargs
    assert call["event_type"] == "notification.push"
    assert call["idempotency_key"] == f"notification.push:{call['payload']['notification_id']}"
    event = _event(db, queued_event)
    assert event.status == EventOutboxStatus.SENT.value
    assert event.attempt_count == 1


def test_failed_attempt_is_retried_with_backoff(db, queued_event):
    provider = MagicMock()
    provider.send.side_effect = RuntimeError("fcm unavailable")

    delivered_id, backoff, error = notification_tasks.deliver(queued_event, provider)

    assert delivered_id is None
    assert backoff == 30
    assert isinstance(error, RuntimeError)
    event = _event(db, queued_event)
    assert event.status == EventOutboxStatus.PENDING.value
    assert event.attempt_count == 1
    assert event.last_error == "fcm unavailable"


def test_last_attempt_is_terminal(db, queued_event):
    db.get(EventOutbox, queued_event).attempt_count = notification_tasks.MAX_DELIVERY_ATTEMPTS - 1
    db.commit()
    provider = MagicMock()
    provider.send.side_effect = RuntimeError("still down")

    delivered_id, backoff, error = notification_tasks.deliver(queued_event, provider)

    assert (delivered_id, backoff) == (None, None)
    assert error is not None
    assert _event(db, queued_event).status == EventOutboxStatus.FAILED.value


def test_missing_event_is_skipped(db):
    assert notification_tasks.deliver("01HZZZZZZZZZZZZZZZZZZZZZZZ", MagicMock()) == (None, None, None)


def test_backoff_schedule():
    assert notification_tasks._next_backoff(1) == 30
    assert notification_tasks._next_backoff(3) == 600
    assert notification_tasks._next_backoff(99) == 7200


def test_dispatch_pending_schedules_due_events(db, queued_event, monkeypatch):
    apply_async = MagicMock()
    monkeypatch.setattr(notification_tasks.deliver_event, "apply_async", apply_async)

    assert notification_tasks.dispatch_pending() == 1
    apply_async.assert_called_once_with((queued_event,), queue="notifications")


def test_purge_read_notifications(db, host):
    now = datetime.now(timezone.utc)
    db.add_all(
        [
            Notification(user_id=host.id, type="booking", title="old", is_read=True, read_at=now - timedelta(days=2)),
            Notification(user_id=host.id, type="booking", title="fresh", is_read=True, read_at=now - timedelta(hours=1)),
            Notification(user_id=host.id, type="booking", title="unread", is_read=False),
        ]
    )
    db.commit()

    assert notification_tasks.purge_read_notifications() == 1

    remaining = sorted(n.title for n in db.query(Notification).all())
    assert remaining == ["fresh", "unread"]
