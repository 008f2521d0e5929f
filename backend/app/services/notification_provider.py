# backend/app/services/notification_provider.py
"""
Notification provider used by the outbox dispatcher.

Turns a ``notification.push`` outbox payload into FCM pushes for each of
the recipient's active devices.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
import logging
from typing import Any, Callable, Dict, Generator, Optional

from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.services.notification_service import PUSH_EVENT_TYPE
from app.services.push_notification_service import PushNotificationService

logger = logging.getLogger(__name__)


class NotificationProviderTemporaryError(RuntimeError):
    """Every device failed with a transient error; the event should be retried."""


@contextmanager
def _managed_session(session_factory: Callable[[], Session]) -> Generator[Session, None, None]:
    """Context manager that yields a session and guarantees cleanup."""
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@dataclass(slots=True)
class NotificationDispatchResult:
    """Outcome of one outbox delivery."""

    idempotency_key: str
    event_type: str
    sent: int
    failed: int
    expired: int


class NotificationProvider:
    """
    Outbox-facing push dispatcher.

    Usage:
        provider = NotificationProvider()
        provider.send(event_type="notification.push", payload={...}, idempotency_key="...")
    """

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        self._session_factory = session_factory or SessionLocal

    def send(
        self,
        event_type: str,
        payload: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> NotificationDispatchResult:
        if not idempotency_key:
            raise ValueError("idempotency_key is required for notification dispatch")
        if event_type != PUSH_EVENT_TYPE:
            raise ValueError(f"Unsupported outbox event type: {event_type}")

        payload = payload or {}
        user_id = payload.get("user_id")
        if not user_id:
            raise ValueError("notification payload is missing user_id")

        with _managed_session(self._session_factory) as session:
            counts = PushNotificationService(session).send_to_user(
                user_id,
                title=payload.get("title") or "",
                body=payload.get("body") or "",
                data=payload.get("data") or {},
            )

        logger.info(
            "Dispatched %s key=%s sent=%s failed=%s expired=%s",
            event_type,
            idempotency_key,
            counts["sent"],
            counts["failed"],
            counts["expired"],
        )
        if counts["failed"] and not counts["sent"]:
            raise NotificationProviderTemporaryError(
                f"All {counts['failed']} devices failed for {idempotency_key}"
            )
        return NotificationDispatchResult(
            idempotency_key=idempotency_key,
            event_type=event_type,
            sent=counts["sent"],
            failed=counts["failed"],
            expired=counts["expired"],
        )
