# backend/app/repositories/event_outbox_repository.py
"""
Repository for the notification event outbox.

Rows are added inside the business transaction that produced them, so a
rolled-back booking transition never leaves a push behind. The Celery
dispatcher reads due rows after commit and records each delivery outcome.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Optional, cast

from sqlalchemy import Select, select, update
from sqlalchemy.orm import Session

from app.database import get_dialect_name
from app.models.event_outbox import EventOutbox, EventOutboxStatus

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 1000


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class EventOutboxRepository:
    """Enqueue, claim and settle outbox rows."""

    def __init__(self, db: Session):
        self.db = db
        self._is_postgres = get_dialect_name(db, default="postgresql").lower() == "postgresql"

    def find_by_idempotency_key(self, key: str) -> Optional[EventOutbox]:
        stmt = select(EventOutbox).where(EventOutbox.idempotency_key == key)
        return cast(Optional[EventOutbox], self.db.execute(stmt).scalar_one_or_none())

    def enqueue(
        self,
        event_type: str,
        aggregate_id: str,
        payload: dict[str, Any],
        idempotency_key: str,
    ) -> EventOutbox:
        """
        Add a pending row, or return the one already holding the idempotency key.

        Does not commit; the caller's transaction decides whether the event
        is ever seen by the dispatcher.
        """
        existing = self.find_by_idempotency_key(idempotency_key)
        if existing is not None:
            logger.debug(f"Outbox event {idempotency_key} already queued")
            return existing

        event = EventOutbox(
            event_type=event_type,
            aggregate_id=aggregate_id,
            payload=payload,
            idempotency_key=idempotency_key,
            status=EventOutboxStatus.PENDING.value,
            attempt_count=0,
            next_attempt_at=_now_utc(),
        )
        self.db.add(event)
        self.db.flush()
        return event

    def fetch_pending(self, limit: int = 200, now: Optional[datetime] = None) -> list[EventOutbox]:
        """Due pending rows, oldest first; rows locked by another dispatcher are skipped."""
        stmt: Select[Any] = (
            select(EventOutbox)
            .where(EventOutbox.status == EventOutboxStatus.PENDING.value)
            .where(EventOutbox.next_attempt_at <= (now or _now_utc()))
            .order_by(EventOutbox.next_attempt_at.asc(), EventOutbox.id.asc())
            .limit(limit)
        )
        if self._is_postgres:
            stmt = stmt.with_for_update(skip_locked=True)
        return cast(list[EventOutbox], self.db.execute(stmt).scalars().all())

    def get_by_id(self, event_id: str, for_update: bool = False) -> Optional[EventOutbox]:
        if not (for_update and self._is_postgres):
            return cast(Optional[EventOutbox], self.db.get(EventOutbox, event_id))
        stmt = select(EventOutbox).where(EventOutbox.id == event_id).with_for_update(skip_locked=True)
        return cast(Optional[EventOutbox], self.db.execute(stmt).scalar_one_or_none())

    def _settle(self, event_id: str, **values: Any) -> None:
        values["updated_at"] = _now_utc()
        self.db.execute(update(EventOutbox).where(EventOutbox.id == event_id).values(**values))
        self.db.flush()

    def mark_sent(self, event_id: str, attempt_count: int) -> None:
        self._settle(
            event_id,
            status=EventOutboxStatus.SENT.value,
            attempt_count=attempt_count,
            last_error=None,
        )

    def mark_failed(
        self,
        event_id: str,
        *,
        attempt_count: int,
        backoff_seconds: int,
        error: Optional[str] = None,
        terminal: bool = False,
    ) -> None:
        """Record a failed attempt; a terminal failure is never retried."""
        if terminal:
            status = EventOutboxStatus.FAILED.value
            next_attempt_at = _now_utc()
        else:
            status = EventOutboxStatus.PENDING.value
            next_attempt_at = _now_utc() + timedelta(seconds=max(backoff_seconds, 1))
        self._settle(
            event_id,
            status=status,
            attempt_count=attempt_count,
            next_attempt_at=next_attempt_at,
            last_error=error[:MAX_ERROR_LENGTH] if error else None,
        )
