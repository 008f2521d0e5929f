# backend/app/services/notification_service.py
"""
Notification Service for the Parkspace platform.

Booking transitions call ``notify`` inside their own transaction. It writes an
in-app Notification row and an outbox event in the same unit of work, so a
notification exists if and only if the transition committed. Push delivery
happens later in the Celery outbox worker and can never roll a booking back.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException
from ..models.notification import Notification
from ..repositories import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

PUSH_EVENT_TYPE = "notification.push"


class NotificationType:
    """Notification type labels stored on the Notification row."""

    BOOKING = "booking"
    BOOKING_LOG = "booking_log"
    TIME_CHANGE = "time_change"
    PAYMENT = "payment"
    PAYOUT = "payout"


class NotificationService(BaseService):
    """In-app notifications plus outbox enqueue for push delivery."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_notification_repository(db)
        self.outbox_repository = RepositoryFactory.create_event_outbox_repository(db)

    def notify(
        self,
        user_id: str,
        title: str,
        body: str,
        notification_type: str = NotificationType.BOOKING,
        *,
        booking_id: Optional[str] = None,
        spot_id: Optional[str] = None,
        vehicle_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        """
        Record a notification for ``user_id`` and schedule its push.

        Does not commit; the caller's transaction owns both rows.
        """
        extra = {k: v for k, v in (data or {}).items() if v is not None}
        for key, value in (("booking_id", booking_id), ("spot_id", spot_id), ("vehicle_id", vehicle_id)):
            if value:
                extra.setdefault(key, value)

        notification = self.repository.create(
            user_id=user_id,
            booking_id=booking_id,
            spot_id=spot_id,
            vehicle_id=vehicle_id,
            type=notification_type,
            title=title,
            body=body,
            data=extra,
        )
        self.outbox_repository.enqueue(
            event_type=PUSH_EVENT_TYPE,
            aggregate_id=notification.id,
            payload={
                "notification_id": notification.id,
                "user_id": user_id,
                "title": title,
                "body": body,
                "data": extra,
            },
            idempotency_key=f"{PUSH_EVENT_TYPE}:{notification.id}",
        )
        self.logger.debug(f"Queued {notification_type} notification {notification.id} for {user_id}")
        return notification

    @BaseService.measure_operation("list_notifications")
    def list_notifications(self, user_id: str, skip: int = 0, limit: int = 20) -> List[Notification]:
        return self.repository.list_for_user(user_id, skip=skip, limit=limit)

    @BaseService.measure_operation("mark_notification_read")
    def mark_read(self, user_id: str, notification_id: str) -> None:
        with self.transaction():
            if not self.repository.mark_read(notification_id, user_id):
                raise NotFoundException(
                    "Notification not found", details={"notification_id": notification_id}
                )
