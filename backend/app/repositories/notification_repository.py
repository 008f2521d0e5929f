# backend/app/repositories/notification_repository.py
"""In-app notification data access."""

from datetime import datetime, timezone
import logging
from typing import List

from sqlalchemy.orm import Session

from ..models.notification import Notification
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class NotificationRepository(BaseRepository[Notification]):
    def __init__(self, db: Session):
        super().__init__(db, Notification)

    def list_for_user(self, user_id: str, skip: int = 0, limit: int = 20) -> List[Notification]:
        query = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        return self._execute_query(query.offset(skip).limit(limit))

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        notification = self.find_one_by(id=notification_id, user_id=user_id)
        if notification is None:
            return False
        notification.is_read = True
        notification.read_at = datetime.now(timezone.utc)
        self.db.flush()
        return True

    def purge_read_before(self, cutoff: datetime) -> int:
        """Delete notifications read before ``cutoff``."""
        query = self.db.query(Notification).filter(
            Notification.is_read.is_(True),
            Notification.read_at < cutoff,
        )
        deleted = query.delete(synchronize_session=False)
        self.db.flush()
        return int(deleted)
