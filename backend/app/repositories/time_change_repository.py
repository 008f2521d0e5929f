# backend/app/repositories/time_change_repository.py
"""TimeChange data access."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from ..models.time_change import TimeChange, TimeChangeStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

_FILTERABLE_FIELDS = ("booking_id", "spot_id", "client_id", "host_id")


class TimeChangeRepository(BaseRepository[TimeChange]):
    def __init__(self, db: Session):
        super().__init__(db, TimeChange)

    def get_pending_for_booking(self, booking_id: str) -> Optional[TimeChange]:
        return self.find_one_by(booking_id=booking_id, status=TimeChangeStatus.PENDING.value)

    def query(
        self,
        filters: Dict[str, Any],
        status: Optional[str] = TimeChangeStatus.PENDING.value,
        skip: int = 0,
        limit: int = 5,
    ) -> List[TimeChange]:
        """Filter by participant/booking/spot ids and status, newest first."""
        query = self.db.query(TimeChange).options(joinedload(TimeChange.booking))
        for field in _FILTERABLE_FIELDS:
            value = filters.get(field)
            if value:
                query = query.filter(getattr(TimeChange, field) == value)
        if status:
            query = query.filter(TimeChange.status == status)
        query = query.order_by(TimeChange.created_at.desc(), TimeChange.id.desc())
        return self._execute_query(query.offset(skip).limit(limit))
