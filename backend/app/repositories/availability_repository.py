# backend/app/repositories/availability_repository.py
"""
Availability Repository for the Parkspace platform.

Data access for recurring weekly windows. Ordering by weekday happens in the
service layer (DayOfWeek.sort_index) since day labels do not sort
alphabetically.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.availability import Availability
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AvailabilityRepository(BaseRepository[Availability]):
    """Repository for spot availability windows."""

    def __init__(self, db: Session):
        super().__init__(db, Availability)

    def list_for_spot(self, spot_id: str) -> List[Availability]:
        query = self.db.query(Availability).filter(Availability.spot_id == spot_id)
        return self._execute_query(query)

    def list_for_spot_day(
        self, spot_id: str, day: str, exclude_id: Optional[str] = None
    ) -> List[Availability]:
        """Windows on one weekday, ordered by start time."""
        query = self.db.query(Availability).filter(
            Availability.spot_id == spot_id,
            Availability.day == day,
        )
        if exclude_id:
            query = query.filter(Availability.id != exclude_id)
        return self._execute_query(query.order_by(Availability.start_time.asc()))

    def get_for_spot(self, availability_id: str, spot_id: str) -> Optional[Availability]:
        return self.find_one_by(id=availability_id, spot_id=spot_id)

    def delete_many(self, ids: Iterable[str]) -> int:
        id_list = list(ids)
        if not id_list:
            return 0
        try:
            deleted = (
                self.db.query(Availability)
                .filter(Availability.id.in_(id_list))
                .delete(synchronize_session="fetch")
            )
            self.db.flush()
            return int(deleted)
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting availability windows: {str(e)}")
            raise RepositoryException(f"Failed to delete availability windows: {str(e)}")
