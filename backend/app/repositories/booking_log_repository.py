# backend/app/repositories/booking_log_repository.py
"""BookingLog data access."""

from typing import Optional

from sqlalchemy.orm import Session

from ..models.booking_log import BookingLog
from .base_repository import BaseRepository


class BookingLogRepository(BaseRepository[BookingLog]):
    def __init__(self, db: Session):
        super().__init__(db, BookingLog)

    def get_by_booking(self, booking_id: str) -> Optional[BookingLog]:
        return self.find_one_by(booking_id=booking_id)
