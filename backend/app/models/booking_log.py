# backend/app/models/booking_log.py
"""Check-in and check-out record for a booking."""

from typing import Any, Dict

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import JSON
import ulid

from ..database import Base

LOG_ENTRY_FIELDS = ("user_checkin", "host_checkin", "user_checkout", "host_checkout")


def empty_log_entry() -> Dict[str, Any]:
    return {"done": False, "date_time": None, "location": None}


def _json_column():
    return Column(
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=False,
        default=empty_log_entry,
    )


class BookingLog(Base):
    """One row per booking; each entry is ``{done, date_time, location}``."""

    __tablename__ = "booking_logs"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    client_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    host_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    user_checkin = _json_column()
    host_checkin = _json_column()
    user_checkout = _json_column()
    host_checkout = _json_column()
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    booking = relationship("Booking")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "booking_id": self.booking_id,
            "client_id": self.client_id,
            "host_id": self.host_id,
        }
        for field in LOG_ENTRY_FIELDS:
            data[field] = getattr(self, field) or empty_log_entry()
        return data
