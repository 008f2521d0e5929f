# backend/app/models/booking.py
"""
Booking model for the Parkspace platform.

A booking reserves a spot for one contiguous span. Dates and times are stored
as wall-clock values and are always interpreted in the spot's timezone; the
helpers below turn them into aware instants for comparisons.

Lifecycle:
    request-pending -> payment-pending -> accepted -> completed
    with cancelled available before the 24 hour notice cut-off.
"""

from datetime import datetime
from enum import Enum
import logging
from typing import Optional

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.timezone_utils import to_spot_instant
from ..database import Base

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    REQUEST_PENDING = "request-pending"  # custom booking awaiting host approval
    PAYMENT_PENDING = "payment-pending"  # payment intent open
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BookingType(str, Enum):
    NORMAL = "normal"  # 15 minutes to 24 hours, inside an availability window
    CUSTOM = "custom"  # 1 to 30 days


class CanceledBy(str, Enum):
    CLIENT = "client"
    HOST = "host"
    ADMIN = "admin"


class Booking(Base):
    """Reservation of a spot by a client."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    client_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    host_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    spot_id = Column(String(26), ForeignKey("spots.id"), nullable=False)
    vehicle_id = Column(String(26), ForeignKey("vehicles.id"), nullable=False)

    day = Column(String(3), nullable=False)
    start_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_date = Column(Date, nullable=False)
    end_time = Column(String(5), nullable=False)

    type = Column(String(10), nullable=False, default=BookingType.NORMAL.value)
    gross_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, index=True)
    canceled_by = Column(String(10), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    spot = relationship("Spot")
    client = relationship("User", foreign_keys=[client_id])
    host = relationship("User", foreign_keys=[host_id])
    vehicle = relationship("Vehicle")

    __table_args__ = (
        Index("idx_bookings_spot_status", "spot_id", "status"),
        Index("idx_bookings_spot_dates", "spot_id", "start_date", "end_date"),
        CheckConstraint(
            "status IN ('request-pending', 'payment-pending', 'accepted', 'rejected', "
            "'completed', 'cancelled')",
            name="ck_bookings_status",
        ),
        CheckConstraint("type IN ('normal', 'custom')", name="ck_bookings_type"),
        CheckConstraint("gross_amount >= 0", name="check_gross_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: spot={self.spot_id}, "
            f"{self.start_date} {self.start_time} -> {self.end_date} {self.end_time}, "
            f"status={self.status}>"
        )

    @property
    def timezone(self) -> Optional[str]:
        return self.spot.timezone if self.spot is not None else None

    def start_at(self, tz_name: Optional[str] = None) -> datetime:
        """Start instant in the spot's timezone."""
        return to_spot_instant(self.start_date, self.start_time, tz_name or self.timezone)

    def end_at(self, tz_name: Optional[str] = None) -> datetime:
        """End instant in the spot's timezone."""
        return to_spot_instant(self.end_date, self.end_time, tz_name or self.timezone)

    def duration_minutes(self, tz_name: Optional[str] = None) -> int:
        return int((self.end_at(tz_name) - self.start_at(tz_name)).total_seconds() // 60)

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.client_id, self.host_id)
