# backend/app/models/time_change.py
"""
Time-change requests for custom bookings.

A client proposes new dates/times for a booking; the host accepts (the
booking is rewritten and the request row removed) or denies (the request is
kept with status ``rejected``). At most one request per booking may be
pending.
"""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class TimeChangeStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class TimeChange(Base):
    """Proposed amendment to a booking's schedule."""

    __tablename__ = "time_changes"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    spot_id = Column(String(26), ForeignKey("spots.id"), nullable=False)
    client_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    host_id = Column(String(26), ForeignKey("users.id"), nullable=False)

    old_day = Column(String(3), nullable=False)
    old_start_date = Column(Date, nullable=False)
    old_start_time = Column(String(5), nullable=False)
    old_end_date = Column(Date, nullable=False)
    old_end_time = Column(String(5), nullable=False)

    new_day = Column(String(3), nullable=False)
    new_start_date = Column(Date, nullable=False)
    new_start_time = Column(String(5), nullable=False)
    new_end_date = Column(Date, nullable=False)
    new_end_time = Column(String(5), nullable=False)

    status = Column(String(10), nullable=False, default=TimeChangeStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    booking = relationship("Booking")
    spot = relationship("Spot")

    __table_args__ = (
        Index("idx_time_changes_booking_status", "booking_id", "status"),
        Index("idx_time_changes_host_status", "host_id", "status"),
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected')", name="ck_time_changes_status"
        ),
    )

    def __repr__(self) -> str:
        return f"<TimeChange {self.id} booking={self.booking_id} status={self.status}>"
