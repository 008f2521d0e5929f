# backend/app/models/availability.py
"""
Recurring weekly availability windows.

Each row opens a spot on one weekday between two wall-clock times. Windows
on the same spot and weekday must not overlap; that rule is enforced by
AvailabilityService under a spot lock rather than by the schema.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class Availability(Base):
    """A spot's open hours on one weekday."""

    __tablename__ = "availabilities"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    spot_id = Column(String(26), ForeignKey("spots.id", ondelete="CASCADE"), nullable=False)
    day = Column(String(3), nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    spot = relationship("Spot", back_populates="availabilities")

    __table_args__ = (
        Index("idx_availabilities_spot_day", "spot_id", "day"),
        CheckConstraint("end_time > start_time", name="check_availability_time_order"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "spot_id": self.spot_id,
            "day": self.day,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }

    def __repr__(self) -> str:
        return f"<Availability {self.day} {self.start_time}-{self.end_time}>"
