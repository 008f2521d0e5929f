# backend/app/models/spot.py
"""
Spot model for the Parkspace platform.

A spot is the bookable unit. It is owned by a host, priced per hour, and
carries the IANA timezone resolved from its coordinates. Every wall-clock
field on its availability windows and bookings is interpreted in that
timezone.
"""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, Float, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class SpotStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class Spot(Base):
    """Bookable parking spot."""

    __tablename__ = "spots"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    host_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    timezone = Column(String(64), nullable=False, default="UTC")
    hourly_rate = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default=SpotStatus.DRAFT.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    host = relationship("User")
    availabilities = relationship(
        "Availability",
        back_populates="spot",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("hourly_rate >= 0", name="check_spot_rate_non_negative"),
        CheckConstraint("status IN ('draft', 'published')", name="ck_spots_status"),
    )

    def __repr__(self) -> str:
        return f"<Spot {self.id} host={self.host_id} tz={self.timezone}>"
