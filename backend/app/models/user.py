# backend/app/models/user.py
"""
User-side models for the Parkspace platform.

Users act as clients (booking spots) or hosts (owning spots), sometimes both.
Account management lives outside this service, so these models only carry the
fields the booking engine reads.

Classes:
    User: Account referenced by bookings, spots and payouts
    Vehicle: A client's vehicle attached to each booking
    DeviceToken: Push notification token registered by a user's device
"""

import logging

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class User(Base):
    """Account record shared by clients and hosts."""

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    vehicles = relationship("Vehicle", back_populates="owner", cascade="all, delete-orphan")
    device_tokens = relationship(
        "DeviceToken", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class Vehicle(Base):
    """Vehicle registered by a client."""

    __tablename__ = "vehicles"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    plate_number = Column(String(20), nullable=False)
    make = Column(String(50), nullable=True)
    model = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User", back_populates="vehicles")

    __table_args__ = (Index("idx_vehicles_user_id", "user_id"),)

    def __repr__(self) -> str:
        return f"<Vehicle {self.plate_number}>"


class DeviceToken(Base):
    """FCM registration token for one of a user's devices."""

    __tablename__ = "device_tokens"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token = Column(String(512), nullable=False, unique=True)
    platform = Column(String(20), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="device_tokens")

    __table_args__ = (Index("idx_device_tokens_user_active", "user_id", "is_active"),)
