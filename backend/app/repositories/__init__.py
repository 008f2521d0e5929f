"""
Repository Pattern Implementation for the Parkspace platform.

This package provides the repository layer for data access,
separating business logic from database queries.

Usage:
    from app.repositories import RepositoryFactory

    # In a service:
    repository = RepositoryFactory.create_booking_repository(db)
    bookings = repository.find_active_for_spot(spot_id, statuses=["accepted"])
"""

from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository, IRepository
from .booking_log_repository import BookingLogRepository
from .booking_repository import BookingRepository
from .event_outbox_repository import EventOutboxRepository
from .factory import RepositoryFactory
from .notification_repository import NotificationRepository
from .payment_repository import (
    PaymentRepository,
    PayoutAttemptRepository,
    PayoutRepository,
    StripeAccountRepository,
)
from .spot_repository import SpotRepository
from .time_change_repository import TimeChangeRepository
from .user_repository import DeviceTokenRepository, UserRepository, VehicleRepository

__all__ = [
    "AvailabilityRepository",
    "BaseRepository",
    "BookingLogRepository",
    "BookingRepository",
    "DeviceTokenRepository",
    "EventOutboxRepository",
    "IRepository",
    "NotificationRepository",
    "PaymentRepository",
    "PayoutAttemptRepository",
    "PayoutRepository",
    "RepositoryFactory",
    "SpotRepository",
    "StripeAccountRepository",
    "TimeChangeRepository",
    "UserRepository",
    "VehicleRepository",
]
