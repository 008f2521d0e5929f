# backend/app/repositories/factory.py
"""
Repository Factory for the Parkspace platform.

Provides centralized creation of repository instances so services share one
construction path and tests can swap implementations.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from .base_repository import BaseRepository

# Avoid circular imports
if TYPE_CHECKING:
    from .availability_repository import AvailabilityRepository
    from .booking_log_repository import BookingLogRepository
    from .booking_repository import BookingRepository
    from .event_outbox_repository import EventOutboxRepository
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


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_base_repository(db: Session, model) -> BaseRepository:
        return BaseRepository(db, model)

    @staticmethod
    def create_spot_repository(db: Session) -> "SpotRepository":
        from .spot_repository import SpotRepository

        return SpotRepository(db)

    @staticmethod
    def create_availability_repository(db: Session) -> "AvailabilityRepository":
        """Create repository for availability windows."""
        from .availability_repository import AvailabilityRepository

        return AvailabilityRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_time_change_repository(db: Session) -> "TimeChangeRepository":
        from .time_change_repository import TimeChangeRepository

        return TimeChangeRepository(db)

    @staticmethod
    def create_booking_log_repository(db: Session) -> "BookingLogRepository":
        from .booking_log_repository import BookingLogRepository

        return BookingLogRepository(db)

    @staticmethod
    def create_payment_repository(db: Session) -> "PaymentRepository":
        """Create repository for booking payments."""
        from .payment_repository import PaymentRepository

        return PaymentRepository(db)

    @staticmethod
    def create_stripe_account_repository(db: Session) -> "StripeAccountRepository":
        from .payment_repository import StripeAccountRepository

        return StripeAccountRepository(db)

    @staticmethod
    def create_payout_repository(db: Session) -> "PayoutRepository":
        from .payment_repository import PayoutRepository

        return PayoutRepository(db)

    @staticmethod
    def create_payout_attempt_repository(db: Session) -> "PayoutAttemptRepository":
        from .payment_repository import PayoutAttemptRepository

        return PayoutAttemptRepository(db)

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        from .user_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_vehicle_repository(db: Session) -> "VehicleRepository":
        from .user_repository import VehicleRepository

        return VehicleRepository(db)

    @staticmethod
    def create_device_token_repository(db: Session) -> "DeviceTokenRepository":
        from .user_repository import DeviceTokenRepository

        return DeviceTokenRepository(db)

    @staticmethod
    def create_notification_repository(db: Session) -> "NotificationRepository":
        from .notification_repository import NotificationRepository

        return NotificationRepository(db)

    @staticmethod
    def create_event_outbox_repository(db: Session) -> "EventOutboxRepository":
        """Create repository for the notification outbox."""
        from .event_outbox_repository import EventOutboxRepository

        return EventOutboxRepository(db)
