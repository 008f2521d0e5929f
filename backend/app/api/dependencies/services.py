# backend/app/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. Collaborators that hold
no state (Stripe adapter, timezone resolver) are shared process-wide.
"""

from functools import lru_cache
import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.availability_service import AvailabilityService
from ...services.blocked_dates_service import BlockedDatesService
from ...services.booking_log_service import BookingLogService
from ...services.booking_service import BookingService
from ...services.notification_service import NotificationService
from ...services.payment_service import PaymentService
from ...services.payout_service import PayoutService
from ...services.slot_service import SlotService
from ...services.spot_service import SpotService
from ...services.stripe_service import StripeService
from ...services.time_change_service import TimeChangeService
from ...services.timezone_service import TimezoneService
from .database import get_db

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_stripe_service() -> StripeService:
    """Get singleton Stripe adapter."""
    return StripeService()


@lru_cache(maxsize=1)
def get_timezone_service() -> TimezoneService:
    return TimezoneService()


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


def get_spot_service(
    db: Session = Depends(get_db),
    timezone_service: TimezoneService = Depends(get_timezone_service),
) -> SpotService:
    return SpotService(db, timezone_service=timezone_service)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_blocked_dates_service(db: Session = Depends(get_db)) -> BlockedDatesService:
    return BlockedDatesService(db)


def get_slot_service(db: Session = Depends(get_db)) -> SlotService:
    return SlotService(db)


def get_booking_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
    stripe_service: StripeService = Depends(get_stripe_service),
) -> BookingService:
    """
    Get booking service instance.

    Args:
        db: Database session
        notification_service: Outbox-backed notification service
        stripe_service: Shared Stripe adapter

    Returns:
        BookingService instance
    """
    return BookingService(
        db, notification_service=notification_service, stripe_service=stripe_service
    )


def get_time_change_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> TimeChangeService:
    return TimeChangeService(db, notification_service=notification_service)


def get_booking_log_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> BookingLogService:
    return BookingLogService(db, notification_service=notification_service)


def get_payout_service(
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> PayoutService:
    return PayoutService(
        db, stripe_service=stripe_service, notification_service=notification_service
    )


def get_payment_service(
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
    notification_service: NotificationService = Depends(get_notification_service),
    payout_service: PayoutService = Depends(get_payout_service),
) -> PaymentService:
    return PaymentService(
        db,
        stripe_service=stripe_service,
        notification_service=notification_service,
        payout_service=payout_service,
    )
