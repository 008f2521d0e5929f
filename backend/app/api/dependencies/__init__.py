# backend/app/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from ...auth import get_current_user_id
from .database import get_db
from .services import (
    get_availability_service,
    get_blocked_dates_service,
    get_booking_log_service,
    get_booking_service,
    get_notification_service,
    get_payment_service,
    get_payout_service,
    get_slot_service,
    get_spot_service,
    get_stripe_service,
    get_time_change_service,
    get_timezone_service,
)

__all__ = [
    # Auth
    "get_current_user_id",
    # Database
    "get_db",
    # Services
    "get_availability_service",
    "get_blocked_dates_service",
    "get_booking_log_service",
    "get_booking_service",
    "get_notification_service",
    "get_payment_service",
    "get_payout_service",
    "get_slot_service",
    "get_spot_service",
    "get_stripe_service",
    "get_time_change_service",
    "get_timezone_service",
]
