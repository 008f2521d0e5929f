# backend/app/routes/v1/__init__.py
"""
API v1 routes.

Every router here is mounted under ``/api/v1`` by ``app.main``.
"""

from . import (
    booking_logs as booking_logs,
    bookings as bookings,
    notifications as notifications,
    payments as payments,
    payouts as payouts,
    spots as spots,
    time_changes as time_changes,
    webhooks as webhooks,
)
