"""
Database models for the Parkspace platform.

The models are organized by functionality:
- Users, vehicles and device tokens
- Spots and their recurring availability
- Bookings, time-change requests and check-in logs
- Payments, payouts and connected accounts
- Notifications and the event outbox
"""

from .availability import Availability
from .booking import Booking, BookingStatus, BookingType, CanceledBy
from .booking_log import BookingLog
from .event_outbox import EventOutbox, EventOutboxStatus
from .notification import Notification
from .payment import Payment, PaymentStatus, Payout, PayoutAttempt, PayoutStatus, StripeAccount
from .spot import Spot, SpotStatus
from .time_change import TimeChange, TimeChangeStatus
from .user import DeviceToken, User, Vehicle

__all__ = [
    "Availability",
    "Booking",
    "BookingLog",
    "BookingStatus",
    "BookingType",
    "CanceledBy",
    "DeviceToken",
    "EventOutbox",
    "EventOutboxStatus",
    "Notification",
    "Payment",
    "PaymentStatus",
    "Payout",
    "PayoutAttempt",
    "PayoutStatus",
    "Spot",
    "SpotStatus",
    "StripeAccount",
    "TimeChange",
    "TimeChangeStatus",
    "User",
    "Vehicle",
]
