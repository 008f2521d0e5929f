# backend/app/schemas/__init__.py
"""
Pydantic schemas for the Parkspace platform.

Request models forbid unknown fields; response models read ORM attributes
directly and render money as two-decimal strings.
"""

from .availability import (
    AvailabilityCreateResponse,
    AvailabilityUpdateResponse,
    AvailabilityWindowCreate,
    AvailabilityWindowResponse,
    AvailabilityWindowUpdate,
    BlockedDatesResponse,
    Slot,
    SlotListResponse,
)
from .base import Money, StandardizedModel, StrictRequestModel
from .booking import (
    BookingCreate,
    BookingDeniedResponse,
    BookingListResponse,
    BookingResponse,
    BookingTimeChangeRequest,
    BookingWithPaymentResponse,
    PaymentIntentInfo,
    PendingActionsResponse,
    TimeChangeOutcomeResponse,
)
from .booking_log import BookingLogEntry, BookingLogRequest, BookingLogResponse
from .notifications import (
    NotificationListResponse,
    NotificationResponse,
    NotificationStatusResponse,
)
from .payment_schemas import (
    BalanceResponse,
    PaymentConfirmRequest,
    PaymentFailRequest,
    PaymentListResponse,
    PaymentRefreshRequest,
    PaymentResponse,
    PayoutCreateRequest,
    PayoutListResponse,
    PayoutResponse,
    WebhookAckResponse,
)
from .spot import SpotCreate, SpotLocationUpdate, SpotResponse
from .time_change import TimeChangeListResponse, TimeChangeResponse

__all__ = [
    # Base
    "Money",
    "StandardizedModel",
    "StrictRequestModel",
    # Spots & availability
    "SpotCreate",
    "SpotLocationUpdate",
    "SpotResponse",
    "AvailabilityWindowCreate",
    "AvailabilityWindowUpdate",
    "AvailabilityWindowResponse",
    "AvailabilityCreateResponse",
    "AvailabilityUpdateResponse",
    "BlockedDatesResponse",
    "Slot",
    "SlotListResponse",
    # Bookings
    "BookingCreate",
    "BookingTimeChangeRequest",
    "BookingResponse",
    "BookingListResponse",
    "BookingWithPaymentResponse",
    "PaymentIntentInfo",
    "PendingActionsResponse",
    "BookingDeniedResponse",
    "TimeChangeOutcomeResponse",
    "TimeChangeResponse",
    "TimeChangeListResponse",
    "BookingLogEntry",
    "BookingLogRequest",
    "BookingLogResponse",
    # Payments
    "PaymentConfirmRequest",
    "PaymentFailRequest",
    "PaymentRefreshRequest",
    "PaymentResponse",
    "PaymentListResponse",
    "BalanceResponse",
    "PayoutCreateRequest",
    "PayoutResponse",
    "PayoutListResponse",
    "WebhookAckResponse",
    # Notifications
    "NotificationResponse",
    "NotificationListResponse",
    "NotificationStatusResponse",
]
