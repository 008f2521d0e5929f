"""Check-in / check-out schemas."""

from datetime import datetime
from typing import Any, Optional

from .base import StandardizedModel, StrictRequestModel


class BookingLogRequest(StrictRequestModel):
    """Optional location captured by the device at check-in/out."""

    location: Optional[Any] = None


class BookingLogEntry(StandardizedModel):
    done: bool = False
    date_time: Optional[str] = None
    location: Optional[Any] = None


class BookingLogResponse(StandardizedModel):
    id: str
    booking_id: str
    client_id: str
    host_id: str
    user_checkin: BookingLogEntry
    host_checkin: BookingLogEntry
    user_checkout: BookingLogEntry
    host_checkout: BookingLogEntry
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
