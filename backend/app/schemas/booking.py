# backend/app/schemas/booking.py
"""
Booking schemas for the Parkspace platform.

Bookings carry their own wall-clock range (weekday label, start/end date and
time). Values are interpreted in the spot's timezone by the services; the
schemas only enforce formats.
"""

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from ..services.conflict_checker import BookingRange
from .base import Money, StandardizedModel, StrictRequestModel, parse_date_field, parse_time_field
from .time_change import TimeChangeResponse


class BookingRangeFields(StrictRequestModel):
    """Wall-clock range shared by booking creation and time changes."""

    day: str = Field(..., description="Weekday label of start_date (Sun..Sat)")
    start_date: date
    start_time: str = Field(..., description="HH:MM, 24-hour")
    end_date: date
    end_time: str = Field(..., description="HH:MM, 24-hour")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object, info) -> object:
        return parse_date_field(v, info.field_name)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _enforce_time_format(cls, v: object, info) -> str:
        return parse_time_field(v, info.field_name)

    def to_range(self) -> BookingRange:
        return BookingRange(
            day=self.day,
            start_date=self.start_date,
            start_time=self.start_time,
            end_date=self.end_date,
            end_time=self.end_time,
        )


class BookingCreate(BookingRangeFields):
    """Create a booking on a spot for one of the client's vehicles."""

    spot_id: str
    vehicle_id: str
    type: Literal["normal", "custom"] = "normal"
    gross_amount: Money = Field(..., description="Client-computed price, verified server-side")


class BookingTimeChangeRequest(BookingRangeFields):
    """New range proposed for an existing booking."""


class BookingResponse(StandardizedModel):
    id: str
    client_id: str
    host_id: str
    spot_id: str
    vehicle_id: str
    day: str
    start_date: date
    start_time: str
    end_date: date
    end_time: str
    type: str
    gross_amount: Money
    status: str
    canceled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class PaymentIntentInfo(StandardizedModel):
    """What the client needs to complete a payment."""

    payment_id: str
    payment_intent_id: str
    client_secret: Optional[str] = None
    gross_amount: Money
    platform_fee: Money
    stripe_fee: Money
    tax_fee: Money
    total_amount: Money
    currency: str


class BookingWithPaymentResponse(StandardizedModel):
    booking: BookingResponse
    payment: Optional[PaymentIntentInfo] = None


class BookingListResponse(StandardizedModel):
    bookings: List[BookingResponse]
    page: int
    limit: int


class PendingActionsResponse(StandardizedModel):
    """Items awaiting the current user's decision."""

    booking_requests: List[BookingResponse] = Field(
        default_factory=list, description="Request-pending bookings on the user's spots"
    )
    awaiting_payment: List[BookingResponse] = Field(
        default_factory=list, description="Accepted custom requests the user still has to pay"
    )
    time_change_requests: List[TimeChangeResponse] = Field(default_factory=list)


class BookingDeniedResponse(StandardizedModel):
    deleted: bool
    booking_id: str
    client_id: str
    start_date: str
    start_time: str


class TimeChangeOutcomeResponse(StandardizedModel):
    """Normal bookings move immediately; custom bookings open a request."""

    booking: Optional[BookingResponse] = None
    time_change: Optional[TimeChangeResponse] = None
