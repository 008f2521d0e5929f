"""
Payment-related Pydantic schemas for the Parkspace platform.

Request and response models for booking payments (confirm, fail, refresh,
history), host balances and payouts.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from .base import Money, StandardizedModel, StrictRequestModel

# ========== Request Models ==========


class PaymentConfirmRequest(StrictRequestModel):
    """Client reports that the payment sheet completed."""

    payment_id: str = Field(..., description="Payment record ID")
    booking_id: str = Field(..., description="Booking the payment belongs to")


class PaymentFailRequest(StrictRequestModel):
    payment_id: str
    error_message: Optional[str] = Field(None, max_length=1000)


class PaymentRefreshRequest(StrictRequestModel):
    """Ask for a new intent when the current one can no longer be paid."""

    payment_id: str
    booking_id: str


class PayoutCreateRequest(StrictRequestModel):
    amount: Money = Field(..., description="Amount to withdraw in major units")


# ========== Response Models ==========


class PaymentResponse(StandardizedModel):
    id: str
    booking_id: str
    client_id: str
    host_id: str
    spot_id: str
    gross_amount: Money
    platform_fee: Money
    stripe_fee: Money
    tax_fee: Money
    total_amount: Money
    currency: str
    payment_intent_id: Optional[str] = None
    client_secret: Optional[str] = None
    status: str
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PaymentListResponse(StandardizedModel):
    payments: List[PaymentResponse]
    page: int
    limit: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class BalanceResponse(StandardizedModel):
    """Derived balance; every amount is in major units."""

    available: Money
    pending: Money
    total_earnings: Money
    paid_out: Money
    refund: Money
    refund_gain: Money
    refund_loss: Money


class PayoutResponse(StandardizedModel):
    id: str
    user_id: str
    stripe_account_id: str
    gross_amount: Money
    stripe_fee: Money
    net_amount: Money
    currency: str
    status: str
    transfer_id: Optional[str] = None
    error_message: Optional[str] = None
    payout_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


class PayoutListResponse(StandardizedModel):
    payouts: List[PayoutResponse]
    page: int
    limit: int


class WebhookAckResponse(StandardizedModel):
    success: bool
    event_type: str
    handled: bool
