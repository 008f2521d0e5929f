# backend/app/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService.

Endpoints:
    POST / - Create a normal (pay now) or custom (host approval) booking
    GET / - List the user's bookings as client or host
    GET /pending-actions - Requests, payments and time changes awaiting the user
    GET /{booking_id} - Booking details
    POST /{booking_id}/accept - Host accepts a custom request
    POST /{booking_id}/deny - Either party withdraws a not-yet-accepted booking
    POST /{booking_id}/cancel - Cancel with at least 24 hours notice
    POST /{booking_id}/change-time - Move a booking or request a time change
"""

import asyncio
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from ...api.dependencies import get_booking_service, get_current_user_id
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...core.enums import ActorRole
from ...core.exceptions import DomainException
from ...models.payment import Payment
from ...schemas.booking import (
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
from ...schemas.time_change import TimeChangeResponse
from ...services.booking_service import BookingResult, BookingService
from ._shared import ULID_PATH_PATTERN, handle_domain_exception

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])

BookingId = Annotated[str, Path(pattern=ULID_PATH_PATTERN)]


def _payment_info(payment: Optional[Payment]) -> Optional[PaymentIntentInfo]:
    if payment is None:
        return None
    return PaymentIntentInfo(
        payment_id=payment.id,
        payment_intent_id=payment.payment_intent_id,
        client_secret=payment.client_secret,
        gross_amount=payment.gross_amount,
        platform_fee=payment.platform_fee,
        stripe_fee=payment.stripe_fee,
        tax_fee=payment.tax_fee,
        total_amount=payment.total_amount,
        currency=payment.currency,
    )


def _with_payment(result: BookingResult) -> BookingWithPaymentResponse:
    return BookingWithPaymentResponse(
        booking=BookingResponse.model_validate(result.booking),
        payment=_payment_info(result.payment),
    )


# ============================================================================
# SECTION 1: Static routes (no path parameters)
# ============================================================================


@router.post("", response_model=BookingWithPaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingWithPaymentResponse:
    """
    Create a booking.

    Normal bookings come back ``payment-pending`` with the client secret of
    their payment intent. Custom bookings come back ``request-pending``.
    """
    try:
        result = await asyncio.to_thread(
            booking_service.create_booking, current_user_id, booking_data
        )
        return _with_payment(result)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    role: ActorRole = Query(ActorRole.CLIENT),
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    try:
        bookings = await asyncio.to_thread(
            booking_service.list_bookings,
            current_user_id,
            role,
            status_filter,
            (page - 1) * limit,
            limit,
        )
        return BookingListResponse(
            bookings=[BookingResponse.model_validate(b) for b in bookings],
            page=page,
            limit=limit,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/pending-actions", response_model=PendingActionsResponse)
async def list_pending_actions(
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> PendingActionsResponse:
    try:
        pending = await asyncio.to_thread(booking_service.list_pending_actions, current_user_id)
        return PendingActionsResponse(
            booking_requests=[
                BookingResponse.model_validate(b) for b in pending["booking_requests"]
            ],
            awaiting_payment=[
                BookingResponse.model_validate(b) for b in pending["awaiting_payment"]
            ],
            time_change_requests=[
                TimeChangeResponse.model_validate(tc) for tc in pending["time_change_requests"]
            ],
        )
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# SECTION 2: Routes with a booking id
# ============================================================================


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: BookingId,
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.get_booking, current_user_id, booking_id)
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/accept", response_model=BookingWithPaymentResponse)
async def accept_booking(
    booking_id: BookingId,
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingWithPaymentResponse:
    try:
        result = await asyncio.to_thread(
            booking_service.accept_booking, current_user_id, booking_id
        )
        return _with_payment(result)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/deny", response_model=BookingDeniedResponse)
async def deny_booking(
    booking_id: BookingId,
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingDeniedResponse:
    try:
        summary = await asyncio.to_thread(booking_service.deny_booking, current_user_id, booking_id)
        return BookingDeniedResponse.model_validate(summary)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: BookingId,
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.cancel_booking, current_user_id, booking_id
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/change-time", response_model=TimeChangeOutcomeResponse)
async def change_booking_time(
    booking_id: BookingId,
    change: BookingTimeChangeRequest,
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> TimeChangeOutcomeResponse:
    try:
        outcome = await asyncio.to_thread(
            booking_service.change_time, current_user_id, booking_id, change
        )
        if isinstance(outcome, BookingResult):
            return TimeChangeOutcomeResponse(
                booking=BookingResponse.model_validate(outcome.booking)
            )
        return TimeChangeOutcomeResponse(time_change=TimeChangeResponse.model_validate(outcome))
    except DomainException as e:
        handle_domain_exception(e)
