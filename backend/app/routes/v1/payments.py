# backend/app/routes/v1/payments.py
"""
Payment routes - API v1

Endpoints:
    POST /confirm - Accept the booking once its intent has succeeded
    POST /fail - Record a failed payment sheet attempt
    POST /refresh - Replace a stale payment intent
    GET / - Payment history as client or host
"""

import asyncio
from datetime import date
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_current_user_id, get_payment_service
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...core.enums import ActorRole
from ...core.exceptions import DomainException
from ...schemas.booking import BookingResponse
from ...schemas.payment_schemas import (
    PaymentConfirmRequest,
    PaymentFailRequest,
    PaymentListResponse,
    PaymentRefreshRequest,
    PaymentResponse,
)
from ...services.payment_service import PaymentService
from ._shared import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments-v1"])


@router.post("/confirm", response_model=BookingResponse)
async def confirm_payment(
    payload: PaymentConfirmRequest,
    current_user_id: str = Depends(get_current_user_id),
    payment_service: PaymentService = Depends(get_payment_service),
) -> BookingResponse:
    """
    Confirm a payment after the client's payment sheet completes.

    The intent is re-read from Stripe; the booking is accepted only when the
    intent has succeeded and the range is still free.
    """
    try:
        booking = await asyncio.to_thread(
            payment_service.confirm_payment,
            current_user_id,
            payload.payment_id,
            payload.booking_id,
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/fail", response_model=PaymentResponse)
async def fail_payment(
    payload: PaymentFailRequest,
    current_user_id: str = Depends(get_current_user_id),
    payment_service: PaymentService = Depends(get_payment_service),
) -> PaymentResponse:
    try:
        payment = await asyncio.to_thread(
            payment_service.fail_payment,
            current_user_id,
            payload.payment_id,
            payload.error_message,
        )
        return PaymentResponse.model_validate(payment)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/refresh", response_model=PaymentResponse)
async def refresh_payment(
    payload: PaymentRefreshRequest,
    current_user_id: str = Depends(get_current_user_id),
    payment_service: PaymentService = Depends(get_payment_service),
) -> PaymentResponse:
    try:
        payment = await asyncio.to_thread(
            payment_service.refresh_payment_intent,
            current_user_id,
            payload.booking_id,
            payload.payment_id,
        )
        return PaymentResponse.model_validate(payment)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=PaymentListResponse)
async def list_payments(
    role: ActorRole = Query(ActorRole.CLIENT),
    status_filter: Optional[str] = Query(None, alias="status"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user_id: str = Depends(get_current_user_id),
    payment_service: PaymentService = Depends(get_payment_service),
) -> PaymentListResponse:
    try:
        payments = await asyncio.to_thread(
            payment_service.list_payments,
            current_user_id,
            role,
            status=status_filter,
            start_date=start_date,
            end_date=end_date,
            page=page,
            limit=limit,
        )
        return PaymentListResponse(
            payments=[PaymentResponse.model_validate(p) for p in payments],
            page=page,
            limit=limit,
            start_date=start_date,
            end_date=end_date,
        )
    except DomainException as e:
        handle_domain_exception(e)
