# backend/app/routes/v1/payouts.py
"""
Host balance and payout routes - API v1

Endpoints:
    GET /balance - Derived balance in major units
    POST / - Withdraw from the available balance
    GET / - Payout history
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies import get_current_user_id, get_payout_service
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...core.exceptions import DomainException
from ...schemas.payment_schemas import (
    BalanceResponse,
    PayoutCreateRequest,
    PayoutListResponse,
    PayoutResponse,
)
from ...services.payout_service import PayoutService
from ._shared import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payouts-v1"])


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    current_user_id: str = Depends(get_current_user_id),
    payout_service: PayoutService = Depends(get_payout_service),
) -> BalanceResponse:
    try:
        balance = await asyncio.to_thread(payout_service.get_balance, current_user_id)
        return BalanceResponse.model_validate(balance.to_dict())
    except DomainException as e:
        handle_domain_exception(e)


@router.post("", response_model=PayoutResponse, status_code=status.HTTP_201_CREATED)
async def request_payout(
    payload: PayoutCreateRequest,
    current_user_id: str = Depends(get_current_user_id),
    payout_service: PayoutService = Depends(get_payout_service),
) -> PayoutResponse:
    """
    Request a payout.

    At most three requests per user per day; a flat $0.25 transfer fee is
    deducted from the requested amount.
    """
    try:
        payout = await asyncio.to_thread(
            payout_service.request_payout, current_user_id, payload.amount
        )
        return PayoutResponse.model_validate(payout)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=PayoutListResponse)
async def list_payouts(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user_id: str = Depends(get_current_user_id),
    payout_service: PayoutService = Depends(get_payout_service),
) -> PayoutListResponse:
    try:
        payouts = await asyncio.to_thread(
            payout_service.list_payouts, current_user_id, page, limit
        )
        return PayoutListResponse(
            payouts=[PayoutResponse.model_validate(p) for p in payouts],
            page=page,
            limit=limit,
        )
    except DomainException as e:
        handle_domain_exception(e)
