# backend/app/routes/v1/booking_logs.py
"""
Check-in / check-out routes - API v1

Endpoints:
    POST /{booking_id}/user-checkin
    POST /{booking_id}/host-checkin
    POST /{booking_id}/user-checkout - Completes the booking
    POST /{booking_id}/host-checkout - Completes the booking, not before its end
    GET /{booking_id} - The booking's log
"""

import asyncio
import logging
from typing import Annotated, Callable, Optional

from fastapi import APIRouter, Body, Depends, Path

from ...api.dependencies import get_booking_log_service, get_current_user_id
from ...core.exceptions import DomainException
from ...models.booking_log import BookingLog
from ...schemas.booking_log import BookingLogRequest, BookingLogResponse
from ...services.booking_log_service import BookingLogService
from ._shared import ULID_PATH_PATTERN, handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["booking-logs-v1"])

BookingId = Annotated[str, Path(pattern=ULID_PATH_PATTERN)]


async def _record(
    action: Callable[..., BookingLog],
    user_id: str,
    booking_id: str,
    payload: Optional[BookingLogRequest],
) -> BookingLogResponse:
    location = payload.location if payload else None
    try:
        log = await asyncio.to_thread(action, user_id, booking_id, location)
        return BookingLogResponse.model_validate(log.to_dict())
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/user-checkin", response_model=BookingLogResponse)
async def user_checkin(
    booking_id: BookingId,
    payload: Optional[BookingLogRequest] = Body(None),
    current_user_id: str = Depends(get_current_user_id),
    booking_log_service: BookingLogService = Depends(get_booking_log_service),
) -> BookingLogResponse:
    return await _record(booking_log_service.user_checkin, current_user_id, booking_id, payload)


@router.post("/{booking_id}/host-checkin", response_model=BookingLogResponse)
async def host_checkin(
    booking_id: BookingId,
    payload: Optional[BookingLogRequest] = Body(None),
    current_user_id: str = Depends(get_current_user_id),
    booking_log_service: BookingLogService = Depends(get_booking_log_service),
) -> BookingLogResponse:
    return await _record(booking_log_service.host_checkin, current_user_id, booking_id, payload)


@router.post("/{booking_id}/user-checkout", response_model=BookingLogResponse)
async def user_checkout(
    booking_id: BookingId,
    payload: Optional[BookingLogRequest] = Body(None),
    current_user_id: str = Depends(get_current_user_id),
    booking_log_service: BookingLogService = Depends(get_booking_log_service),
) -> BookingLogResponse:
    return await _record(booking_log_service.user_checkout, current_user_id, booking_id, payload)


@router.post("/{booking_id}/host-checkout", response_model=BookingLogResponse)
async def host_checkout(
    booking_id: BookingId,
    payload: Optional[BookingLogRequest] = Body(None),
    current_user_id: str = Depends(get_current_user_id),
    booking_log_service: BookingLogService = Depends(get_booking_log_service),
) -> BookingLogResponse:
    return await _record(booking_log_service.host_checkout, current_user_id, booking_id, payload)


@router.get("/{booking_id}", response_model=BookingLogResponse)
async def get_booking_log(
    booking_id: BookingId,
    current_user_id: str = Depends(get_current_user_id),
    booking_log_service: BookingLogService = Depends(get_booking_log_service),
) -> BookingLogResponse:
    try:
        log = await asyncio.to_thread(
            booking_log_service.get_booking_log, current_user_id, booking_id
        )
        return BookingLogResponse.model_validate(log)
    except DomainException as e:
        handle_domain_exception(e)
