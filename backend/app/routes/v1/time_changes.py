# backend/app/routes/v1/time_changes.py
"""
Time-change routes - API v1

Endpoints:
    GET / - Time changes on the user's bookings (as host by default)
    POST /{time_change_id}/accept - Host applies the proposed range
    POST /{time_change_id}/deny - Either party rejects the proposal
    PUT /{time_change_id} - Client replaces the proposed range
"""

import asyncio
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query

from ...api.dependencies import get_current_user_id, get_time_change_service
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...core.enums import ActorRole
from ...core.exceptions import DomainException
from ...schemas.booking import BookingResponse, BookingTimeChangeRequest
from ...schemas.time_change import TimeChangeListResponse, TimeChangeResponse
from ...services.time_change_service import TimeChangeService
from ._shared import ULID_PATH_PATTERN, handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["time-changes-v1"])

TimeChangeId = Annotated[str, Path(pattern=ULID_PATH_PATTERN)]


@router.get("", response_model=TimeChangeListResponse)
async def list_time_changes(
    role: ActorRole = Query(ActorRole.HOST),
    booking_id: Optional[str] = Query(None),
    spot_id: Optional[str] = Query(None),
    status_filter: Optional[str] = Query("pending", alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user_id: str = Depends(get_current_user_id),
    time_change_service: TimeChangeService = Depends(get_time_change_service),
) -> TimeChangeListResponse:
    try:
        time_changes = await asyncio.to_thread(
            time_change_service.query_time_changes,
            current_user_id,
            booking_id=booking_id,
            spot_id=spot_id,
            as_host=role == ActorRole.HOST,
            status=status_filter,
            page=page,
            limit=limit,
        )
        return TimeChangeListResponse(
            time_changes=[TimeChangeResponse.model_validate(tc) for tc in time_changes],
            page=page,
            limit=limit,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{time_change_id}/accept", response_model=BookingResponse)
async def accept_time_change(
    time_change_id: TimeChangeId,
    current_user_id: str = Depends(get_current_user_id),
    time_change_service: TimeChangeService = Depends(get_time_change_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            time_change_service.accept_time_change, current_user_id, time_change_id
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{time_change_id}/deny", response_model=TimeChangeResponse)
async def deny_time_change(
    time_change_id: TimeChangeId,
    current_user_id: str = Depends(get_current_user_id),
    time_change_service: TimeChangeService = Depends(get_time_change_service),
) -> TimeChangeResponse:
    try:
        time_change = await asyncio.to_thread(
            time_change_service.deny_time_change, current_user_id, time_change_id
        )
        return TimeChangeResponse.model_validate(time_change)
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/{time_change_id}", response_model=TimeChangeResponse)
async def update_time_change(
    time_change_id: TimeChangeId,
    change: BookingTimeChangeRequest,
    current_user_id: str = Depends(get_current_user_id),
    time_change_service: TimeChangeService = Depends(get_time_change_service),
) -> TimeChangeResponse:
    try:
        time_change = await asyncio.to_thread(
            time_change_service.update_time_change, current_user_id, time_change_id, change
        )
        return TimeChangeResponse.model_validate(time_change)
    except DomainException as e:
        handle_domain_exception(e)
