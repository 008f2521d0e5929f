# backend/app/routes/v1/spots.py
"""
Spot routes - API v1

Versioned spot endpoints under /api/v1/spots.
All business logic delegated to the spot, availability, blocked-dates and
slot services.

Endpoints:
    POST / - Create a spot (timezone resolved from coordinates)
    GET /{spot_id} - Spot details
    PATCH /{spot_id}/location - Move a spot and re-resolve its timezone
    GET /{spot_id}/availability - Weekly windows in calendar order
    POST /{spot_id}/availability - Add a window (optionally on similar days)
    PUT /{spot_id}/availability/{availability_id} - Move or resize a window
    DELETE /{spot_id}/availability/{availability_id} - Remove a window
    GET /{spot_id}/blocked-dates - Dates that cannot take a booking of a given shape
    GET /{spot_id}/slots - Slot grid for one date
"""

import asyncio
from datetime import date
import logging
from typing import Annotated, List, Literal, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status

from ...api.dependencies import (
    get_availability_service,
    get_blocked_dates_service,
    get_current_user_id,
    get_slot_service,
    get_spot_service,
)
from ...core.exceptions import DomainException
from ...schemas.availability import (
    AvailabilityCreateResponse,
    AvailabilityUpdateResponse,
    AvailabilityWindowCreate,
    AvailabilityWindowResponse,
    AvailabilityWindowUpdate,
    BlockedDatesResponse,
    SlotListResponse,
)
from ...schemas.spot import SpotCreate, SpotLocationUpdate, SpotResponse
from ...services.availability_service import AvailabilityService
from ...services.blocked_dates_service import BlockedDatesService
from ...services.slot_service import SlotService
from ...services.spot_service import SpotService
from ._shared import ULID_PATH_PATTERN, handle_domain_exception

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["spots-v1"])

SpotId = Annotated[str, Path(pattern=ULID_PATH_PATTERN)]
AvailabilityId = Annotated[str, Path(pattern=ULID_PATH_PATTERN)]


@router.post("", response_model=SpotResponse, status_code=status.HTTP_201_CREATED)
async def create_spot(
    payload: SpotCreate,
    current_user_id: str = Depends(get_current_user_id),
    spot_service: SpotService = Depends(get_spot_service),
) -> SpotResponse:
    try:
        spot = await asyncio.to_thread(spot_service.create_spot, current_user_id, payload)
        return SpotResponse.model_validate(spot)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{spot_id}", response_model=SpotResponse)
async def get_spot(
    spot_id: SpotId,
    spot_service: SpotService = Depends(get_spot_service),
) -> SpotResponse:
    try:
        spot = await asyncio.to_thread(spot_service.get_spot, spot_id)
        return SpotResponse.model_validate(spot)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{spot_id}/location", response_model=SpotResponse)
async def relocate_spot(
    spot_id: SpotId,
    payload: SpotLocationUpdate,
    current_user_id: str = Depends(get_current_user_id),
    spot_service: SpotService = Depends(get_spot_service),
) -> SpotResponse:
    try:
        spot = await asyncio.to_thread(
            spot_service.relocate_spot, current_user_id, spot_id, payload
        )
        return SpotResponse.model_validate(spot)
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# Availability windows
# ============================================================================


@router.get("/{spot_id}/availability", response_model=List[AvailabilityWindowResponse])
async def list_availability(
    spot_id: SpotId,
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> List[AvailabilityWindowResponse]:
    try:
        windows = await asyncio.to_thread(availability_service.list_windows, spot_id)
        return [AvailabilityWindowResponse.model_validate(w) for w in windows]
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{spot_id}/availability",
    response_model=AvailabilityCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_availability(
    spot_id: SpotId,
    payload: AvailabilityWindowCreate,
    current_user_id: str = Depends(get_current_user_id),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityCreateResponse:
    """
    Add a weekly window.

    ``overlap`` decides what happens when a target day already has an
    overlapping window: reject (default), replace, or skip that day.
    """
    try:
        result = await asyncio.to_thread(
            availability_service.add_window,
            current_user_id,
            spot_id,
            payload.day,
            payload.start_time,
            payload.end_time,
            payload.similar_days,
            payload.overlap,
        )
        return AvailabilityCreateResponse.model_validate(result)
    except DomainException as e:
        handle_domain_exception(e)


@router.put(
    "/{spot_id}/availability/{availability_id}", response_model=AvailabilityUpdateResponse
)
async def update_availability(
    spot_id: SpotId,
    availability_id: AvailabilityId,
    payload: AvailabilityWindowUpdate,
    current_user_id: str = Depends(get_current_user_id),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityUpdateResponse:
    try:
        result = await asyncio.to_thread(
            availability_service.update_window,
            current_user_id,
            spot_id,
            availability_id,
            payload.day,
            payload.start_time,
            payload.end_time,
            payload.overlap,
        )
        return AvailabilityUpdateResponse.model_validate(result)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete(
    "/{spot_id}/availability/{availability_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def remove_availability(
    spot_id: SpotId,
    availability_id: AvailabilityId,
    current_user_id: str = Depends(get_current_user_id),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> Response:
    try:
        await asyncio.to_thread(
            availability_service.remove_window, current_user_id, spot_id, availability_id
        )
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# Calendar projections
# ============================================================================


@router.get("/{spot_id}/blocked-dates", response_model=BlockedDatesResponse)
async def get_blocked_dates(
    spot_id: SpotId,
    booking_type: Literal["normal", "custom"] = Query(..., alias="type"),
    duration: int = Query(..., description="Requested booking length in minutes"),
    as_of: Optional[date] = Query(None, description="First date of the 90-day horizon"),
    blocked_dates_service: BlockedDatesService = Depends(get_blocked_dates_service),
) -> BlockedDatesResponse:
    try:
        result = await asyncio.to_thread(
            blocked_dates_service.get_blocked_dates,
            spot_id,
            booking_type,
            duration,
            as_of=as_of,
        )
        return BlockedDatesResponse.model_validate(result)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{spot_id}/slots", response_model=SlotListResponse)
async def list_slots(
    spot_id: SpotId,
    on_date: date = Query(..., alias="date"),
    duration: int = Query(..., description="Slot length in minutes"),
    slot_service: SlotService = Depends(get_slot_service),
) -> SlotListResponse:
    try:
        result = await asyncio.to_thread(slot_service.list_slots, spot_id, on_date, duration)
        return SlotListResponse.model_validate(result)
    except DomainException as e:
        handle_domain_exception(e)
