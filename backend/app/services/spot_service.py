# backend/app/services/spot_service.py
"""
Spot Service for the Parkspace platform.

Creates spots and keeps their timezone in step with their coordinates. The
timezone lookup is an outbound call, so it runs before the transaction is
opened; it always yields a zone (UTC when every provider fails).
"""

import logging
from typing import Optional

import anyio
from sqlalchemy.orm import Session

from ..core.exceptions import ForbiddenException, NotFoundException
from ..models.spot import Spot, SpotStatus
from ..repositories import RepositoryFactory
from ..schemas.spot import SpotCreate, SpotLocationUpdate
from .base import BaseService
from .pricing_service import round_money
from .timezone_service import TimezoneService

logger = logging.getLogger(__name__)


class SpotService(BaseService):
    def __init__(self, db: Session, timezone_service: Optional[TimezoneService] = None):
        super().__init__(db)
        self.repository = RepositoryFactory.create_spot_repository(db)
        self.timezone_service = timezone_service or TimezoneService()

    def _resolve_timezone(self, lat: Optional[float], lng: Optional[float]) -> str:
        # Runs on a worker thread (routes call services via to_thread)
        return anyio.run(self.timezone_service.resolve, lat, lng)

    @BaseService.measure_operation("create_spot")
    def create_spot(self, host_id: str, data: SpotCreate) -> Spot:
        tz_name = self._resolve_timezone(data.latitude, data.longitude)
        with self.transaction():
            spot = self.repository.create(
                host_id=host_id,
                name=data.name,
                latitude=data.latitude,
                longitude=data.longitude,
                timezone=tz_name,
                hourly_rate=round_money(data.hourly_rate),
                status=data.status or SpotStatus.DRAFT.value,
            )
        self.log_operation("create_spot", spot_id=spot.id, timezone=tz_name)
        return spot

    @BaseService.measure_operation("relocate_spot")
    def relocate_spot(self, host_id: str, spot_id: str, location: SpotLocationUpdate) -> Spot:
        """Move a spot and re-resolve its timezone from the new coordinates."""
        existing = self.get_spot(spot_id)
        if existing.host_id != host_id:
            raise ForbiddenException("Only the spot owner can change its location")
        previous_tz = existing.timezone

        tz_name = self._resolve_timezone(location.latitude, location.longitude)
        with self.transaction():
            spot = self.repository.get_for_update(spot_id)
            if spot is None:
                raise NotFoundException("Spot not found", details={"spot_id": spot_id})
            spot.latitude = location.latitude
            spot.longitude = location.longitude
            spot.timezone = tz_name

        if tz_name != previous_tz:
            self.logger.info(f"Spot {spot_id} timezone changed to {tz_name}")
        return spot

    def get_spot(self, spot_id: str) -> Spot:
        spot = self.repository.get_by_id(spot_id)
        if spot is None:
            raise NotFoundException("Spot not found", details={"spot_id": spot_id})
        return spot
