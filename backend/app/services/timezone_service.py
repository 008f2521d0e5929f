"""
Coordinate to timezone resolution for spots.

Providers are tried in order (Google, TimeZoneDB, GeoNames), each with a
bounded number of attempts and exponential backoff. A provider answer is
only accepted when pytz knows the zone. When every provider fails the spot
falls back to UTC; resolution never raises.
"""

import logging
from typing import List, Optional

import httpx

from ..core.config import settings
from ..core.timezone_utils import DEFAULT_TIMEZONE, is_valid_timezone
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..utils.retry import retry
from .geocoding.base import TimezoneLookupError, TimezoneProvider
from .geocoding.factory import create_timezone_providers

logger = logging.getLogger(__name__)


class TimezoneService:
    """Resolves the IANA timezone for a pair of coordinates."""

    def __init__(
        self,
        providers: Optional[List[TimezoneProvider]] = None,
        *,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
    ):
        self.providers = providers if providers is not None else create_timezone_providers()
        self.max_attempts = max_attempts or settings.timezone_lookup_max_attempts
        self.backoff_seconds = (
            backoff_seconds
            if backoff_seconds is not None
            else settings.timezone_lookup_backoff_seconds
        )

    async def _lookup_with_retry(self, provider: TimezoneProvider, lat: float, lng: float) -> str:
        lookup = retry(
            max_attempts=self.max_attempts,
            backoff_seconds=self.backoff_seconds,
            retry_on=(httpx.HTTPError, TimezoneLookupError),
        )(provider.lookup_timezone)
        return await lookup(lat, lng)

    async def resolve(self, lat: Optional[float], lng: Optional[float]) -> str:
        if lat is None or lng is None:
            return DEFAULT_TIMEZONE

        for provider in self.providers:
            try:
                zone = await self._lookup_with_retry(provider, lat, lng)
            except (httpx.HTTPError, TimezoneLookupError, ValueError) as exc:
                logger.warning(f"{provider.name} timezone lookup failed, trying fallback: {exc}")
                continue
            if not is_valid_timezone(zone):
                logger.warning(f"{provider.name} returned unknown timezone {zone!r}")
                continue
            prometheus_metrics.inc_timezone_lookup(provider.name)
            return zone

        logger.error("All timezone lookup services failed, using UTC as default")
        prometheus_metrics.inc_timezone_lookup("fallback")
        return DEFAULT_TIMEZONE
