"""Google Maps Time Zone API provider."""

import time

from ...core.config import settings
from .base import TimezoneLookupError, TimezoneProvider


class GoogleTimezoneProvider(TimezoneProvider):
    name = "google"
    base_url = "https://maps.googleapis.com/maps/api"

    @property
    def configured(self) -> bool:
        return bool(settings.google_maps_api_key)

    async def lookup_timezone(self, lat: float, lng: float) -> str:
        data = await self._get_json(
            f"{self.base_url}/timezone/json",
            {
                "location": f"{lat},{lng}",
                # Offsets depend on the instant; the zone id does not
                "timestamp": int(time.time()),
                "key": settings.google_maps_api_key,
            },
        )
        status = data.get("status")
        if status != "OK" or not data.get("timeZoneId"):
            raise TimezoneLookupError(f"Google Timezone API error: {status}")
        return data["timeZoneId"]
