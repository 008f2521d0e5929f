"""TimeZoneDB provider."""

from ...core.config import settings
from .base import TimezoneLookupError, TimezoneProvider


class TimeZoneDBProvider(TimezoneProvider):
    name = "timezonedb"
    base_url = "https://api.timezonedb.com/v2.1"

    @property
    def configured(self) -> bool:
        return bool(settings.timezonedb_api_key)

    async def lookup_timezone(self, lat: float, lng: float) -> str:
        data = await self._get_json(
            f"{self.base_url}/get-time-zone",
            {
                "key": settings.timezonedb_api_key,
                "format": "json",
                "by": "position",
                "lat": lat,
                "lng": lng,
            },
        )
        if data.get("status") != "OK" or not data.get("zoneName"):
            raise TimezoneLookupError(f"TimeZoneDB API error: {data.get('message')}")
        return data["zoneName"]
