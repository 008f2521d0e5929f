"""GeoNames provider (free tier, requires a registered username)."""

from ...core.config import settings
from .base import TimezoneLookupError, TimezoneProvider


class GeoNamesProvider(TimezoneProvider):
    name = "geonames"
    base_url = "http://api.geonames.org"

    @property
    def configured(self) -> bool:
        return bool(settings.geonames_username)

    async def lookup_timezone(self, lat: float, lng: float) -> str:
        data = await self._get_json(
            f"{self.base_url}/timezoneJSON",
            {"lat": lat, "lng": lng, "username": settings.geonames_username},
        )
        if not data.get("timezoneId"):
            raise TimezoneLookupError("GeoNames API: No timezone found")
        return data["timezoneId"]
