"""Factory for the timezone provider chain."""

from typing import List, Optional

import httpx

from .base import TimezoneProvider
from .geonames_provider import GeoNamesProvider
from .google_provider import GoogleTimezoneProvider
from .timezonedb_provider import TimeZoneDBProvider


def create_timezone_providers(client: Optional[httpx.AsyncClient] = None) -> List[TimezoneProvider]:
    """Configured providers in fallback order: Google, TimeZoneDB, GeoNames."""
    providers: List[TimezoneProvider] = [
        GoogleTimezoneProvider(client),
        TimeZoneDBProvider(client),
        GeoNamesProvider(client),
    ]
    return [provider for provider in providers if provider.configured]
