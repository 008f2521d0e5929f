"""Provider-agnostic timezone lookup interfaces."""

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from ...core.config import settings


class TimezoneLookupError(Exception):
    """A provider answered but did not return a usable timezone."""


class TimezoneProvider(ABC):
    name: str = "base"

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        self._client = client

    @property
    @abstractmethod
    def configured(self) -> bool:
        pass

    @abstractmethod
    async def lookup_timezone(self, lat: float, lng: float) -> str:
        """IANA zone name for the coordinates; raises on any failure."""

    async def _get_json(self, url: str, params: dict) -> dict:
        if self._client is not None:
            resp = await self._client.get(url, params=params)
        else:
            async with httpx.AsyncClient(timeout=settings.timezone_lookup_timeout_seconds) as client:
                resp = await client.get(url, params=params)
        resp.raise_for_status()
        return resp.json()
