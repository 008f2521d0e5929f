"""Mock timezone provider for unit tests (no network calls)."""

from typing import Optional

from .base import TimezoneLookupError, TimezoneProvider


class MockTimezoneProvider(TimezoneProvider):
    name = "mock"

    def __init__(self, zone: Optional[str] = "America/New_York") -> None:
        super().__init__()
        self.zone = zone
        self.calls = 0

    @property
    def configured(self) -> bool:
        return True

    async def lookup_timezone(self, lat: float, lng: float) -> str:
        self.calls += 1
        if self.zone is None:
            raise TimezoneLookupError("mock provider has no timezone")
        return self.zone
