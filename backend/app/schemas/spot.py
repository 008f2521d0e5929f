"""Spot schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from .base import Money, StandardizedModel, StrictRequestModel


class SpotLocationUpdate(StrictRequestModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class SpotCreate(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=255)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    hourly_rate: Money = Field(..., ge=0, description="Price per hour in major units")
    status: Optional[Literal["draft", "published"]] = None


class SpotResponse(StandardizedModel):
    id: str
    host_id: str
    name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: str
    hourly_rate: Money
    status: str
    created_at: Optional[datetime] = None
