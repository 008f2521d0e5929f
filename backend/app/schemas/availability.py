# backend/app/schemas/availability.py
"""
Availability schemas for the Parkspace platform.

Windows repeat weekly: a weekday label plus an ``HH:MM`` start and end. An
end of ``23:59`` means the window runs through midnight.
"""

from datetime import date
from typing import List, Literal, Optional, Union

from pydantic import Field, field_validator

from .base import StandardizedModel, StrictRequestModel, parse_time_field

OverlapFlag = Union[bool, Literal["true", "false", "ignore"]]


class AvailabilityWindowBase(StrictRequestModel):
    day: str = Field(..., description="Weekday label (Sun..Sat)")
    start_time: str = Field(..., description="HH:MM, 24-hour")
    end_time: str = Field(..., description="HH:MM, 24-hour; 23:59 runs through midnight")
    overlap: Optional[OverlapFlag] = Field(
        None,
        description="'false' rejects overlaps, 'true' replaces them, 'ignore' skips those days",
    )

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _enforce_time_format(cls, v: object, info) -> str:
        return parse_time_field(v, info.field_name)


class AvailabilityWindowCreate(AvailabilityWindowBase):
    similar_days: List[str] = Field(default_factory=list)


class AvailabilityWindowUpdate(AvailabilityWindowBase):
    pass


class AvailabilityWindowResponse(StandardizedModel):
    id: str
    spot_id: str
    day: str
    start_time: str
    end_time: str


class AvailabilityCreateResponse(StandardizedModel):
    created: int
    replaced: int
    ignored_days: List[str]
    ignored_count: int
    availabilities: List[AvailabilityWindowResponse]


class AvailabilityUpdateResponse(StandardizedModel):
    availability: AvailabilityWindowResponse
    replaced: int


class BlockedDatesResponse(StandardizedModel):
    spot_id: str
    type: str
    duration: int
    blocked_dates: List[date]
    first_available_date: Optional[date] = None


class Slot(StandardizedModel):
    start: str
    end: str
    booked: bool


class SlotListResponse(StandardizedModel):
    spot_id: str
    date: date
    day: str
    duration: int
    slots: List[Slot]

