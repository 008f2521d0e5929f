"""Schemas for booking time-change requests."""

from datetime import date, datetime
from typing import List, Optional

from .base import StandardizedModel


class TimeChangeResponse(StandardizedModel):
    id: str
    booking_id: str
    spot_id: str
    client_id: str
    host_id: str
    old_day: str
    old_start_date: date
    old_start_time: str
    old_end_date: date
    old_end_time: str
    new_day: str
    new_start_date: date
    new_start_time: str
    new_end_date: date
    new_end_time: str
    status: str
    created_at: Optional[datetime] = None


class TimeChangeListResponse(StandardizedModel):
    time_changes: List[TimeChangeResponse]
    page: int
    limit: int
