"""
Timezone utilities for the Parkspace booking engine.

Booking and availability fields are stored as wall-clock strings. Every
comparison against "now" or between bookings goes through the spot's IANA
timezone using the helpers below.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional, Union

import pytz

from app.core.constants import MINUTES_PER_DAY
from app.core.exceptions import ValidationException
from app.utils.time_utils import parse_date, time_to_minutes

DEFAULT_TIMEZONE = "UTC"


def get_spot_timezone(tz_name: Optional[str]) -> pytz.BaseTzInfo:
    """
    Resolve a spot's timezone.

    Unknown or missing names fall back to UTC.
    """
    try:
        return pytz.timezone(tz_name or DEFAULT_TIMEZONE)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def is_valid_timezone(tz_name: Optional[str]) -> bool:
    if not tz_name:
        return False
    try:
        pytz.timezone(tz_name)
        return True
    except pytz.UnknownTimeZoneError:
        return False


def utcnow() -> datetime:
    return datetime.now(pytz.UTC)


def to_spot_instant(day: Union[str, date], hhmm: str, tz_name: Optional[str]) -> datetime:
    """
    Combine a wall-clock date and time in the spot's timezone into an aware datetime.

    Ambiguous wall times (DST fall-back) resolve to the first occurrence.
    Wall times that do not exist (DST spring-forward) are rejected.
    """
    tz = get_spot_timezone(tz_name)
    minutes = time_to_minutes(hhmm)
    naive = datetime.combine(parse_date(day), time(0, 0)) + timedelta(minutes=minutes)
    try:
        return tz.localize(naive, is_dst=None)
    except pytz.exceptions.AmbiguousTimeError:
        return tz.localize(naive, is_dst=True)
    except pytz.exceptions.NonExistentTimeError as exc:
        raise ValidationException(
            f"{naive.isoformat()} does not exist in timezone {tz.zone}",
            details={"date": str(day), "time": hhmm, "timezone": tz.zone},
        ) from exc


def now_in_tz(tz_name: Optional[str], now: Optional[datetime] = None) -> datetime:
    """Current instant expressed in the spot's timezone."""
    current = now or utcnow()
    if current.tzinfo is None:
        current = pytz.UTC.localize(current)
    return current.astimezone(get_spot_timezone(tz_name))


def today_in_tz(tz_name: Optional[str], now: Optional[datetime] = None) -> date:
    return now_in_tz(tz_name, now).date()


def minutes_now_in_tz(tz_name: Optional[str], now: Optional[datetime] = None) -> int:
    """Minutes since local midnight in the spot's timezone."""
    local = now_in_tz(tz_name, now)
    return min(local.hour * 60 + local.minute, MINUTES_PER_DAY)


def hours_until(instant: datetime, now: Optional[datetime] = None) -> float:
    """Hours between ``now`` and ``instant`` (negative when in the past)."""
    current = now or utcnow()
    if current.tzinfo is None:
        current = pytz.UTC.localize(current)
    return (instant - current).total_seconds() / 3600
