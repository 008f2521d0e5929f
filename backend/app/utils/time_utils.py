"""
Wall-clock helpers shared by availability, booking and projection code.

All functions are pure. Malformed input raises ValidationException so callers
never work with half-parsed values.
"""

from __future__ import annotations

from datetime import date, datetime
import re
from typing import Union

from app.core.constants import DATE_REGEX, END_OF_DAY_TIME, MINUTES_PER_DAY, TIME_REGEX
from app.core.enums import DayOfWeek
from app.core.exceptions import ValidationException

_TIME_PATTERN = re.compile(TIME_REGEX)
_DATE_PATTERN = re.compile(DATE_REGEX)
_LOOSE_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")

Number = Union[int, float]


def normalize_time_format(value: str) -> str:
    """Pad a single-digit hour: ``"9:05"`` becomes ``"09:05"``."""
    if not isinstance(value, str):
        raise ValidationException("times must be in 24-hour format (HH:MM)")
    match = _LOOSE_TIME_PATTERN.match(value.strip())
    if not match:
        raise ValidationException(
            "times must be in 24-hour format (HH:MM)", details={"value": value}
        )
    return f"{int(match.group(1)):02d}:{match.group(2)}"


def is_valid_time(value: object) -> bool:
    return isinstance(value, str) and _TIME_PATTERN.match(value) is not None


def is_valid_date(value: object) -> bool:
    return isinstance(value, str) and _DATE_PATTERN.match(value) is not None


def validate_time_str(value: str, field: str = "time") -> str:
    if not is_valid_time(value):
        raise ValidationException(
            f"{field} must be in 24-hour format (HH:MM)", details={field: value}
        )
    return value


def time_to_minutes(value: str) -> int:
    """Convert ``HH:MM`` to minutes since midnight."""
    validate_time_str(value)
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def window_end_minutes(value: str) -> int:
    """End of an availability window; ``23:59`` means open through midnight."""
    if value == END_OF_DAY_TIME:
        return MINUTES_PER_DAY
    return time_to_minutes(value)


def minutes_to_time_str(minutes: int) -> str:
    """
    Convert minutes since midnight to HH:MM.

    1440 is rendered as "23:59", the last representable wall-clock minute.
    """
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise ValueError(f"minutes out of range: {minutes}")
    if minutes == MINUTES_PER_DAY:
        return END_OF_DAY_TIME
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value: Union[str, date], field: str = "date") -> date:
    """Parse ``YYYY-MM-DD`` into a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not is_valid_date(value):
        raise ValidationException(
            f"{field} must be in format YYYY-MM-DD", details={field: value}
        )
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationException(f"{field} is not a valid date", details={field: value}) from exc


def weekday_label(value: Union[str, date]) -> DayOfWeek:
    """Weekday label (``Sun``..``Sat``) for a date."""
    return DayOfWeek.from_date(parse_date(value))


def validate_day(value: object, field: str = "day") -> DayOfWeek:
    if not DayOfWeek.is_valid(value):
        raise ValidationException(
            f"invalid {field}, must be one of {', '.join(DayOfWeek.values())}",
            details={field: value},
        )
    return DayOfWeek(value)


def intervals_overlap(a_start: Number, a_end: Number, b_start: Number, b_end: Number) -> bool:
    """
    Three-way overlap test for ``[start, end)`` ranges.

    True when A starts inside B, ends inside B, or fully covers B. Works for
    minute offsets and for datetimes alike.
    """
    return (
        (b_start <= a_start < b_end)
        or (b_start < a_end <= b_end)
        or (a_start <= b_start and a_end >= b_end)
    )
