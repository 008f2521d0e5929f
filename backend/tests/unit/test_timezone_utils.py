"""Spot-timezone conversions."""

from datetime import date, datetime

import pytest
import pytz

from app.core.exceptions import ValidationException
from app.core.timezone_utils import (
    get_spot_timezone,
    hours_until,
    is_valid_timezone,
    minutes_now_in_tz,
    to_spot_instant,
    today_in_tz,
)

NOW = datetime(2024, 6, 8, 12, 0, tzinfo=pytz.UTC)


def test_unknown_timezone_falls_back_to_utc():
    assert get_spot_timezone("Mars/Olympus_Mons") == pytz.UTC
    assert get_spot_timezone(None).zone == "UTC"


def test_is_valid_timezone():
    assert is_valid_timezone("America/New_York")
    assert not is_valid_timezone("Nowhere/City")
    assert not is_valid_timezone(None)


def test_to_spot_instant_uses_spot_offset():
    instant = to_spot_instant(date(2024, 6, 10), "09:00", "America/New_York")
    assert instant.astimezone(pytz.UTC) == datetime(2024, 6, 10, 13, 0, tzinfo=pytz.UTC)


def test_same_wall_clock_differs_between_zones():
    ny = to_spot_instant("2024-06-10", "09:00", "America/New_York")
    tokyo = to_spot_instant("2024-06-10", "09:00", "Asia/Tokyo")
    assert (ny - tokyo).total_seconds() == 13 * 3600


def test_ambiguous_time_resolves_to_first_occurrence():
    # 2024-11-03 01:30 happens twice in New York; the first is still EDT
    instant = to_spot_instant("2024-11-03", "01:30", "America/New_York")
    assert instant.utcoffset().total_seconds() == -4 * 3600


def test_nonexistent_time_is_rejected():
    with pytest.raises(ValidationException):
        to_spot_instant("2024-03-10", "02:30", "America/New_York")


def test_today_and_minutes_in_spot_timezone():
    assert today_in_tz("America/New_York", NOW) == date(2024, 6, 8)
    assert minutes_now_in_tz("America/New_York", NOW) == 8 * 60
    late = datetime(2024, 6, 9, 2, 0, tzinfo=pytz.UTC)
    assert today_in_tz("America/New_York", late) == date(2024, 6, 8)
    assert today_in_tz("Asia/Tokyo", late) == date(2024, 6, 9)


def test_hours_until():
    start = to_spot_instant("2024-06-09", "08:00", "America/New_York")
    assert hours_until(start, NOW) == 24
    assert hours_until(NOW, start) == -24
