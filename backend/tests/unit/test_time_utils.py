"""Unit tests for the wall-clock helpers in app.utils.time_utils."""

from datetime import date
import random

import pytest

from app.core.enums import DayOfWeek
from app.core.exceptions import ValidationException
from app.utils.time_utils import (
    intervals_overlap,
    minutes_to_time_str,
    normalize_time_format,
    parse_date,
    time_to_minutes,
    validate_day,
    weekday_label,
    window_end_minutes,
)


class TestTimeConversion:
    def test_time_to_minutes(self):
        assert time_to_minutes("00:00") == 0
        assert time_to_minutes("09:30") == 570
        assert time_to_minutes("23:59") == 1439

    @pytest.mark.parametrize("bad", ["24:00", "9:30", "12:60", "noon", ""])
    def test_time_to_minutes_rejects_malformed(self, bad):
        with pytest.raises(ValidationException):
            time_to_minutes(bad)

    def test_window_end_treats_2359_as_midnight(self):
        assert window_end_minutes("23:59") == 1440
        assert window_end_minutes("18:00") == 1080

    def test_minutes_to_time_str(self):
        assert minutes_to_time_str(0) == "00:00"
        assert minutes_to_time_str(615) == "10:15"
        assert minutes_to_time_str(1440) == "23:59"

    def test_minutes_to_time_str_out_of_range(self):
        with pytest.raises(ValueError):
            minutes_to_time_str(1441)

    def test_normalize_pads_single_digit_hour(self):
        assert normalize_time_format("9:05") == "09:05"
        assert normalize_time_format("17:45") == "17:45"


class TestDates:
    def test_parse_date(self):
        assert parse_date("2024-06-10") == date(2024, 6, 10)
        assert parse_date(date(2024, 6, 10)) == date(2024, 6, 10)

    @pytest.mark.parametrize("bad", ["2024/06/10", "2024-02-30", "10-06-2024"])
    def test_parse_date_rejects_invalid(self, bad):
        with pytest.raises(ValidationException):
            parse_date(bad)

    def test_weekday_label_starts_on_sunday(self):
        assert weekday_label(date(2024, 6, 9)) == DayOfWeek.SUN
        assert weekday_label(date(2024, 6, 10)) == DayOfWeek.MON
        assert weekday_label("2024-06-08") == DayOfWeek.SAT

    def test_validate_day(self):
        assert validate_day("Wed") == DayOfWeek.WED
        with pytest.raises(ValidationException):
            validate_day("Wednesday")

    def test_day_order(self):
        assert DayOfWeek.values() == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
        assert DayOfWeek.SUN.sort_index < DayOfWeek.SAT.sort_index


class TestIntervalsOverlap:
    def test_adjacent_ranges_do_not_overlap(self):
        assert not intervals_overlap(600, 660, 660, 720)
        assert not intervals_overlap(660, 720, 600, 660)

    def test_start_inside(self):
        assert intervals_overlap(630, 700, 600, 660)

    def test_end_inside(self):
        assert intervals_overlap(570, 630, 600, 660)

    def test_full_cover(self):
        assert intervals_overlap(500, 800, 600, 660)

    def test_contained(self):
        assert intervals_overlap(610, 620, 600, 660)

    def test_disjoint(self):
        assert not intervals_overlap(0, 60, 120, 180)


def _random_ranges(seed, count=40):
    rng = random.Random(seed)
    ranges = []
    for _ in range(count):
        start = rng.randrange(0, 1440)
        ranges.append((start, rng.randrange(start + 1, 1441)))
    return ranges


@pytest.mark.parametrize("seed", range(5))
def test_overlap_is_symmetric_and_reflexive(seed):
    ranges = _random_ranges(seed)
    for a_start, a_end in ranges:
        assert intervals_overlap(a_start, a_end, a_start, a_end)
        for b_start, b_end in ranges:
            forward = intervals_overlap(a_start, a_end, b_start, b_end)
            assert forward == intervals_overlap(b_start, b_end, a_start, a_end)
            assert forward == (a_start < b_end and b_start < a_end)
