# backend/app/core/enums.py
"""
Core enums for the Parkspace booking engine.

DayOfWeek is the single ordered weekday enumeration. Anything that validates,
compares or sorts weekday labels goes through it.
"""

from datetime import date
from enum import Enum
from typing import List


class DayOfWeek(str, Enum):
    """Weekday labels in calendar order (Sunday first)."""

    SUN = "Sun"
    MON = "Mon"
    TUE = "Tue"
    WED = "Wed"
    THU = "Thu"
    FRI = "Fri"
    SAT = "Sat"

    @property
    def sort_index(self) -> int:
        return _DAY_ORDER.index(self)

    @classmethod
    def from_date(cls, value: date) -> "DayOfWeek":
        # date.weekday() is Monday=0, labels start on Sunday
        return _DAY_ORDER[(value.weekday() + 1) % 7]

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in _DAY_ORDER]

    @classmethod
    def is_valid(cls, value: object) -> bool:
        return isinstance(value, str) and value in cls._value2member_map_


_DAY_ORDER: List[DayOfWeek] = list(DayOfWeek)


class OverlapPolicy(str, Enum):
    """How availability writes treat overlapping windows on the same day."""

    REJECT = "false"
    REPLACE = "true"
    IGNORE = "ignore"


class ActorRole(str, Enum):
    CLIENT = "client"
    HOST = "host"
