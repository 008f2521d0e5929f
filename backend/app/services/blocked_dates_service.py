# backend/app/services/blocked_dates_service.py
"""
Blocked-dates projection for the booking calendar.

Answers "on which of the next 90 days can a booking of this type and length
not be placed?" for a spot. Dates are evaluated in the spot's timezone.

Custom bookings work on whole dates: a date is blocked when a stay of the
requested number of days starting there would touch a date that an active
booking already covers.

Normal bookings work on minutes: each weekday window is reduced by the
booked ranges on that date (and by the elapsed part of today), and the date
is blocked when no remaining gap fits the requested duration.
"""

from datetime import date, datetime, timedelta
import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy.orm import Session

from ..core.constants import BLOCKED_DATES_HORIZON_DAYS, MINUTES_PER_DAY
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezone_utils import minutes_now_in_tz, today_in_tz
from ..models.booking import Booking, BookingStatus, BookingType
from ..models.spot import Spot
from ..repositories import RepositoryFactory
from ..utils.time_utils import time_to_minutes, weekday_label, window_end_minutes
from .base import BaseService
from .conflict_checker import ConflictChecker

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (
    BookingStatus.ACCEPTED.value,
    BookingStatus.PAYMENT_PENDING.value,
    BookingStatus.REQUEST_PENDING.value,
)

MinuteRange = Tuple[int, int]


def daterange(start: date, days: int) -> Iterable[date]:
    for offset in range(days):
        yield start + timedelta(days=offset)


def covered_dates(booking: Booking) -> List[date]:
    span = (booking.end_date - booking.start_date).days
    return list(daterange(booking.start_date, span + 1))


def occupied_range_on(booking: Booking, on_date: date) -> Optional[MinuteRange]:
    """
    Minutes of ``on_date`` taken by ``booking``, or None if it does not touch the date.

    A booking occupies its start date from its start time to midnight, any
    middle dates entirely, and its end date from midnight to its end time.
    """
    if on_date < booking.start_date or on_date > booking.end_date:
        return None
    start = time_to_minutes(booking.start_time) if on_date == booking.start_date else 0
    end = time_to_minutes(booking.end_time) if on_date == booking.end_date else MINUTES_PER_DAY
    if end <= start:
        return None
    return start, end


def free_gaps(window: MinuteRange, occupied: Iterable[MinuteRange]) -> List[MinuteRange]:
    """Parts of ``window`` not covered by any occupied range, in order."""
    gaps: List[MinuteRange] = []
    cursor, window_end = window
    for start, end in sorted(occupied):
        if end <= cursor:
            continue
        if start >= window_end:
            break
        if start > cursor:
            gaps.append((cursor, start))
        cursor = max(cursor, end)
    if cursor < window_end:
        gaps.append((cursor, window_end))
    return gaps


class BlockedDatesService(BaseService):
    """Projects which upcoming dates cannot take a booking of a given shape."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.spot_repository = RepositoryFactory.create_spot_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)

    @BaseService.measure_operation("get_blocked_dates")
    def get_blocked_dates(
        self,
        spot_id: str,
        booking_type: str,
        duration: int,
        *,
        as_of: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Blocked dates and the first open date within the horizon.

        ``as_of`` moves the start of the horizon (defaults to today in the
        spot's timezone).
        """
        if booking_type not in (BookingType.NORMAL.value, BookingType.CUSTOM.value):
            raise ValidationException(
                "type is required and must be either 'normal' or 'custom'",
                details={"type": booking_type},
            )
        if duration is None or duration <= 0:
            raise ValidationException("duration must be a positive number in minutes")
        ConflictChecker.validate_duration(booking_type, duration)

        spot = self.spot_repository.get_by_id(spot_id)
        if spot is None:
            raise NotFoundException("Spot not found", details={"spot_id": spot_id})

        today = today_in_tz(spot.timezone, now)
        start = as_of or today
        bookings = self.booking_repository.find_ending_on_or_after(
            spot.id, start, statuses=ACTIVE_STATUSES
        )

        if booking_type == BookingType.CUSTOM.value:
            blocked = self._custom_blocked(bookings, start, duration)
        else:
            blocked = self._normal_blocked(spot, bookings, start, duration, today, now)

        horizon = list(daterange(start, BLOCKED_DATES_HORIZON_DAYS))
        first_available = next((d for d in horizon if d not in blocked), None)
        self.logger.debug(
            f"Spot {spot.id}: {len(blocked)} blocked dates for {booking_type}/{duration}min from {start}"
        )
        return {
            "spot_id": spot.id,
            "type": booking_type,
            "duration": duration,
            "blocked_dates": sorted(blocked),
            "first_available_date": first_available,
        }

    @staticmethod
    def _custom_blocked(bookings: Iterable[Booking], start: date, duration: int) -> Set[date]:
        booked: Set[date] = set()
        for booking in bookings:
            booked.update(d for d in covered_dates(booking) if d >= start)

        duration_days = math.ceil(duration / MINUTES_PER_DAY)
        blocked = set(booked)
        for candidate in daterange(start, BLOCKED_DATES_HORIZON_DAYS):
            if any(day in booked for day in daterange(candidate, duration_days)):
                blocked.add(candidate)
        return blocked

    def _normal_blocked(
        self,
        spot: Spot,
        bookings: List[Booking],
        start: date,
        duration: int,
        today: date,
        now: Optional[datetime],
    ) -> Set[date]:
        windows_by_day: Dict[str, List[MinuteRange]] = {}
        for window in self.availability_repository.list_for_spot(spot.id):
            windows_by_day.setdefault(window.day, []).append(
                (time_to_minutes(window.start_time), window_end_minutes(window.end_time))
            )
        now_minutes = minutes_now_in_tz(spot.timezone, now)

        blocked: Set[date] = set()
        for candidate in daterange(start, BLOCKED_DATES_HORIZON_DAYS):
            windows = windows_by_day.get(weekday_label(candidate).value, [])
            if not windows:
                blocked.add(candidate)
                continue

            occupied = [
                r for r in (occupied_range_on(b, candidate) for b in bookings) if r is not None
            ]
            fits = False
            for window_start, window_end in windows:
                if candidate == today:
                    window_start = max(window_start, now_minutes)
                if window_end - window_start < duration:
                    continue
                if any(
                    gap_end - gap_start >= duration
                    for gap_start, gap_end in free_gaps((window_start, window_end), occupied)
                ):
                    fits = True
                    break
            if not fits:
                blocked.add(candidate)
        return blocked
