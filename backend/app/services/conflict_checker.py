# backend/app/services/conflict_checker.py
"""
Conflict Checker Service for the Parkspace platform.

Handles all booking validation that depends on a spot's calendar:
- Availability containment for normal bookings
- Overlap detection against existing bookings, parameterized by policy
- Duration bounds, weekday labels and future-start validation

Every instant is built in the spot's timezone before comparison.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.constants import (
    MAX_CUSTOM_DURATION,
    MAX_NORMAL_DURATION,
    MIN_CUSTOM_DURATION,
    MIN_NORMAL_DURATION,
    MINUTES_PER_DAY,
)
from ..core.exceptions import BookingConflictException, ValidationException
from ..core.timezone_utils import to_spot_instant, utcnow
from ..models.booking import Booking, BookingStatus, BookingType
from ..models.spot import Spot
from ..repositories import RepositoryFactory
from ..utils.time_utils import intervals_overlap, time_to_minutes, weekday_label, window_end_minutes
from .base import BaseService

logger = logging.getLogger(__name__)


class ConflictPolicy(str, Enum):
    """Which existing bookings block a candidate range."""

    NORMAL = "normal"  # accepted, plus payment-pending custom holds
    CUSTOM = "custom"  # accepted or payment-pending of any type
    ACCEPTED_ONLY = "accepted_only"  # time-change acceptance and normal time edits


_POLICY_STATUSES: Dict[ConflictPolicy, Tuple[List[str], List[str]]] = {
    ConflictPolicy.NORMAL: (
        [BookingStatus.ACCEPTED.value],
        [BookingStatus.PAYMENT_PENDING.value],
    ),
    ConflictPolicy.CUSTOM: (
        [BookingStatus.ACCEPTED.value, BookingStatus.PAYMENT_PENDING.value],
        [],
    ),
    ConflictPolicy.ACCEPTED_ONLY: ([BookingStatus.ACCEPTED.value], []),
}

_DURATION_BOUNDS = {
    BookingType.NORMAL.value: (MIN_NORMAL_DURATION, MAX_NORMAL_DURATION),
    BookingType.CUSTOM.value: (MIN_CUSTOM_DURATION, MAX_CUSTOM_DURATION),
}


@dataclass(frozen=True)
class BookingRange:
    """Wall-clock booking range as submitted by a client."""

    day: str
    start_date: date
    start_time: str
    end_date: date
    end_time: str

    def start_at(self, tz_name: Optional[str]) -> datetime:
        return to_spot_instant(self.start_date, self.start_time, tz_name)

    def end_at(self, tz_name: Optional[str]) -> datetime:
        return to_spot_instant(self.end_date, self.end_time, tz_name)

    @classmethod
    def of_booking(cls, booking: Booking) -> "BookingRange":
        return cls(
            day=booking.day,
            start_date=booking.start_date,
            start_time=booking.start_time,
            end_date=booking.end_date,
            end_time=booking.end_time,
        )


def policy_for(booking_type: str) -> ConflictPolicy:
    return ConflictPolicy.CUSTOM if booking_type == BookingType.CUSTOM.value else ConflictPolicy.NORMAL


class ConflictChecker(BaseService):
    """
    Service for checking booking conflicts and time validation.

    One overlap routine serves every booking type; the ConflictPolicy decides
    which existing bookings participate.
    """

    def __init__(self, db: Session):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)

    # Validation

    @staticmethod
    def validate_day_matches(day: str, start_date: date) -> None:
        expected = weekday_label(start_date)
        if day != expected.value:
            raise ValidationException(
                f"day must match the weekday of start date ({expected.value})",
                details={"day": day, "expected": expected.value},
            )

    @staticmethod
    def validate_duration(booking_type: str, minutes: int) -> None:
        bounds = _DURATION_BOUNDS.get(booking_type)
        if bounds is None:
            raise ValidationException(
                "type must be either normal or custom", details={"type": booking_type}
            )
        low, high = bounds
        if minutes < low or minutes > high:
            if booking_type == BookingType.NORMAL.value:
                message = "normal bookings must be between 15 minutes and 24 hours"
            else:
                message = "custom bookings must be between 1 and 30 days"
            raise ValidationException(
                message,
                code="INVALID_DURATION",
                details={"duration_minutes": minutes, "min": low, "max": high},
            )

    @staticmethod
    def validate_time_range(
        start_at: datetime, end_at: datetime, now: Optional[datetime] = None
    ) -> int:
        """Start strictly in the future and end after start; returns duration in minutes."""
        current = now or utcnow()
        if start_at <= current:
            raise ValidationException(
                "booking start must be in the future",
                code="START_IN_PAST",
                details={"start": start_at.isoformat()},
            )
        if end_at <= start_at:
            raise ValidationException(
                "booking end must be after its start",
                code="INVALID_TIME_RANGE",
                details={"start": start_at.isoformat(), "end": end_at.isoformat()},
            )
        return int((end_at - start_at).total_seconds() // 60)

    def validate_range(
        self,
        spot: Spot,
        booking_range: BookingRange,
        booking_type: str,
        now: Optional[datetime] = None,
    ) -> Tuple[datetime, datetime, int]:
        """Weekday label, future start, ordering and duration bounds for one range."""
        self.validate_day_matches(booking_range.day, booking_range.start_date)
        start_at = booking_range.start_at(spot.timezone)
        end_at = booking_range.end_at(spot.timezone)
        minutes = self.validate_time_range(start_at, end_at, now)
        self.validate_duration(booking_type, minutes)
        return start_at, end_at, minutes

    # Availability containment

    @BaseService.measure_operation("fits_availability")
    def fits_availability(self, spot_id: str, booking_range: BookingRange) -> bool:
        """
        Whether some window on the booking's weekday fully contains it.

        The end is measured in minutes from midnight of the start date, so a
        booking that runs to midnight ends at 1440.
        """
        start_minutes = time_to_minutes(booking_range.start_time)
        day_span = (booking_range.end_date - booking_range.start_date).days
        end_minutes = day_span * MINUTES_PER_DAY + time_to_minutes(booking_range.end_time)

        windows = self.availability_repository.list_for_spot_day(spot_id, booking_range.day)
        for window in windows:
            window_start = time_to_minutes(window.start_time)
            window_end = window_end_minutes(window.end_time)
            if start_minutes >= window_start and end_minutes <= window_end:
                return True
        return False

    def ensure_fits_availability(self, spot_id: str, booking_range: BookingRange) -> None:
        if not self.fits_availability(spot_id, booking_range):
            raise ValidationException(
                "requested time is outside the spot's availability",
                code="OUTSIDE_AVAILABILITY",
                details={
                    "day": booking_range.day,
                    "start_time": booking_range.start_time,
                    "end_time": booking_range.end_time,
                },
            )

    # Booking overlap

    def _candidates(
        self, spot_id: str, policy: ConflictPolicy, exclude_booking_id: Optional[str]
    ) -> Iterable[Booking]:
        statuses, custom_only = _POLICY_STATUSES[policy]
        return self.booking_repository.find_active_for_spot(
            spot_id,
            statuses=statuses,
            custom_only_statuses=custom_only,
            exclude_booking_id=exclude_booking_id,
        )

    @BaseService.measure_operation("find_conflict")
    def find_conflict(
        self,
        spot: Spot,
        start_at: datetime,
        end_at: datetime,
        policy: ConflictPolicy,
        exclude_booking_id: Optional[str] = None,
    ) -> Optional[Booking]:
        """First existing booking whose range overlaps [start_at, end_at), or None."""
        for existing in self._candidates(spot.id, policy, exclude_booking_id):
            existing_start = existing.start_at(spot.timezone)
            existing_end = existing.end_at(spot.timezone)
            if intervals_overlap(start_at, end_at, existing_start, existing_end):
                return existing
        return None

    def ensure_no_conflict(
        self,
        spot: Spot,
        start_at: datetime,
        end_at: datetime,
        policy: ConflictPolicy,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        conflict = self.find_conflict(spot, start_at, end_at, policy, exclude_booking_id)
        if conflict is not None:
            self.logger.info(
                f"Booking conflict on spot {spot.id}: requested {start_at.isoformat()}"
                f" - {end_at.isoformat()} overlaps booking {conflict.id}"
            )
            raise BookingConflictException(
                details={
                    "conflicting_booking_id": conflict.id,
                    "start": conflict.start_at(spot.timezone).isoformat(),
                    "end": conflict.end_at(spot.timezone).isoformat(),
                }
            )
