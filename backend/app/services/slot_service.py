# backend/app/services/slot_service.py
"""
Slot listing for a spot on a single date.

Each availability window of the date's weekday is cut into consecutive slots
of the requested length. A slot is marked booked when it overlaps the part
of the date that a live booking occupies, or when it has already ended today.
"""

from datetime import date, datetime
import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from ..core.constants import (
    MAX_CUSTOM_DURATION,
    MIN_NORMAL_DURATION,
    MINUTES_PER_DAY,
)
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezone_utils import minutes_now_in_tz, today_in_tz
from ..models.booking import BookingStatus
from ..repositories import RepositoryFactory
from ..utils.time_utils import (
    intervals_overlap,
    minutes_to_time_str,
    parse_date,
    time_to_minutes,
    weekday_label,
    window_end_minutes,
)
from .base import BaseService
from .blocked_dates_service import occupied_range_on

logger = logging.getLogger(__name__)

_IGNORED_STATUSES = (BookingStatus.CANCELLED.value, BookingStatus.REJECTED.value)


class SlotService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.spot_repository = RepositoryFactory.create_spot_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)

    @BaseService.measure_operation("list_slots")
    def list_slots(
        self,
        spot_id: str,
        on_date: Union[str, date],
        duration: int,
        *,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Slots of ``duration`` minutes on ``on_date`` with their booked flag.

        Durations longer than a day fall back to 15-minute slots, since a
        multi-day stay has no meaningful slot grid within one date.
        """
        if duration is None or duration < MIN_NORMAL_DURATION or duration > MAX_CUSTOM_DURATION:
            raise ValidationException(
                "minimum duration is 15 minutes and max is 30 days",
                details={"duration": duration},
            )
        slot_length = MIN_NORMAL_DURATION if duration > MINUTES_PER_DAY else duration

        spot = self.spot_repository.get_by_id(spot_id)
        if spot is None:
            raise NotFoundException("Spot not found", details={"spot_id": spot_id})

        target = parse_date(on_date)
        today = today_in_tz(spot.timezone, now)
        if target < today:
            raise ValidationException(
                "cannot check availability for past dates", details={"date": target.isoformat()}
            )

        day = weekday_label(target).value
        windows = self.availability_repository.list_for_spot_day(spot.id, day)
        if not windows:
            raise NotFoundException(
                "no availability for this day", details={"date": target.isoformat(), "day": day}
            )

        occupied = []
        for booking in self.booking_repository.find_covering_date(
            spot.id, target, exclude_statuses=_IGNORED_STATUSES
        ):
            taken = occupied_range_on(booking, target)
            if taken is not None:
                occupied.append(taken)
        elapsed = minutes_now_in_tz(spot.timezone, now) if target == today else None

        slots: List[Dict[str, Any]] = []
        for window in windows:
            start = time_to_minutes(window.start_time)
            end = window_end_minutes(window.end_time)
            open_ended = end == MINUTES_PER_DAY
            cursor = start
            while cursor < end:
                slot_end = cursor + slot_length
                if slot_end > end:
                    # Only a window running to 23:59 keeps its trailing partial slot
                    if not open_ended:
                        break
                    slot_end = end
                booked = any(intervals_overlap(cursor, slot_end, s, e) for s, e in occupied)
                if elapsed is not None and slot_end <= elapsed:
                    booked = True
                slots.append(
                    {
                        "start": minutes_to_time_str(cursor),
                        "end": minutes_to_time_str(slot_end),
                        "booked": booked,
                    }
                )
                cursor = slot_end

        slots.sort(key=lambda slot: slot["start"])
        return {
            "spot_id": spot.id,
            "date": target,
            "day": day,
            "duration": slot_length,
            "slots": slots,
        }
