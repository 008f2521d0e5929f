# backend/app/services/availability_service.py
"""
Availability Service for the Parkspace platform.

Manages a spot's recurring weekly windows. Windows on the same weekday must
not overlap; each write loads the day's windows under a spot lock and applies
the caller's overlap policy:

- REJECT ("false"): any overlap aborts the whole write with a conflict
- REPLACE ("true"): overlapping windows are deleted first
- IGNORE ("ignore"): days with overlaps are skipped and reported

Adjacent windows (one ending exactly where the next starts) do not overlap.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.enums import DayOfWeek, OverlapPolicy
from ..core.exceptions import (
    AvailabilityOverlapException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..models.availability import Availability
from ..models.spot import Spot
from ..repositories import RepositoryFactory
from ..utils.time_utils import (
    normalize_time_format,
    time_to_minutes,
    validate_day,
    validate_time_str,
    window_end_minutes,
)
from .base import BaseService

logger = logging.getLogger(__name__)


def sort_windows(windows: Sequence[Availability]) -> List[Availability]:
    """Calendar order (Sun..Sat), then by start time."""
    return sorted(
        windows,
        key=lambda w: (DayOfWeek(w.day).sort_index, time_to_minutes(w.start_time)),
    )


def _window_range(start_time: str, end_time: str) -> Tuple[int, int]:
    return time_to_minutes(start_time), window_end_minutes(end_time)


def _overlaps(new_range: Tuple[int, int], window: Availability) -> bool:
    existing_start, existing_end = _window_range(window.start_time, window.end_time)
    return new_range[0] < existing_end and new_range[1] > existing_start


class AvailabilityService(BaseService):
    """Recurring weekly availability windows for spots."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.spot_repository = RepositoryFactory.create_spot_repository(db)
        self.repository = RepositoryFactory.create_availability_repository(db)

    def _lock_owned_spot(self, spot_id: str, host_id: str) -> Spot:
        spot = self.spot_repository.get_for_update(spot_id)
        if spot is None:
            raise NotFoundException("Spot not found", details={"spot_id": spot_id})
        if spot.host_id != host_id:
            raise ForbiddenException("Only the spot owner can manage its availability")
        return spot

    @staticmethod
    def _validate_times(start_time: str, end_time: str) -> Tuple[str, str]:
        start = validate_time_str(normalize_time_format(start_time), "start_time")
        end = validate_time_str(normalize_time_format(end_time), "end_time")
        if window_end_minutes(end) <= time_to_minutes(start):
            raise ValidationException(
                "end time must be after start time",
                details={"start_time": start, "end_time": end},
            )
        return start, end

    @staticmethod
    def _parse_policy(value: Any, default: OverlapPolicy) -> OverlapPolicy:
        if value is None:
            return default
        if isinstance(value, bool):
            return OverlapPolicy.REPLACE if value else OverlapPolicy.REJECT
        try:
            return OverlapPolicy(str(value).lower())
        except ValueError as exc:
            raise ValidationException(
                "overlap policy must be one of 'true', 'false' or 'ignore'",
                details={"overlap_policy": value},
            ) from exc

    def list_windows(self, spot_id: str) -> List[Dict[str, Any]]:
        if self.spot_repository.get_by_id(spot_id) is None:
            raise NotFoundException("Spot not found", details={"spot_id": spot_id})
        return [w.to_dict() for w in sort_windows(self.repository.list_for_spot(spot_id))]

    @BaseService.measure_operation("add_availability")
    def add_window(
        self,
        host_id: str,
        spot_id: str,
        day: str,
        start_time: str,
        end_time: str,
        similar_days: Optional[Sequence[str]] = None,
        overlap_policy: Any = None,
    ) -> Dict[str, Any]:
        """
        Create a window on ``day`` and each of ``similar_days``.

        Returns created/replaced/ignored counts and the refreshed window list.
        """
        primary = validate_day(day)
        extra_days = [validate_day(d, "similar_days") for d in (similar_days or [])]
        start, end = self._validate_times(start_time, end_time)
        policy = self._parse_policy(overlap_policy, OverlapPolicy.REJECT)

        target_days: List[DayOfWeek] = []
        for candidate in [primary, *extra_days]:
            if candidate not in target_days:
                target_days.append(candidate)

        new_range = _window_range(start, end)

        with self.transaction():
            self._lock_owned_spot(spot_id, host_id)

            overlaps_by_day: Dict[str, List[Availability]] = {}
            for target in target_days:
                colliding = [
                    w
                    for w in self.repository.list_for_spot_day(spot_id, target.value)
                    if _overlaps(new_range, w)
                ]
                if colliding:
                    overlaps_by_day[target.value] = colliding

            if overlaps_by_day and policy == OverlapPolicy.REJECT:
                raise AvailabilityOverlapException(
                    overlapping_days=list(overlaps_by_day.keys()),
                    overlapping_availabilities={
                        d: [w.to_dict() for w in windows] for d, windows in overlaps_by_day.items()
                    },
                    new_availability={
                        "days": [d.value for d in target_days],
                        "start_time": start,
                        "end_time": end,
                    },
                )

            replaced = 0
            ignored_days: List[str] = []
            created = 0
            for target in target_days:
                colliding = overlaps_by_day.get(target.value, [])
                if colliding and policy == OverlapPolicy.IGNORE:
                    ignored_days.append(target.value)
                    continue
                if colliding:
                    replaced += self.repository.delete_many(w.id for w in colliding)
                self.repository.create(
                    spot_id=spot_id, day=target.value, start_time=start, end_time=end
                )
                created += 1

            windows = sort_windows(self.repository.list_for_spot(spot_id))

        self.log_operation(
            "add_availability",
            spot_id=spot_id,
            created=created,
            replaced=replaced,
            ignored=len(ignored_days),
        )
        return {
            "created": created,
            "replaced": replaced,
            "ignored_days": ignored_days,
            "ignored_count": len(ignored_days),
            "availabilities": [w.to_dict() for w in windows],
        }

    @BaseService.measure_operation("update_availability")
    def update_window(
        self,
        host_id: str,
        spot_id: str,
        availability_id: str,
        day: str,
        start_time: str,
        end_time: str,
        overlap_policy: Any = None,
    ) -> Dict[str, Any]:
        """Move or resize a window; only REPLACE resolves overlaps, anything else conflicts."""
        target = validate_day(day)
        start, end = self._validate_times(start_time, end_time)
        policy = self._parse_policy(overlap_policy, OverlapPolicy.REJECT)
        new_range = _window_range(start, end)

        with self.transaction():
            self._lock_owned_spot(spot_id, host_id)
            window = self.repository.get_for_spot(availability_id, spot_id)
            if window is None:
                raise NotFoundException(
                    "Availability not found", details={"availability_id": availability_id}
                )

            colliding = [
                w
                for w in self.repository.list_for_spot_day(
                    spot_id, target.value, exclude_id=availability_id
                )
                if _overlaps(new_range, w)
            ]
            replaced = 0
            if colliding:
                if policy != OverlapPolicy.REPLACE:
                    raise AvailabilityOverlapException(
                        overlapping_days=[target.value],
                        overlapping_availabilities={
                            target.value: [w.to_dict() for w in colliding]
                        },
                        new_availability={
                            "id": availability_id,
                            "day": target.value,
                            "start_time": start,
                            "end_time": end,
                        },
                    )
                replaced = self.repository.delete_many(w.id for w in colliding)

            window.day = target.value
            window.start_time = start
            window.end_time = end
            self.repository.flush()
            result = window.to_dict()

        self.log_operation("update_availability", availability_id=availability_id, replaced=replaced)
        return {"availability": result, "replaced": replaced}

    @BaseService.measure_operation("remove_availability")
    def remove_window(self, host_id: str, spot_id: str, availability_id: str) -> None:
        with self.transaction():
            self._lock_owned_spot(spot_id, host_id)
            window = self.repository.get_for_spot(availability_id, spot_id)
            if window is None:
                raise NotFoundException(
                    "Availability not found", details={"availability_id": availability_id}
                )
            self.repository.delete_entity(window)
        self.log_operation("remove_availability", availability_id=availability_id)
