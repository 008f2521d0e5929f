# backend/app/services/time_change_service.py
"""
Time-change decisions for custom bookings.

A client's pending TimeChange can be accepted by the host (the booking takes
the new range and the request row is removed), denied by either party (the
request is kept as ``rejected``) or, while still pending, updated by the
client with a new range.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.constants import DEFAULT_PAGE_SIZE, MIN_CHANGE_NOTICE_HOURS
from ..core.exceptions import (
    BusinessRuleException,
    ForbiddenException,
    InsufficientNoticeException,
    NotFoundException,
    ValidationException,
)
from ..core.timezone_utils import hours_until
from ..models.booking import Booking, BookingStatus
from ..models.spot import Spot
from ..models.time_change import TimeChange, TimeChangeStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..schemas.booking import BookingTimeChangeRequest
from .base import BaseService
from .conflict_checker import BookingRange, ConflictChecker, ConflictPolicy
from .notification_service import NotificationService, NotificationType

logger = logging.getLogger(__name__)

OPEN_BOOKING_STATUSES = frozenset(
    {
        BookingStatus.REQUEST_PENDING.value,
        BookingStatus.PAYMENT_PENDING.value,
        BookingStatus.ACCEPTED.value,
    }
)


def proposed_range(time_change: TimeChange) -> BookingRange:
    return BookingRange(
        day=time_change.new_day,
        start_date=time_change.new_start_date,
        start_time=time_change.new_start_time,
        end_date=time_change.new_end_date,
        end_time=time_change.new_end_time,
    )


class TimeChangeService(BaseService):
    """Host/client decisions on pending time-change requests."""

    def __init__(
        self,
        db: Session,
        notification_service: Optional[NotificationService] = None,
        conflict_checker: Optional[ConflictChecker] = None,
    ):
        super().__init__(db)
        self.repository = RepositoryFactory.create_time_change_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.spot_repository = RepositoryFactory.create_spot_repository(db)
        self.notification_service = notification_service or NotificationService(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db)

    def _lock(self, time_change_id: str) -> tuple[TimeChange, Booking, Spot]:
        time_change = self.repository.get_by_id(time_change_id)
        if time_change is None:
            raise NotFoundException(
                "Time change not found", details={"time_change_id": time_change_id}
            )
        spot = self.spot_repository.get_for_update(time_change.spot_id)
        booking = self.booking_repository.get_by_id(time_change.booking_id)
        if spot is None or booking is None:
            raise NotFoundException(
                "Booking not found", details={"booking_id": time_change.booking_id}
            )
        self.db.refresh(time_change)
        return time_change, booking, spot

    @staticmethod
    def _require_pending(time_change: TimeChange) -> None:
        if time_change.status != TimeChangeStatus.PENDING.value:
            raise BusinessRuleException(
                f"Time change is not pending - current status: {time_change.status}"
            )

    @staticmethod
    def _require_open_booking(booking: Booking) -> None:
        if booking.status not in OPEN_BOOKING_STATUSES:
            raise BusinessRuleException(
                f"Booking time cannot be changed - current status: {booking.status}"
            )

    @BaseService.measure_operation("accept_time_change")
    def accept_time_change(
        self, host_id: str, time_change_id: str, *, now: Optional[datetime] = None
    ) -> Booking:
        """
        Apply the proposed range to the booking.

        Re-validates the range and checks it against other accepted bookings,
        excluding the booking being moved.
        """
        with self.transaction():
            time_change, booking, spot = self._lock(time_change_id)
            if time_change.host_id != host_id:
                raise ForbiddenException("Only the host can accept this time change")
            self._require_pending(time_change)
            self._require_open_booking(booking)

            new_range = proposed_range(time_change)
            start_at, end_at, _ = self.conflict_checker.validate_range(
                spot, new_range, booking.type, now
            )
            self.conflict_checker.ensure_no_conflict(
                spot, start_at, end_at, ConflictPolicy.ACCEPTED_ONLY, exclude_booking_id=booking.id
            )

            booking.day = new_range.day
            booking.start_date = new_range.start_date
            booking.start_time = new_range.start_time
            booking.end_date = new_range.end_date
            booking.end_time = new_range.end_time
            self.repository.delete_entity(time_change)

            self.notification_service.notify(
                booking.client_id,
                "Booking Time Change Accepted",
                f"Booking time change is accepted for {new_range.start_date.isoformat()} "
                f"at {new_range.start_time}",
                NotificationType.TIME_CHANGE,
                booking_id=booking.id,
                spot_id=spot.id,
                vehicle_id=booking.vehicle_id,
                data={"type": "time_change_accepted"},
            )

        prometheus_metrics.inc_booking_transition("time_change_accept", booking.type)
        return booking

    @BaseService.measure_operation("update_time_change")
    def update_time_change(
        self,
        client_id: str,
        time_change_id: str,
        change: BookingTimeChangeRequest,
        *,
        now: Optional[datetime] = None,
    ) -> TimeChange:
        """
        Client replaces the proposed range of a still-pending request.

        The booking must still be open and its current start at least 24 hours
        away.
        """
        new_range = change.to_range()
        with self.transaction():
            time_change, booking, spot = self._lock(time_change_id)
            if time_change.client_id != client_id:
                raise ForbiddenException("Only the client can update this time change")
            self._require_pending(time_change)
            self._require_open_booking(booking)
            remaining = hours_until(booking.start_at(), now)
            if remaining < MIN_CHANGE_NOTICE_HOURS:
                raise InsufficientNoticeException("changed", MIN_CHANGE_NOTICE_HOURS, remaining)

            self.conflict_checker.validate_range(spot, new_range, booking.type, now)

            time_change.new_day = new_range.day
            time_change.new_start_date = new_range.start_date
            time_change.new_start_time = new_range.start_time
            time_change.new_end_date = new_range.end_date
            time_change.new_end_time = new_range.end_time

            self.notification_service.notify(
                booking.host_id,
                "Booking Time Change Request Updated",
                f"Booking time change is requested from {booking.start_date.isoformat()} at "
                f"{booking.start_time}, to {new_range.start_date.isoformat()} at "
                f"{new_range.start_time}",
                NotificationType.TIME_CHANGE,
                booking_id=booking.id,
                spot_id=spot.id,
                vehicle_id=booking.vehicle_id,
                data={"type": "time_change_updated", "time_change_id": time_change.id},
            )

        return time_change

    @BaseService.measure_operation("deny_time_change")
    def deny_time_change(self, actor_id: str, time_change_id: str) -> TimeChange:
        """Either party rejects the request; the booking keeps its current range."""
        with self.transaction():
            time_change, booking, spot = self._lock(time_change_id)
            if actor_id not in (time_change.host_id, time_change.client_id):
                raise ForbiddenException("You don't have permission to deny this time change")
            self._require_pending(time_change)

            time_change.status = TimeChangeStatus.REJECTED.value
            self.notification_service.notify(
                booking.client_id,
                "Booking Time Change Denied",
                f"Booking time change is declined to {time_change.new_start_date.isoformat()} "
                f"at {time_change.new_start_time}",
                NotificationType.TIME_CHANGE,
                booking_id=booking.id,
                spot_id=spot.id,
                vehicle_id=booking.vehicle_id,
                data={"type": "time_change_denied", "time_change_id": time_change.id},
            )

        prometheus_metrics.inc_booking_transition("time_change_deny", booking.type)
        return time_change

    def query_time_changes(
        self,
        user_id: str,
        *,
        booking_id: Optional[str] = None,
        spot_id: Optional[str] = None,
        as_host: bool = True,
        status: Optional[str] = TimeChangeStatus.PENDING.value,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> List[TimeChange]:
        """Time changes where ``user_id`` is host (default) or client."""
        if status is not None and status not in {s.value for s in TimeChangeStatus}:
            raise ValidationException("invalid time change status", details={"status": status})
        if page < 1 or limit < 1:
            raise ValidationException("page and limit must be positive integers")
        filters = {
            "host_id" if as_host else "client_id": user_id,
            "booking_id": booking_id,
            "spot_id": spot_id,
        }
        return self.repository.query(filters, status=status, skip=(page - 1) * limit, limit=limit)
