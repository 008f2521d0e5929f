# backend/app/services/booking_log_service.py
"""
Check-in / check-out records for bookings.

Each booking has one BookingLog with four entries (user/host x in/out). The
client writes the ``user_*`` entries and the host the ``host_*`` entries.
Either checkout completes the booking; the host cannot check out before the
booking's end instant in the spot's timezone.
"""

from datetime import datetime
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import BusinessRuleException, ForbiddenException, NotFoundException
from ..core.timezone_utils import utcnow
from ..models.booking import Booking, BookingStatus
from ..models.booking_log import BookingLog
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from .base import BaseService
from .notification_service import NotificationService, NotificationType

logger = logging.getLogger(__name__)

_LOGGABLE_STATUSES = (BookingStatus.ACCEPTED.value, BookingStatus.COMPLETED.value)


class BookingLogService(BaseService):
    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        super().__init__(db)
        self.repository = RepositoryFactory.create_booking_log_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.notification_service = notification_service or NotificationService(db)

    def _load_booking(self, booking_id: str) -> Booking:
        booking = self.booking_repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        return booking

    def _record(
        self,
        actor_id: str,
        booking_id: str,
        entry: str,
        location: Any,
        *,
        now: Optional[datetime],
    ) -> BookingLog:
        """Write one log entry, completing the booking on checkout."""
        as_host = entry.startswith("host_")
        checkout = entry.endswith("checkout")
        current = now or utcnow()

        with self.transaction():
            booking = self._load_booking(booking_id)
            owner_id = booking.host_id if as_host else booking.client_id
            if actor_id != owner_id:
                raise ForbiddenException("user unauthorized!")
            if booking.status not in _LOGGABLE_STATUSES:
                raise BusinessRuleException(
                    f"Booking cannot be checked in or out - current status: {booking.status}"
                )
            if entry == "host_checkout" and current < booking.end_at():
                raise BusinessRuleException(
                    "Cannot checkout before booking end date and time",
                    details={"end": booking.end_at().isoformat()},
                )

            log = self.repository.get_by_booking(booking.id)
            if log is None:
                log = self.repository.create(
                    booking_id=booking.id,
                    client_id=booking.client_id,
                    host_id=booking.host_id,
                )
            stamp = current.isoformat()
            # Reassign the whole dict so the JSON column is flagged dirty
            setattr(log, entry, {"done": True, "date_time": stamp, "location": location})
            if checkout:
                booking.status = BookingStatus.COMPLETED.value

            verb = "out" if checkout else "in"
            self.notification_service.notify(
                booking.client_id if as_host else booking.host_id,
                f"Vehicle Checked {verb.capitalize()}",
                f"Vehicle checked {verb} at {stamp}",
                NotificationType.BOOKING_LOG,
                booking_id=booking.id,
                spot_id=booking.spot_id,
                vehicle_id=booking.vehicle_id,
                data={"type": entry, "date_time": stamp},
            )

        if checkout:
            prometheus_metrics.inc_booking_transition("complete", booking.type)
        self.logger.info(f"Recorded {entry} for booking {booking.id}")
        return log

    @BaseService.measure_operation("user_checkin")
    def user_checkin(
        self, client_id: str, booking_id: str, location: Any = None, *, now: Optional[datetime] = None
    ) -> BookingLog:
        return self._record(client_id, booking_id, "user_checkin", location, now=now)

    @BaseService.measure_operation("host_checkin")
    def host_checkin(
        self, host_id: str, booking_id: str, location: Any = None, *, now: Optional[datetime] = None
    ) -> BookingLog:
        return self._record(host_id, booking_id, "host_checkin", location, now=now)

    @BaseService.measure_operation("user_checkout")
    def user_checkout(
        self, client_id: str, booking_id: str, location: Any = None, *, now: Optional[datetime] = None
    ) -> BookingLog:
        return self._record(client_id, booking_id, "user_checkout", location, now=now)

    @BaseService.measure_operation("host_checkout")
    def host_checkout(
        self, host_id: str, booking_id: str, location: Any = None, *, now: Optional[datetime] = None
    ) -> BookingLog:
        return self._record(host_id, booking_id, "host_checkout", location, now=now)

    def get_booking_log(self, user_id: str, booking_id: str) -> Dict[str, Any]:
        booking = self._load_booking(booking_id)
        if not booking.is_participant(user_id):
            raise ForbiddenException("user unauthorized!")
        log = self.repository.get_by_booking(booking.id)
        if log is None:
            raise NotFoundException("booking log not found!", details={"booking_id": booking_id})
        return log.to_dict()

