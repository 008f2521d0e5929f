# backend/app/services/booking_service.py
"""
Booking Service for the Parkspace platform.

Owns the main booking state machine:

    create (normal)  -> payment-pending   (payment intent opened immediately)
    create (custom)  -> request-pending   (host must accept first)
    accept           -> payment-pending   (payment intent opened now)
    deny             -> row deleted       (only before acceptance)
    cancel           -> cancelled         (24 hours notice required)
    change time      -> booking updated (normal) or TimeChange created (custom)

Every mutation runs in one transaction that first locks the spot row, so the
"read existing bookings, check, write" sequence cannot interleave with
another writer on the same spot. Processor calls happen inside that
transaction: a Stripe failure rolls the booking back with it.
"""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session
import ulid

from ..core.constants import MIN_CHANGE_NOTICE_HOURS
from ..core.enums import ActorRole
from ..core.exceptions import (
    BusinessRuleException,
    ConflictException,
    ForbiddenException,
    InsufficientNoticeException,
    NotFoundException,
    ValidationException,
)
from ..core.timezone_utils import hours_until, utcnow
from ..models.booking import Booking, BookingStatus, BookingType, CanceledBy
from ..models.payment import Payment, PaymentStatus
from ..models.spot import Spot
from ..models.time_change import TimeChange, TimeChangeStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..schemas.booking import BookingCreate, BookingTimeChangeRequest
from .base import BaseService
from .conflict_checker import BookingRange, ConflictChecker, ConflictPolicy, policy_for
from .notification_service import NotificationService, NotificationType
from .pricing_service import PricingService
from .stripe_service import StripeService

logger = logging.getLogger(__name__)


@dataclass
class BookingResult:
    """A booking plus the payment opened for it, if any."""

    booking: Booking
    payment: Optional[Payment] = None

    @property
    def client_secret(self) -> Optional[str]:
        return self.payment.client_secret if self.payment else None


def _display_date(booking: Booking) -> str:
    return booking.start_date.isoformat()


class BookingService(BaseService):
    """
    Service layer for booking operations.

    Collaborators (Stripe, notifications, conflict checks) can be injected;
    defaults are built from the session.
    """

    def __init__(
        self,
        db: Session,
        notification_service: Optional[NotificationService] = None,
        stripe_service: Optional[StripeService] = None,
        conflict_checker: Optional[ConflictChecker] = None,
    ):
        super().__init__(db)
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.spot_repository = RepositoryFactory.create_spot_repository(db)
        self.vehicle_repository = RepositoryFactory.create_vehicle_repository(db)
        self.payment_repository = RepositoryFactory.create_payment_repository(db)
        self.time_change_repository = RepositoryFactory.create_time_change_repository(db)
        self.notification_service = notification_service or NotificationService(db)
        self.stripe_service = stripe_service or StripeService()
        self.conflict_checker = conflict_checker or ConflictChecker(db)

    # ------------------------------------------------------------------ #
    # Shared helpers
    # ------------------------------------------------------------------ #

    def _lock_spot(self, spot_id: str) -> Spot:
        spot = self.spot_repository.get_for_update(spot_id)
        if spot is None:
            raise NotFoundException("Spot not found", details={"spot_id": spot_id})
        return spot

    def _get_booking(self, booking_id: str) -> Booking:
        booking = self.repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        return booking

    def _lock_booking(self, booking_id: str) -> tuple[Booking, Spot]:
        """Load the booking, then lock its spot so concurrent writers serialize."""
        booking = self._get_booking(booking_id)
        spot = self._lock_spot(booking.spot_id)
        self.db.refresh(booking)
        return booking, spot

    def open_payment(self, booking: Booking) -> Payment:
        """
        Open a PaymentIntent for the booking's stored gross and record it.

        Must run inside the caller's transaction.
        """
        fees = PricingService.fee_breakdown(booking.gross_amount)
        payment_id = str(ulid.ULID())
        intent = self.stripe_service.create_payment_intent(
            PricingService.to_minor_units(fees.total_amount),
            metadata={
                "booking_id": booking.id,
                "user_id": booking.client_id,
                "host_id": booking.host_id,
            },
            idempotency_key=f"pi:{booking.id}:{payment_id}",
        )
        return self.payment_repository.create(
            id=payment_id,
            booking_id=booking.id,
            client_id=booking.client_id,
            host_id=booking.host_id,
            spot_id=booking.spot_id,
            gross_amount=fees.gross_amount,
            platform_fee=fees.platform_fee,
            stripe_fee=fees.stripe_fee,
            tax_fee=fees.tax_fee,
            total_amount=fees.total_amount,
            payment_intent_id=intent["id"],
            client_secret=intent["client_secret"],
            status=PaymentStatus.PENDING.value,
        )

    def cancel_pending_payments(self, booking: Booking) -> int:
        """Release open payment intents for a booking; returns how many were cancelled."""
        cancelled = 0
        for payment in self.payment_repository.find_for_booking(
            booking.id, status=PaymentStatus.PENDING.value
        ):
            self.stripe_service.cancel_payment_intent(
                payment.payment_intent_id,
                idempotency_key=f"pi-cancel:{payment.payment_intent_id}",
            )
            payment.status = PaymentStatus.CANCELLED.value
            cancelled += 1
        if cancelled:
            self.db.flush()
        return cancelled

    def _ensure_notice(self, booking: Booking, action: str, now: Optional[datetime]) -> None:
        remaining = hours_until(booking.start_at(), now)
        if remaining < MIN_CHANGE_NOTICE_HOURS:
            raise InsufficientNoticeException(action, MIN_CHANGE_NOTICE_HOURS, remaining)

    # ------------------------------------------------------------------ #
    # Create
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self, client_id: str, booking_data: BookingCreate, *, now: Optional[datetime] = None
    ) -> BookingResult:
        """
        Create a booking for ``client_id``.

        Validation order: spot exists, weekday label, vehicle ownership, not
        the spot's own host, future start, end after start, duration bounds,
        submitted price, availability containment (normal only), then
        conflicts.

        Raises:
            NotFoundException: Spot or vehicle not found
            ValidationException: Any field-level or rule violation
            BookingConflictException: Overlap with an existing booking
            ExternalServiceException: Stripe rejected the payment intent
        """
        booking_range = booking_data.to_range()
        self.log_operation(
            "create_booking",
            client_id=client_id,
            spot_id=booking_data.spot_id,
            type=booking_data.type,
            start_date=str(booking_range.start_date),
        )

        with self.transaction():
            spot = self._lock_spot(booking_data.spot_id)
            self.conflict_checker.validate_day_matches(booking_range.day, booking_range.start_date)

            if self.vehicle_repository.get_owned(booking_data.vehicle_id, client_id) is None:
                raise NotFoundException(
                    "Vehicle not found", details={"vehicle_id": booking_data.vehicle_id}
                )
            if spot.host_id == client_id:
                raise ValidationException("You cannot book your own spot")

            start_at, end_at, minutes = self.conflict_checker.validate_range(
                spot, booking_range, booking_data.type, now
            )
            gross = PricingService.verify_gross(booking_data.gross_amount, spot.hourly_rate, minutes)

            if booking_data.type == BookingType.NORMAL.value:
                self.conflict_checker.ensure_fits_availability(spot.id, booking_range)
            self.conflict_checker.ensure_no_conflict(
                spot, start_at, end_at, policy_for(booking_data.type)
            )

            is_normal = booking_data.type == BookingType.NORMAL.value
            booking = self.repository.create(
                client_id=client_id,
                host_id=spot.host_id,
                spot_id=spot.id,
                vehicle_id=booking_data.vehicle_id,
                day=booking_range.day,
                start_date=booking_range.start_date,
                start_time=booking_range.start_time,
                end_date=booking_range.end_date,
                end_time=booking_range.end_time,
                type=booking_data.type,
                gross_amount=gross,
                status=(
                    BookingStatus.PAYMENT_PENDING.value
                    if is_normal
                    else BookingStatus.REQUEST_PENDING.value
                ),
            )

            payment: Optional[Payment] = None
            if is_normal:
                payment = self.open_payment(booking)
            else:
                self.notification_service.notify(
                    booking.host_id,
                    "New Booking Request",
                    f"New Booking request for {_display_date(booking)} at "
                    f"{booking.start_time}, go to requests",
                    NotificationType.BOOKING,
                    booking_id=booking.id,
                    spot_id=spot.id,
                    vehicle_id=booking.vehicle_id,
                    data={"type": "booking_request"},
                )

        prometheus_metrics.inc_booking_transition("create", booking.type)
        self.logger.info(
            f"Created {booking.type} booking {booking.id} on spot {spot.id} status={booking.status}"
        )
        return BookingResult(booking=booking, payment=payment)

    # ------------------------------------------------------------------ #
    # Host decisions
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("accept_booking")
    def accept_booking(
        self, host_id: str, booking_id: str, *, now: Optional[datetime] = None
    ) -> BookingResult:
        """
        Host accepts a request-pending booking and a payment intent is opened.

        Competing requests may target the same range, so conflicts are checked
        again against accepted and payment-pending bookings, excluding this one.
        """
        with self.transaction():
            booking, spot = self._lock_booking(booking_id)
            if booking.host_id != host_id:
                raise ForbiddenException("Only the host can accept this booking")
            if booking.status == BookingStatus.PAYMENT_PENDING.value:
                raise ConflictException(
                    "Booking request already accepted", details={"booking_id": booking.id}
                )
            if booking.status != BookingStatus.REQUEST_PENDING.value:
                raise BusinessRuleException(
                    f"Booking cannot be accepted - current status: {booking.status}"
                )

            start_at, end_at = booking.start_at(), booking.end_at()
            self.conflict_checker.validate_time_range(start_at, end_at, now)
            self.conflict_checker.ensure_no_conflict(
                spot, start_at, end_at, ConflictPolicy.CUSTOM, exclude_booking_id=booking.id
            )

            booking.status = BookingStatus.PAYMENT_PENDING.value
            payment = self.open_payment(booking)
            self.notification_service.notify(
                booking.client_id,
                "Booking Request Accepted",
                f"Booking request accepted for {_display_date(booking)} at "
                f"{booking.start_time}, pay to confirm",
                NotificationType.BOOKING,
                booking_id=booking.id,
                spot_id=spot.id,
                vehicle_id=booking.vehicle_id,
                data={"type": "booking_accepted"},
            )

        prometheus_metrics.inc_booking_transition("accept", booking.type)
        return BookingResult(booking=booking, payment=payment)

    @BaseService.measure_operation("deny_booking")
    def deny_booking(self, actor_id: str, booking_id: str) -> Dict[str, Any]:
        """
        Delete a booking that has not been accepted yet.

        Either party may deny. Any open payment intent is cancelled first.
        """
        with self.transaction():
            booking, spot = self._lock_booking(booking_id)
            if not booking.is_participant(actor_id):
                raise ForbiddenException("You don't have permission to deny this booking")
            if booking.status not in (
                BookingStatus.REQUEST_PENDING.value,
                BookingStatus.PAYMENT_PENDING.value,
            ):
                raise BusinessRuleException(
                    f"Booking cannot be denied - current status: {booking.status}"
                )

            self.cancel_pending_payments(booking)
            summary = {
                "booking_id": booking.id,
                "client_id": booking.client_id,
                "start_date": _display_date(booking),
                "start_time": booking.start_time,
            }
            booking_type = booking.type
            self.notification_service.notify(
                booking.client_id,
                "Booking Request Declined",
                f"Booking request declined for {summary['start_date']} at "
                f"{summary['start_time']}, try different time or spot",
                NotificationType.BOOKING,
                spot_id=spot.id,
                data={"type": "booking_declined", "booking_id": booking.id},
            )
            self.repository.delete_entity(booking)

        prometheus_metrics.inc_booking_transition("deny", booking_type)
        return {"deleted": True, **summary}

    # ------------------------------------------------------------------ #
    # Cancel
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self, actor_id: str, booking_id: str, *, now: Optional[datetime] = None
    ) -> Booking:
        """
        Cancel a booking at least 24 hours before it starts.

        ``canceled_by`` records which party acted; the other party is notified.
        A pending time-change request on the booking is rejected with it.
        Settlement (refund, penalty) is derived later from this record.
        """
        with self.transaction():
            booking, spot = self._lock_booking(booking_id)
            if not booking.is_participant(actor_id):
                raise ForbiddenException("You don't have permission to cancel this booking")
            if booking.status == BookingStatus.CANCELLED.value:
                raise NotFoundException(
                    "Booking already cancelled", details={"booking_id": booking.id}
                )
            if booking.status in (BookingStatus.COMPLETED.value, BookingStatus.REJECTED.value):
                raise BusinessRuleException(
                    f"Booking cannot be cancelled - current status: {booking.status}"
                )
            self._ensure_notice(booking, "cancelled", now)

            self.cancel_pending_payments(booking)
            pending_change = self.time_change_repository.get_pending_for_booking(booking.id)
            if pending_change is not None:
                pending_change.status = TimeChangeStatus.REJECTED.value
            by_client = actor_id == booking.client_id
            booking.status = BookingStatus.CANCELLED.value
            booking.canceled_by = (CanceledBy.CLIENT if by_client else CanceledBy.HOST).value
            booking.cancelled_at = now or utcnow()

            self.notification_service.notify(
                booking.host_id if by_client else booking.client_id,
                "Booking Cancelled",
                f"{'Client' if by_client else 'Host'} has cancelled the booking scheduled for "
                f"{_display_date(booking)} at {booking.start_time}",
                NotificationType.BOOKING,
                booking_id=booking.id,
                spot_id=spot.id,
                vehicle_id=booking.vehicle_id,
                data={"type": "booking_cancelled", "canceled_by": booking.canceled_by},
            )

        prometheus_metrics.inc_booking_transition("cancel", booking.type)
        self.logger.info(f"Booking {booking.id} cancelled by {booking.canceled_by}")
        return booking

    # ------------------------------------------------------------------ #
    # Time changes
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("change_booking_time")
    def change_time(
        self,
        client_id: str,
        booking_id: str,
        change: BookingTimeChangeRequest,
        *,
        now: Optional[datetime] = None,
    ) -> BookingResult | TimeChange:
        """
        Move a booking to a new range.

        Normal bookings are rewritten in place: the duration must match what
        was paid, the new range must fit availability and not collide with
        accepted bookings. Custom bookings get a pending TimeChange for the
        host to decide on.
        """
        new_range = change.to_range()
        with self.transaction():
            booking, spot = self._lock_booking(booking_id)
            if booking.client_id != client_id:
                raise ForbiddenException("Only the client can change this booking's time")
            if booking.status in (
                BookingStatus.CANCELLED.value,
                BookingStatus.COMPLETED.value,
                BookingStatus.REJECTED.value,
            ):
                raise BusinessRuleException(
                    f"Booking time cannot be changed - current status: {booking.status}"
                )
            self._ensure_notice(booking, "changed", now)

            start_at, end_at, minutes = self.conflict_checker.validate_range(
                spot, new_range, booking.type, now
            )

            if booking.type == BookingType.NORMAL.value:
                result = self._change_normal_time(booking, spot, new_range, start_at, end_at, minutes)
            else:
                result = self._request_custom_time_change(booking, new_range)

        prometheus_metrics.inc_booking_transition("change_time", booking.type)
        return result

    def _change_normal_time(
        self,
        booking: Booking,
        spot: Spot,
        new_range: BookingRange,
        start_at: datetime,
        end_at: datetime,
        minutes: int,
    ) -> BookingResult:
        paid_minutes = booking.duration_minutes()
        if minutes != paid_minutes:
            raise ValidationException(
                "new time must keep the booked duration",
                code="DURATION_MISMATCH",
                details={"booked_minutes": paid_minutes, "requested_minutes": minutes},
            )
        self.conflict_checker.ensure_fits_availability(spot.id, new_range)
        self.conflict_checker.ensure_no_conflict(
            spot, start_at, end_at, ConflictPolicy.ACCEPTED_ONLY, exclude_booking_id=booking.id
        )

        old_date, old_time = _display_date(booking), booking.start_time
        self._apply_range(booking, new_range)
        self.notification_service.notify(
            booking.host_id,
            "Booking Time Changed",
            f"Booking time for {old_date} at {old_time}, has been changed to "
            f"{new_range.start_date.isoformat()} at {new_range.start_time}",
            NotificationType.TIME_CHANGE,
            booking_id=booking.id,
            spot_id=spot.id,
            vehicle_id=booking.vehicle_id,
            data={"type": "booking_time_changed"},
        )
        return BookingResult(booking=booking)

    def _request_custom_time_change(self, booking: Booking, new_range: BookingRange) -> TimeChange:
        if self.time_change_repository.get_pending_for_booking(booking.id) is not None:
            raise ConflictException(
                "Time change request already exists", details={"booking_id": booking.id}
            )
        time_change = self.time_change_repository.create(
            booking_id=booking.id,
            spot_id=booking.spot_id,
            client_id=booking.client_id,
            host_id=booking.host_id,
            old_day=booking.day,
            old_start_date=booking.start_date,
            old_start_time=booking.start_time,
            old_end_date=booking.end_date,
            old_end_time=booking.end_time,
            new_day=new_range.day,
            new_start_date=new_range.start_date,
            new_start_time=new_range.start_time,
            new_end_date=new_range.end_date,
            new_end_time=new_range.end_time,
            status=TimeChangeStatus.PENDING.value,
        )
        self.notification_service.notify(
            booking.host_id,
            "Booking Time Change Request",
            f"Booking time change is requested from {_display_date(booking)} at "
            f"{booking.start_time}, to {new_range.start_date.isoformat()} at {new_range.start_time}",
            NotificationType.TIME_CHANGE,
            booking_id=booking.id,
            spot_id=booking.spot_id,
            vehicle_id=booking.vehicle_id,
            data={"type": "time_change_request", "time_change_id": time_change.id},
        )
        return time_change

    @staticmethod
    def _apply_range(booking: Booking, new_range: BookingRange) -> None:
        booking.day = new_range.day
        booking.start_date = new_range.start_date
        booking.start_time = new_range.start_time
        booking.end_date = new_range.end_date
        booking.end_time = new_range.end_time

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get_booking(self, user_id: str, booking_id: str) -> Booking:
        booking = self._get_booking(booking_id)
        if not booking.is_participant(user_id):
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        return booking

    @BaseService.measure_operation("list_bookings")
    def list_bookings(
        self,
        user_id: str,
        role: ActorRole = ActorRole.CLIENT,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> List[Booking]:
        if status is not None and status not in {s.value for s in BookingStatus}:
            raise ValidationException(
                "invalid booking status", details={"status": status}
            )
        return self.repository.list_for_user(user_id, role, status, skip=skip, limit=limit)

    @BaseService.measure_operation("list_pending_actions")
    def list_pending_actions(
        self, user_id: str, *, now: Optional[datetime] = None
    ) -> Dict[str, List[Any]]:
        """
        Everything waiting on ``user_id``: requests on their spots, accepted
        custom requests they still need to pay, and time changes to decide.

        Items whose booking already started are left out.
        """
        current = now or utcnow()

        def upcoming(booking: Booking) -> bool:
            return booking.start_at() > current

        requests = [b for b in self.repository.find_request_pending_for_host(user_id) if upcoming(b)]
        awaiting_payment = [
            b
            for b in self.repository.find_custom_payment_pending_for_client(user_id)
            if upcoming(b)
        ]
        time_changes = [
            tc
            for tc in self.time_change_repository.query(
                {"host_id": user_id}, status=TimeChangeStatus.PENDING.value, skip=0, limit=100
            )
            if tc.booking is not None and upcoming(tc.booking)
        ]
        return {
            "booking_requests": requests,
            "awaiting_payment": awaiting_payment,
            "time_change_requests": time_changes,
        }
