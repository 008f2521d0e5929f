# backend/app/services/payment_service.py
"""
Payment Service for the Parkspace platform.

Drives bookings out of ``payment-pending``:

- confirm: Stripe reports the intent succeeded -> Payment succeeded, booking accepted
- fail: the client reports a failed attempt -> Payment failed, booking stays pending
- refresh: a stale intent is replaced with a new one for the same total
- webhooks: the same transitions driven by Stripe, plus transfer events for payouts

Acceptance re-checks the spot's accepted bookings under the spot lock, since
two payment-pending normal bookings may overlap and only the first to pay wins.
A later payer whose charge already went through is refunded and their booking
cancelled, so the webhook can be acknowledged.
"""

from datetime import date, datetime, time
import logging
from typing import Any, Dict, List, Optional

import pytz
from sqlalchemy.orm import Session

from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.enums import ActorRole
from ..core.exceptions import (
    BookingConflictException,
    BusinessRuleException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..core.timezone_utils import utcnow
from ..models.booking import Booking, BookingStatus, CanceledBy
from ..models.payment import Payment, PaymentStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from .base import BaseService
from .conflict_checker import ConflictChecker, ConflictPolicy
from .notification_service import NotificationService, NotificationType
from .payout_service import PayoutService
from .pricing_service import PricingService
from .stripe_service import StripeService

logger = logging.getLogger(__name__)

# Intent states that can no longer be paid and need a fresh intent
_STALE_INTENT_STATUSES = {"requires_payment_method", "canceled"}


class PaymentService(BaseService):
    """Payment confirmation, failure, refresh and Stripe webhooks."""

    def __init__(
        self,
        db: Session,
        stripe_service: Optional[StripeService] = None,
        notification_service: Optional[NotificationService] = None,
        payout_service: Optional[PayoutService] = None,
    ):
        super().__init__(db)
        self.repository = RepositoryFactory.create_payment_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.spot_repository = RepositoryFactory.create_spot_repository(db)
        self.stripe_service = stripe_service or StripeService()
        self.notification_service = notification_service or NotificationService(db)
        self.payout_service = payout_service or PayoutService(
            db, stripe_service=self.stripe_service, notification_service=self.notification_service
        )
        self.conflict_checker = ConflictChecker(db)

    def _load_for_client(self, client_id: str, payment_id: str, booking_id: str) -> Payment:
        payment = self.repository.get_by_id(payment_id)
        if payment is None:
            raise NotFoundException("payment not found", details={"payment_id": payment_id})
        if payment.booking_id != booking_id:
            raise NotFoundException("booking payment not verified", details={"booking_id": booking_id})
        if payment.client_id != client_id:
            raise ForbiddenException("You don't have permission to access this payment")
        return payment

    def _accept_paid_booking(self, payment: Payment) -> Booking:
        """
        Mark the payment succeeded and accept its booking. Caller owns the transaction.

        If another booking was accepted for the range first, the charge is
        refunded instead and the booking cancelled on the platform's behalf.
        """
        spot = self.spot_repository.get_for_update(payment.spot_id)
        booking = self.booking_repository.get_by_id(payment.booking_id)
        if spot is None or booking is None:
            raise NotFoundException("booking not found", details={"booking_id": payment.booking_id})
        self.db.refresh(booking)

        if payment.status == PaymentStatus.REFUNDED.value:
            return booking
        if booking.status == BookingStatus.ACCEPTED.value:
            payment.status = PaymentStatus.SUCCEEDED.value
            payment.error_message = None
            return booking
        if booking.status != BookingStatus.PAYMENT_PENDING.value:
            raise BusinessRuleException(
                f"Booking cannot be confirmed - current status: {booking.status}"
            )

        conflict = self.conflict_checker.find_conflict(
            spot,
            booking.start_at(),
            booking.end_at(),
            ConflictPolicy.ACCEPTED_ONLY,
            exclude_booking_id=booking.id,
        )
        if conflict is not None:
            return self._refund_lost_booking(payment, booking, conflict.id)

        payment.status = PaymentStatus.SUCCEEDED.value
        payment.error_message = None
        booking.status = BookingStatus.ACCEPTED.value
        self.notification_service.notify(
            booking.host_id,
            "New Booking",
            f"New booking confirmed for {booking.start_date.isoformat()} at {booking.start_time}",
            NotificationType.BOOKING,
            booking_id=booking.id,
            spot_id=spot.id,
            vehicle_id=booking.vehicle_id,
            data={"type": "booking_confirmed"},
        )
        prometheus_metrics.inc_booking_transition("payment_confirmed", booking.type)
        return booking

    def _refund_lost_booking(
        self, payment: Payment, booking: Booking, conflicting_booking_id: str
    ) -> Booking:
        self.stripe_service.refund_payment_intent(
            payment.payment_intent_id,
            idempotency_key=f"refund:{payment.payment_intent_id}",
        )
        payment.status = PaymentStatus.REFUNDED.value
        payment.error_message = "spot already booked for this time slot"
        booking.status = BookingStatus.CANCELLED.value
        booking.canceled_by = CanceledBy.ADMIN.value
        booking.cancelled_at = utcnow()
        self.notification_service.notify(
            booking.client_id,
            "Booking Unavailable",
            f"The spot was booked by someone else for {booking.start_date.isoformat()} at "
            f"{booking.start_time}. Your payment has been refunded",
            NotificationType.PAYMENT,
            booking_id=booking.id,
            spot_id=booking.spot_id,
            vehicle_id=booking.vehicle_id,
            data={"type": "payment_refunded", "conflicting_booking_id": conflicting_booking_id},
        )
        self.logger.warning(
            f"Refunded payment {payment.id}: booking {booking.id} lost its range "
            f"to booking {conflicting_booking_id}"
        )
        prometheus_metrics.inc_booking_transition("payment_refunded", booking.type)
        return booking

    @BaseService.measure_operation("confirm_payment")
    def confirm_payment(self, client_id: str, payment_id: str, booking_id: str) -> Booking:
        """
        Accept a booking once Stripe reports its intent as succeeded.

        Raises:
            NotFoundException: Payment or booking not found
            ValidationException: The intent has not succeeded
            BookingConflictException: Another booking was accepted for the range first;
                the charge has been refunded and the booking cancelled
        """
        with self.transaction():
            payment = self._load_for_client(client_id, payment_id, booking_id)
            intent_status = self.stripe_service.retrieve_payment_intent_status(
                payment.payment_intent_id
            )
            if intent_status != "succeeded":
                raise ValidationException(
                    "payment has not been completed on stripe",
                    code="PAYMENT_NOT_COMPLETED",
                    details={"intent_status": intent_status},
                )
            booking = self._accept_paid_booking(payment)
        if payment.status == PaymentStatus.REFUNDED.value:
            raise BookingConflictException(
                "spot was booked by someone else before the payment completed; "
                "the payment has been refunded",
                details={"booking_id": booking.id, "payment_id": payment.id, "refunded": True},
            )
        return booking

    @BaseService.measure_operation("fail_payment")
    def fail_payment(
        self, client_id: str, payment_id: str, error_message: Optional[str] = None
    ) -> Payment:
        """Record a failed attempt; the booking stays payment-pending for a retry."""
        with self.transaction():
            payment = self.repository.get_by_id(payment_id)
            if payment is None:
                raise NotFoundException("payment not found", details={"payment_id": payment_id})
            if payment.client_id != client_id:
                raise ForbiddenException("You don't have permission to access this payment")
            intent_status = self.stripe_service.retrieve_payment_intent_status(
                payment.payment_intent_id
            )
            if intent_status == "succeeded":
                raise ValidationException("payment was successful", code="PAYMENT_ALREADY_SUCCEEDED")
            payment.status = PaymentStatus.FAILED.value
            payment.error_message = error_message or ""
        return payment

    @BaseService.measure_operation("refresh_payment_intent")
    def refresh_payment_intent(self, client_id: str, booking_id: str, payment_id: str) -> Payment:
        """
        Replace a stale intent with a new one for the same total.

        Intents still awaiting confirmation are returned unchanged.
        """
        with self.transaction():
            payment = self._load_for_client(client_id, payment_id, booking_id)
            booking = self.booking_repository.get_by_id(booking_id)
            if booking is None:
                raise NotFoundException("booking not found", details={"booking_id": booking_id})
            if booking.status != BookingStatus.PAYMENT_PENDING.value:
                raise BusinessRuleException(
                    f"Booking is not awaiting payment - current status: {booking.status}"
                )
            if not payment.payment_intent_id:
                raise ValidationException("no payment intent found for this booking")

            intent_status = self.stripe_service.retrieve_payment_intent_status(
                payment.payment_intent_id
            )
            if intent_status == "succeeded":
                raise ValidationException("payment was successful", code="PAYMENT_ALREADY_SUCCEEDED")
            if intent_status not in _STALE_INTENT_STATUSES and payment.status != PaymentStatus.FAILED.value:
                return payment

            if intent_status != "canceled":
                self.stripe_service.cancel_payment_intent(
                    payment.payment_intent_id,
                    idempotency_key=f"pi-cancel:{payment.payment_intent_id}",
                )
            previous_intent = payment.payment_intent_id
            intent = self.stripe_service.create_payment_intent(
                PricingService.to_minor_units(payment.total_amount),
                metadata={
                    "booking_id": booking.id,
                    "user_id": booking.client_id,
                    "host_id": booking.host_id,
                },
                idempotency_key=f"pi:{booking.id}:{payment.id}:{previous_intent}",
            )
            payment.payment_intent_id = intent["id"]
            payment.client_secret = intent["client_secret"]
            payment.status = PaymentStatus.PENDING.value
            payment.error_message = None

        self.logger.info(f"Replaced intent {previous_intent} with {payment.payment_intent_id}")
        return payment

    @BaseService.measure_operation("list_payments")
    def list_payments(
        self,
        user_id: str,
        role: ActorRole = ActorRole.CLIENT,
        *,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> List[Payment]:
        """Payment history as client or host, filtered by last update date (UTC days)."""
        if status is not None and status not in {s.value for s in PaymentStatus}:
            raise ValidationException("invalid status", details={"status": status})
        if start_date and end_date and end_date < start_date:
            raise ValidationException("endDate must be after startDate")
        if page < 1 or limit < 1:
            raise ValidationException("page and limit must be positive integers")

        updated_from = (
            pytz.UTC.localize(datetime.combine(start_date, time.min)) if start_date else None
        )
        updated_to = pytz.UTC.localize(datetime.combine(end_date, time.max)) if end_date else None
        return self.repository.list_for_user(
            user_id,
            role,
            status=status,
            updated_from=updated_from,
            updated_to=updated_to,
            skip=(page - 1) * limit,
            limit=limit,
        )

    # ------------------------------------------------------------------ #
    # Webhooks
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("handle_stripe_webhook")
    def handle_webhook(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Verify and process a Stripe webhook delivery.

        Unknown event types are acknowledged without changes so Stripe stops
        redelivering them.
        """
        event = self.stripe_service.construct_webhook_event(payload, signature)
        return self.handle_webhook_event(event)

    def handle_webhook_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        event_type = event.get("type", "")
        obj = (event.get("data") or {}).get("object") or {}
        self.logger.info(f"Processing webhook event: {event_type}")

        if event_type == "payment_intent.succeeded":
            handled = self._handle_intent_succeeded(obj)
        elif event_type == "payment_intent.payment_failed":
            handled = self._handle_intent_failed(obj)
        elif event_type.startswith("transfer."):
            handled = self.payout_service.handle_transfer_event(event_type, obj)
        else:
            self.logger.info(f"Unhandled webhook event type: {event_type}")
            return {"success": True, "event_type": event_type, "handled": False}
        return {"success": True, "event_type": event_type, "handled": handled}

    def _handle_intent_succeeded(self, intent: Dict[str, Any]) -> bool:
        with self.transaction():
            payment = self.repository.get_by_intent_id(intent.get("id", ""))
            if payment is None:
                self.logger.error(f"Payment not found for paymentIntent: {intent.get('id')}")
                return False
            self._accept_paid_booking(payment)
        return True

    def _handle_intent_failed(self, intent: Dict[str, Any]) -> bool:
        with self.transaction():
            payment = self.repository.get_by_intent_id(intent.get("id", ""))
            if payment is None:
                self.logger.error(f"Payment not found for paymentIntent: {intent.get('id')}")
                return False
            payment.status = PaymentStatus.FAILED.value
            last_error = intent.get("last_payment_error") or {}
            payment.error_message = last_error.get("message")
            self.notification_service.notify(
                payment.client_id,
                "Payment Failed",
                "Your Payment was failed. Please try again or contact support",
                NotificationType.PAYMENT,
                booking_id=payment.booking_id,
                spot_id=payment.spot_id,
                data={"type": "payment_failed"},
            )
        self.logger.info(f"Failed payment for booking #{payment.booking_id} recorded")
        return True
