# backend/app/services/payout_service.py
"""
Payout Service for the Parkspace platform.

Balances are derived from payment and booking history rather than stored:

- Host earnings: succeeded payments on completed bookings are available,
  on accepted bookings they are pending.
- Cancellations move a 30% penalty between the parties:
    client cancels -> client refunded 70% of gross, host gains the 30%
    host cancels   -> client refunded the full gross plus 30%, host loses 30%
- Paid out: net amounts of pending, processing and completed payouts.

    available = completed + refund + refund_gain - refund_loss - paid_out

Payout requests are limited per user per day through a durable counter.
The balance check and the payout insert run under the user's StripeAccount
row lock, so two concurrent requests cannot spend the same funds. Money
moves with a single Stripe transfer; a failed transfer marks the payout
failed and is never retried automatically.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.constants import (
    MAX_DAILY_PAYOUTS,
    MIN_PAYOUT_AMOUNT,
    STRIPE_PAYOUT_FEE,
)
from ..core.enums import ActorRole
from ..core.exceptions import (
    BusinessRuleException,
    ExternalServiceException,
    NotFoundException,
    RateLimitException,
    ValidationException,
)
from ..core.timezone_utils import utcnow
from ..models.booking import BookingStatus, CanceledBy
from ..models.payment import Payout, PayoutStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from .base import BaseService
from .notification_service import NotificationService, NotificationType
from .pricing_service import Money, PricingService, round_money, to_decimal
from .stripe_service import StripeService

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

_TRANSFER_STATUS = {
    "transfer.created": PayoutStatus.PROCESSING.value,
    "transfer.updated": PayoutStatus.COMPLETED.value,
    "transfer.reversed": PayoutStatus.FAILED.value,
    "transfer.failed": PayoutStatus.FAILED.value,
}


@dataclass
class Balance:
    available: Decimal = ZERO
    pending: Decimal = ZERO
    total_earnings: Decimal = ZERO
    paid_out: Decimal = ZERO
    refund: Decimal = ZERO
    refund_gain: Decimal = ZERO
    refund_loss: Decimal = ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {key: round_money(value) for key, value in asdict(self).items()}


class PayoutService(BaseService):
    """Balance reporting, payout requests and transfer lifecycle."""

    def __init__(
        self,
        db: Session,
        stripe_service: Optional[StripeService] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        super().__init__(db)
        self.payment_repository = RepositoryFactory.create_payment_repository(db)
        self.payout_repository = RepositoryFactory.create_payout_repository(db)
        self.attempt_repository = RepositoryFactory.create_payout_attempt_repository(db)
        self.account_repository = RepositoryFactory.create_stripe_account_repository(db)
        self.stripe_service = stripe_service or StripeService()
        self.notification_service = notification_service or NotificationService(db)

    # ------------------------------------------------------------------ #
    # Balance
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("get_balance")
    def get_balance(self, user_id: str) -> Balance:
        balance = Balance()
        completed = ZERO

        for payment, booking_status, canceled_by in self.payment_repository.find_succeeded_with_booking(
            user_id, ActorRole.HOST
        ):
            gross = to_decimal(payment.gross_amount)
            penalty = PricingService.cancellation_penalty(gross)
            if booking_status == BookingStatus.COMPLETED.value:
                completed += gross
            elif booking_status == BookingStatus.ACCEPTED.value:
                balance.pending += gross
            elif booking_status == BookingStatus.CANCELLED.value:
                if canceled_by == CanceledBy.HOST.value:
                    balance.refund_loss += penalty
                elif canceled_by == CanceledBy.CLIENT.value:
                    balance.refund_gain += penalty

        for payment, booking_status, canceled_by in self.payment_repository.find_succeeded_with_booking(
            user_id, ActorRole.CLIENT
        ):
            if booking_status != BookingStatus.CANCELLED.value:
                continue
            gross = to_decimal(payment.gross_amount)
            penalty = PricingService.cancellation_penalty(gross)
            if canceled_by == CanceledBy.CLIENT.value:
                balance.refund += round_money(gross - penalty)
                balance.refund_loss += penalty
            elif canceled_by == CanceledBy.HOST.value:
                balance.refund += gross
                balance.refund_gain += penalty

        balance.total_earnings = completed + balance.pending
        balance.paid_out = self.payout_repository.sum_paid_out(user_id)
        balance.available = round_money(
            completed + balance.refund + balance.refund_gain - balance.refund_loss - balance.paid_out
        )
        balance.pending = max(ZERO, round_money(balance.pending))
        return balance

    # ------------------------------------------------------------------ #
    # Payout requests
    # ------------------------------------------------------------------ #

    def _check_daily_limit(self, user_id: str, now: datetime) -> None:
        """Count this request against today's limit; the counter survives rollbacks."""
        today = now.date()
        with self.transaction():
            count = self.attempt_repository.increment(user_id, today)
        if count > MAX_DAILY_PAYOUTS:
            prometheus_metrics.inc_payout_request("rate_limited")
            raise RateLimitException(
                "Too many payout requests. Please try again tomorrow.",
                code="PAYOUT_RATE_LIMITED",
                details={"limit": MAX_DAILY_PAYOUTS, "attempts": count},
            )

    @BaseService.measure_operation("request_payout")
    def request_payout(
        self, user_id: str, amount: Money, *, now: Optional[datetime] = None
    ) -> Payout:
        """
        Withdraw ``amount`` from the available balance to the user's connected account.

        Raises:
            RateLimitException: More than MAX_DAILY_PAYOUTS requests today
            ValidationException: Amount missing, too small or above the balance
            NotFoundException: No connected Stripe account
            BusinessRuleException: Payouts not enabled on the account
            ExternalServiceException: The transfer was rejected
        """
        current = now or utcnow()
        self._check_daily_limit(user_id, current)

        requested = to_decimal(amount)
        if requested <= ZERO:
            raise ValidationException("A valid amount is required", details={"amount": str(amount)})
        if requested < MIN_PAYOUT_AMOUNT:
            raise ValidationException(
                f"Minimum payout amount is ${MIN_PAYOUT_AMOUNT:.2f}",
                code="PAYOUT_BELOW_MINIMUM",
                details={"minimum": str(MIN_PAYOUT_AMOUNT)},
            )

        with self.transaction():
            account = self.account_repository.get_by_user_id_for_update(user_id)
            if account is None:
                raise NotFoundException("Stripe account not found. Please set up your payout account.")
            if not account.payouts_enabled:
                raise BusinessRuleException("Payouts are not enabled for your account")

            requested = round_money(requested)
            available = self.get_balance(user_id).available
            if requested > available:
                raise ValidationException(
                    f"Insufficient funds. Available: ${available:.2f}",
                    code="INSUFFICIENT_FUNDS",
                    details={"available": str(available)},
                )
            net = round_money(requested - STRIPE_PAYOUT_FEE)
            if net <= ZERO:
                raise ValidationException("Payout amount is too small to cover the transfer fee")

            payout = self.payout_repository.create(
                user_id=user_id,
                stripe_account_id=account.stripe_account_id,
                gross_amount=requested,
                stripe_fee=STRIPE_PAYOUT_FEE,
                net_amount=net,
                status=PayoutStatus.PENDING.value,
                payout_metadata={"requested_at": current.isoformat()},
            )

        try:
            transfer_id = self.stripe_service.create_transfer(
                PricingService.to_minor_units(net),
                account.stripe_account_id,
                metadata={
                    "payoutId": payout.id,
                    "userId": user_id,
                    "originalAmount": str(requested),
                },
            )
        except ExternalServiceException as exc:
            with self.transaction():
                payout.status = PayoutStatus.FAILED.value
                payout.error_message = exc.message
            prometheus_metrics.inc_payout_request("failed")
            raise

        with self.transaction():
            payout.transfer_id = transfer_id
            payout.status = PayoutStatus.PROCESSING.value
            payout.payout_date = current

        prometheus_metrics.inc_payout_request("processing")
        self.logger.info(f"Payout {payout.id} for {user_id}: net {net} via transfer {transfer_id}")
        return payout

    # ------------------------------------------------------------------ #
    # Transfer webhooks
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("handle_transfer_event")
    def handle_transfer_event(self, event_type: str, transfer: Dict[str, Any]) -> bool:
        """Move the matching payout along; unknown transfers are ignored."""
        new_status = _TRANSFER_STATUS.get(event_type)
        if new_status is None:
            self.logger.info(f"Unhandled transfer event type: {event_type}")
            return False

        transfer_id = transfer.get("id")
        metadata = transfer.get("metadata") or {}
        with self.transaction():
            payout = self.payout_repository.get_by_transfer_id(transfer_id) if transfer_id else None
            if payout is None and metadata.get("payoutId"):
                payout = self.payout_repository.get_by_id(metadata["payoutId"])
            if payout is None:
                self.logger.warning(f"No payout found for transfer {transfer_id}")
                return False

            if payout.status == PayoutStatus.FAILED.value or (
                payout.status == PayoutStatus.COMPLETED.value
                and new_status == PayoutStatus.PROCESSING.value
            ):
                return True
            payout.status = new_status
            payout.transfer_id = payout.transfer_id or transfer_id
            if new_status == PayoutStatus.FAILED.value:
                payout.error_message = "Transfer was reversed"
            if new_status == PayoutStatus.COMPLETED.value:
                self.notification_service.notify(
                    payout.user_id,
                    "Payout Completed",
                    f"Your payout of ${payout.net_amount:.2f} has been sent",
                    NotificationType.PAYOUT,
                    data={"type": "payout_completed", "payout_id": payout.id},
                )

        self.logger.info(f"Payout {payout.id} moved to {new_status} by {event_type}")
        return True

    def list_payouts(self, user_id: str, page: int = 1, limit: int = 20) -> List[Payout]:
        if page < 1 or limit < 1:
            raise ValidationException("page and limit must be positive integers")
        return self.payout_repository.list_for_user(user_id, skip=(page - 1) * limit, limit=limit)
