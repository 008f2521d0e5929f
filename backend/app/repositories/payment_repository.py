"""
Payment Repository for the Parkspace platform.

Implements data access for the Stripe integration:
- Per-booking Payment records and their payment-intent references
- Connected accounts used as payout destinations
- Payouts and their transfer references
- The durable daily payout-attempt counter
- Earnings aggregation for balance reporting
"""

from datetime import date, datetime
from decimal import Decimal
import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import ActorRole
from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from ..models.payment import (
    Payment,
    PaymentStatus,
    Payout,
    PayoutAttempt,
    PayoutStatus,
    StripeAccount,
)
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class PaymentRepository(BaseRepository[Payment]):
    """Repository for booking payments."""

    def __init__(self, db: Session):
        super().__init__(db, Payment)

    def get_by_intent_id(self, payment_intent_id: str) -> Optional[Payment]:
        return self.find_one_by(payment_intent_id=payment_intent_id)

    def get_for_booking(self, payment_id: str, booking_id: str) -> Optional[Payment]:
        return self.find_one_by(id=payment_id, booking_id=booking_id)

    def find_for_booking(self, booking_id: str, status: Optional[str] = None) -> List[Payment]:
        query = self.db.query(Payment).filter(Payment.booking_id == booking_id)
        if status:
            query = query.filter(Payment.status == status)
        return self._execute_query(query.order_by(Payment.created_at.desc()))

    def list_for_user(
        self,
        user_id: str,
        role: ActorRole,
        *,
        status: Optional[str] = None,
        updated_from: Optional[datetime] = None,
        updated_to: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 5,
    ) -> List[Payment]:
        """Payment history as client or host, most recently updated first."""
        column = Payment.host_id if role == ActorRole.HOST else Payment.client_id
        last_touched = func.coalesce(Payment.updated_at, Payment.created_at)
        query = self.db.query(Payment).filter(column == user_id)
        if status:
            query = query.filter(Payment.status == status)
        if updated_from is not None:
            query = query.filter(last_touched >= updated_from)
        if updated_to is not None:
            query = query.filter(last_touched <= updated_to)
        query = query.order_by(last_touched.desc(), Payment.id.desc())
        return self._execute_query(query.offset(skip).limit(limit))

    def find_succeeded_with_booking(
        self, user_id: str, role: ActorRole
    ) -> List[Tuple[Payment, str, Optional[str]]]:
        """
        Succeeded payments where the user was host or client.

        Each row is ``(payment, booking_status, canceled_by)``.
        """
        column = Payment.host_id if role == ActorRole.HOST else Payment.client_id
        try:
            rows = (
                self.db.query(Payment, Booking.status, Booking.canceled_by)
                .join(Booking, Booking.id == Payment.booking_id)
                .filter(column == user_id, Payment.status == PaymentStatus.SUCCEEDED.value)
                .all()
            )
            return [(payment, status, canceled_by) for payment, status, canceled_by in rows]
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading {role.value} payments for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to load payments: {str(e)}")


class StripeAccountRepository(BaseRepository[StripeAccount]):
    def __init__(self, db: Session):
        super().__init__(db, StripeAccount)

    def get_by_user_id_for_update(self, user_id: str) -> Optional[StripeAccount]:
        """Lock the user's account row; payout requests for one user serialize on it."""
        try:
            query = self.db.query(StripeAccount).filter(StripeAccount.user_id == user_id)
            if self.dialect_name == "postgresql":
                query = query.with_for_update()
            return query.first()
        except SQLAlchemyError as e:
            raise self._fail("lock", e)


class PayoutRepository(BaseRepository[Payout]):
    """Repository for payouts."""

    def __init__(self, db: Session):
        super().__init__(db, Payout)

    def get_by_transfer_id(self, transfer_id: str) -> Optional[Payout]:
        return self.find_one_by(transfer_id=transfer_id)

    def list_for_user(self, user_id: str, skip: int = 0, limit: int = 100) -> List[Payout]:
        query = (
            self.db.query(Payout)
            .filter(Payout.user_id == user_id)
            .order_by(Payout.created_at.desc(), Payout.id.desc())
        )
        return self._execute_query(query.offset(skip).limit(limit))

    def sum_paid_out(self, user_id: str) -> Decimal:
        """Net amount already sent, in flight or reserved by a request not yet transferred."""
        query = self.db.query(func.coalesce(func.sum(Payout.net_amount), 0)).filter(
            Payout.user_id == user_id,
            Payout.status.in_(
                [
                    PayoutStatus.PENDING.value,
                    PayoutStatus.PROCESSING.value,
                    PayoutStatus.COMPLETED.value,
                ]
            ),
        )
        return Decimal(str(self._execute_scalar(query) or 0))


class PayoutAttemptRepository(BaseRepository[PayoutAttempt]):
    """Durable per-user daily counter backing the payout rate limit."""

    def __init__(self, db: Session):
        super().__init__(db, PayoutAttempt)

    def get_locked(self, user_id: str, day: date) -> Optional[PayoutAttempt]:
        try:
            query = self.db.query(PayoutAttempt).filter(
                PayoutAttempt.user_id == user_id, PayoutAttempt.day == day
            )
            if self.dialect_name == "postgresql":
                query = query.with_for_update()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading payout attempts for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to load payout attempts: {str(e)}")

    def increment(self, user_id: str, day: date) -> int:
        """Bump today's counter and return the new value."""
        attempt = self.get_locked(user_id, day)
        if attempt is None:
            attempt = self.create(user_id=user_id, day=day, count=0)
        attempt.count = (attempt.count or 0) + 1
        self.db.flush()
        return attempt.count
