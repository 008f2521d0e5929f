# backend/app/repositories/booking_repository.py
"""
Booking Repository for the Parkspace platform.

This repository handles:
- Active-booking lookups for conflict checks (by spot and status set)
- Date-covering lookups for slot listing and blocked-date projection
- Participant queries (client/host) with optional status filter
- Pending-action queries for the "needs your attention" view
"""

from datetime import date
import logging
from typing import Iterable, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Query, Session, joinedload

from ..core.enums import ActorRole
from ..models.booking import Booking, BookingStatus, BookingType
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(joinedload(Booking.spot))

    def find_active_for_spot(
        self,
        spot_id: str,
        *,
        statuses: Iterable[str],
        custom_only_statuses: Iterable[str] = (),
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """
        Bookings on a spot that can block a new reservation.

        ``statuses`` block regardless of type, ``custom_only_statuses`` block
        only when the existing booking is a custom booking.
        """
        status_list = list(statuses)
        custom_list = list(custom_only_statuses)
        clauses = [Booking.status.in_(status_list)] if status_list else []
        if custom_list:
            clauses.append(
                and_(Booking.status.in_(custom_list), Booking.type == BookingType.CUSTOM.value)
            )
        if not clauses:
            return []

        query = (
            self.db.query(Booking)
            .options(joinedload(Booking.spot))
            .filter(Booking.spot_id == spot_id, or_(*clauses))
        )
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        return self._execute_query(query.order_by(Booking.start_date.asc(), Booking.start_time.asc()))

    def find_covering_date(
        self,
        spot_id: str,
        on_date: date,
        *,
        exclude_statuses: Iterable[str],
    ) -> List[Booking]:
        """Bookings whose date span includes ``on_date``."""
        query = self.db.query(Booking).filter(
            Booking.spot_id == spot_id,
            Booking.start_date <= on_date,
            Booking.end_date >= on_date,
            Booking.status.notin_(list(exclude_statuses)),
        )
        return self._execute_query(query)

    def find_ending_on_or_after(
        self,
        spot_id: str,
        since: date,
        *,
        statuses: Iterable[str],
        booking_type: Optional[str] = None,
    ) -> List[Booking]:
        query = self.db.query(Booking).filter(
            Booking.spot_id == spot_id,
            Booking.end_date >= since,
            Booking.status.in_(list(statuses)),
        )
        if booking_type:
            query = query.filter(Booking.type == booking_type)
        return self._execute_query(query)

    def list_for_user(
        self,
        user_id: str,
        role: ActorRole,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Booking]:
        column = Booking.client_id if role == ActorRole.CLIENT else Booking.host_id
        query = self.db.query(Booking).options(joinedload(Booking.spot)).filter(column == user_id)
        if status:
            query = query.filter(Booking.status == status)
        query = query.order_by(Booking.start_date.desc(), Booking.start_time.desc())
        return self._execute_query(query.offset(skip).limit(limit))

    def find_request_pending_for_host(self, host_id: str) -> List[Booking]:
        query = (
            self.db.query(Booking)
            .options(joinedload(Booking.spot))
            .filter(
                Booking.host_id == host_id,
                Booking.status == BookingStatus.REQUEST_PENDING.value,
            )
        )
        return self._execute_query(query)

    def find_custom_payment_pending_for_client(self, client_id: str) -> List[Booking]:
        query = (
            self.db.query(Booking)
            .options(joinedload(Booking.spot))
            .filter(
                Booking.client_id == client_id,
                Booking.status == BookingStatus.PAYMENT_PENDING.value,
                Booking.type == BookingType.CUSTOM.value,
            )
        )
        return self._execute_query(query)

    def find_cancelled_for_user(self, user_id: str) -> List[Booking]:
        """Cancelled bookings where the user was either party."""
        query = self.db.query(Booking).filter(
            Booking.status == BookingStatus.CANCELLED.value,
            or_(Booking.client_id == user_id, Booking.host_id == user_id),
        )
        return self._execute_query(query)
