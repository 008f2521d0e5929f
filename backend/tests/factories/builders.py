"""
Row builders shared by the test suite.

Every builder commits, so services under test (which open and commit their
own transactions) always see the rows.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

import ulid
from sqlalchemy.orm import Session

from app.models.availability import Availability
from app.models.booking import Booking, BookingStatus, BookingType
from app.models.payment import Payment, PaymentStatus, StripeAccount
from app.models.spot import Spot, SpotStatus
from app.models.time_change import TimeChange, TimeChangeStatus
from app.models.user import User, Vehicle
from app.services.pricing_service import PricingService
from app.utils.time_utils import weekday_label


def create_user(db: Session, *, email: Optional[str] = None, first_name: str = "Test") -> User:
    user = User(
        email=email or f"user-{ulid.ULID()}@example.com",
        first_name=first_name,
        last_name="User",
    )
    db.add(user)
    db.commit()
    return user


def create_vehicle(db: Session, owner: User, *, plate_number: str = "ABC-123") -> Vehicle:
    vehicle = Vehicle(user_id=owner.id, plate_number=plate_number, make="Toyota", model="Corolla")
    db.add(vehicle)
    db.commit()
    return vehicle


def create_spot(
    db: Session,
    host: User,
    *,
    timezone: str = "America/New_York",
    hourly_rate: Decimal = Decimal("10.00"),
) -> Spot:
    spot = Spot(
        host_id=host.id,
        name="Driveway on Elm St",
        latitude=40.7128,
        longitude=-74.0060,
        timezone=timezone,
        hourly_rate=hourly_rate,
        status=SpotStatus.PUBLISHED.value,
    )
    db.add(spot)
    db.commit()
    return spot


def create_window(db: Session, spot: Spot, day: str, start_time: str, end_time: str) -> Availability:
    window = Availability(spot_id=spot.id, day=day, start_time=start_time, end_time=end_time)
    db.add(window)
    db.commit()
    return window


def create_booking(
    db: Session,
    *,
    spot: Spot,
    client: User,
    vehicle: Vehicle,
    start_date: date,
    start_time: str,
    end_date: Optional[date] = None,
    end_time: str,
    booking_type: str = BookingType.NORMAL.value,
    status: str = BookingStatus.ACCEPTED.value,
    gross_amount: Optional[Decimal] = None,
    canceled_by: Optional[str] = None,
) -> Booking:
    booking = Booking(
        client_id=client.id,
        host_id=spot.host_id,
        spot_id=spot.id,
        vehicle_id=vehicle.id,
        day=weekday_label(start_date).value,
        start_date=start_date,
        start_time=start_time,
        end_date=end_date or start_date,
        end_time=end_time,
        type=booking_type,
        gross_amount=gross_amount if gross_amount is not None else Decimal("10.00"),
        status=status,
        canceled_by=canceled_by,
    )
    db.add(booking)
    db.commit()
    return booking


def create_payment(
    db: Session,
    booking: Booking,
    *,
    status: str = PaymentStatus.SUCCEEDED.value,
    payment_intent_id: Optional[str] = None,
) -> Payment:
    fees = PricingService.fee_breakdown(booking.gross_amount)
    payment = Payment(
        booking_id=booking.id,
        client_id=booking.client_id,
        host_id=booking.host_id,
        spot_id=booking.spot_id,
        gross_amount=fees.gross_amount,
        platform_fee=fees.platform_fee,
        stripe_fee=fees.stripe_fee,
        tax_fee=fees.tax_fee,
        total_amount=fees.total_amount,
        payment_intent_id=payment_intent_id or f"pi_{ulid.ULID()}",
        client_secret="secret",
        status=status,
    )
    db.add(payment)
    db.commit()
    return payment


def create_stripe_account(db: Session, user: User, *, payouts_enabled: bool = True) -> StripeAccount:
    account = StripeAccount(
        user_id=user.id,
        stripe_account_id=f"acct_{ulid.ULID()}",
        payouts_enabled=payouts_enabled,
    )
    db.add(account)
    db.commit()
    return account


def create_time_change(
    db: Session,
    booking: Booking,
    *,
    new_start_date: date,
    new_start_time: str,
    new_end_date: Optional[date] = None,
    new_end_time: str,
    status: str = TimeChangeStatus.PENDING.value,
) -> TimeChange:
    time_change = TimeChange(
        booking_id=booking.id,
        spot_id=booking.spot_id,
        client_id=booking.client_id,
        host_id=booking.host_id,
        old_day=booking.day,
        old_start_date=booking.start_date,
        old_start_time=booking.start_time,
        old_end_date=booking.end_date,
        old_end_time=booking.end_time,
        new_day=weekday_label(new_start_date).value,
        new_start_date=new_start_date,
        new_start_time=new_start_time,
        new_end_date=new_end_date or new_start_date,
        new_end_time=new_end_time,
        status=status,
    )
    db.add(time_change)
    db.commit()
    return time_change
