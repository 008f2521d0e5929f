"""
BookingService: creation rules, host decisions, cancellation and time changes.

All tests run at a fixed instant: Saturday 2024-06-08 08:00 in New York.
"""

from datetime import date
from decimal import Decimal
import random

import pytest

from app.core.exceptions import (
    BookingConflictException,
    BusinessRuleException,
    ConflictException,
    ExternalServiceException,
    ForbiddenException,
    InsufficientNoticeException,
    NotFoundException,
    ValidationException,
)
from app.models.booking import Booking, BookingStatus, BookingType, CanceledBy
from app.models.notification import Notification
from app.models.payment import Payment, PaymentStatus
from app.models.time_change import TimeChange, TimeChangeStatus
from app.schemas.booking import BookingCreate, BookingTimeChangeRequest
from app.services.booking_service import BookingResult, BookingService
from app.services.payment_service import PaymentService
from app.services.pricing_service import PricingService
from app.services.time_change_service import TimeChangeService
from app.utils.time_utils import intervals_overlap, minutes_to_time_str
from tests.factories.builders import create_booking, create_payment, create_time_change, create_window

MONDAY = date(2024, 6, 10)
TUESDAY = date(2024, 6, 11)
THURSDAY = date(2024, 6, 13)
SUNDAY = date(2024, 6, 9)


@pytest.fixture
def service(db, fake_stripe):
    return BookingService(db, stripe_service=fake_stripe)


def _request(spot, vehicle, start_date, start_time, end_time, gross, *, end_date=None, booking_type="normal", day=None):
    return BookingCreate(
        spot_id=spot.id,
        vehicle_id=vehicle.id,
        type=booking_type,
        day=day or start_date.strftime("%a"),
        start_date=start_date,
        start_time=start_time,
        end_date=end_date or start_date,
        end_time=end_time,
        gross_amount=gross,
    )


def _change(start_date, start_time, end_time, *, end_date=None):
    return BookingTimeChangeRequest(
        day=start_date.strftime("%a"),
        start_date=start_date,
        start_time=start_time,
        end_date=end_date or start_date,
        end_time=end_time,
    )


# ============================================================================
# Create: normal bookings
# ============================================================================


class TestCreateNormalBooking:
    def test_opens_payment_intent(self, db, service, weekday_spot, client_user, vehicle, fake_stripe, fixed_now):
        result = service.create_booking(
            client_user.id, _request(weekday_spot, vehicle, MONDAY, "09:00", "10:00", "10.00"), now=fixed_now
        )

        assert isinstance(result, BookingResult)
        assert result.booking.status == BookingStatus.PAYMENT_PENDING.value
        assert result.booking.host_id == weekday_spot.host_id
        assert result.payment.total_amount == Decimal("10.60")
        assert result.client_secret == result.payment.client_secret
        amount_cents = fake_stripe.create_payment_intent.call_args.args[0]
        assert amount_cents == 1060
        assert db.query(Payment).count() == 1

    def test_fifteen_minutes_is_the_minimum(self, service, weekday_spot, client_user, vehicle, fixed_now):
        result = service.create_booking(
            client_user.id, _request(weekday_spot, vehicle, MONDAY, "09:00", "09:15", "2.50"), now=fixed_now
        )
        assert result.booking.status == BookingStatus.PAYMENT_PENDING.value

    def test_fourteen_minutes_is_too_short(self, service, weekday_spot, client_user, vehicle, fixed_now):
        with pytest.raises(ValidationException) as exc_info:
            service.create_booking(
                client_user.id, _request(weekday_spot, vehicle, MONDAY, "09:00", "09:14", "2.33"), now=fixed_now
            )
        assert exc_info.value.code == "INVALID_DURATION"

    def test_full_day_is_the_maximum(self, db, service, spot, client_user, vehicle, fixed_now):
        create_window(db, spot, "Mon", "00:00", "23:59")
        result = service.create_booking(
            client_user.id,
            _request(spot, vehicle, MONDAY, "00:00", "00:00", "240.00", end_date=TUESDAY),
            now=fixed_now,
        )
        assert result.booking.gross_amount == Decimal("240.00")

    def test_one_minute_over_a_day_is_rejected(self, db, service, spot, client_user, vehicle, fixed_now):
        create_window(db, spot, "Mon", "00:00", "23:59")
        with pytest.raises(ValidationException) as exc_info:
            service.create_booking(
                client_user.id,
                _request(spot, vehicle, MONDAY, "00:00", "00:01", "240.17", end_date=TUESDAY),
                now=fixed_now,
            )
        assert exc_info.value.code == "INVALID_DURATION"

    def test_exact_price_is_accepted(self, service, weekday_spot, client_user, vehicle, fixed_now):
        result = service.create_booking(
            client_user.id, _request(weekday_spot, vehicle, MONDAY, "09:00", "14:00", "50.00"), now=fixed_now
        )
        assert result.booking.gross_amount == Decimal("50.00")

    def test_price_off_by_a_cent_is_rejected(self, db, service, weekday_spot, client_user, vehicle, fixed_now):
        with pytest.raises(ValidationException) as exc_info:
            service.create_booking(
                client_user.id, _request(weekday_spot, vehicle, MONDAY, "09:00", "14:00", "49.99"), now=fixed_now
            )
        assert exc_info.value.code == "PRICE_MISMATCH"
        assert db.query(Booking).count() == 0

    def test_outside_availability(self, service, weekday_spot, client_user, vehicle, fixed_now):
        with pytest.raises(ValidationException) as exc_info:
            service.create_booking(
                client_user.id, _request(weekday_spot, vehicle, MONDAY, "17:30", "18:30", "10.00"), now=fixed_now
            )
        assert exc_info.value.code == "OUTSIDE_AVAILABILITY"

    def test_window_end_is_inclusive(self, service, weekday_spot, client_user, vehicle, fixed_now):
        result = service.create_booking(
            client_user.id, _request(weekday_spot, vehicle, MONDAY, "17:00", "18:00", "10.00"), now=fixed_now
        )
        assert result.booking.end_time == "18:00"

    def test_start_in_the_past(self, service, weekday_spot, client_user, vehicle, fixed_now):
        # 07:00 on the same Saturday is before 08:00 local "now"
        with pytest.raises(ValidationException) as exc_info:
            service.create_booking(
                client_user.id,
                _request(weekday_spot, vehicle, date(2024, 6, 8), "07:00", "07:30", "5.00"),
                now=fixed_now,
            )
        assert exc_info.value.code == "START_IN_PAST"

    def test_day_label_must_match_start_date(self, service, weekday_spot, client_user, vehicle, fixed_now):
        with pytest.raises(ValidationException):
            service.create_booking(
                client_user.id,
                _request(weekday_spot, vehicle, MONDAY, "09:00", "10:00", "10.00", day="Tue"),
                now=fixed_now,
            )

    def test_vehicle_must_belong_to_client(self, service, weekday_spot, other_client, vehicle, fixed_now):
        with pytest.raises(NotFoundException):
            service.create_booking(
                other_client.id, _request(weekday_spot, vehicle, MONDAY, "09:00", "10:00", "10.00"), now=fixed_now
            )

    def test_host_cannot_book_own_spot(self, db, service, weekday_spot, host, fixed_now):
        from tests.factories.builders import create_vehicle

        host_vehicle = create_vehicle(db, host, plate_number="HOST-1")
        with pytest.raises(ValidationException):
            service.create_booking(
                host.id, _request(weekday_spot, host_vehicle, MONDAY, "09:00", "10:00", "10.00"), now=fixed_now
            )

    def test_unknown_spot(self, service, spot, client_user, vehicle, fixed_now):
        request = _request(spot, vehicle, MONDAY, "09:00", "10:00", "10.00")
        request = request.model_copy(update={"spot_id": "01HZZZZZZZZZZZZZZZZZZZZZZZ"})
        with pytest.raises(NotFoundException):
            service.create_booking(client_user.id, request, now=fixed_now)


class TestDoubleBooking:
    def test_overlapping_accepted_booking_conflicts(
        self, db, service, weekday_spot, client_user, vehicle, other_client, other_vehicle, fixed_now
    ):
        create_booking(
            db, spot=weekday_spot, client=other_client, vehicle=other_vehicle,
            start_date=MONDAY, start_time="09:00", end_time="10:00",
        )

        with pytest.raises(BookingConflictException):
            service.create_booking(
                client_user.id, _request(weekday_spot, vehicle, MONDAY, "09:30", "10:30", "10.00"), now=fixed_now
            )

    def test_back_to_back_bookings_are_allowed(
        self, db, service, weekday_spot, client_user, vehicle, other_client, other_vehicle, fixed_now
    ):
        create_booking(
            db, spot=weekday_spot, client=other_client, vehicle=other_vehicle,
            start_date=MONDAY, start_time="09:00", end_time="10:00",
        )

        result = service.create_booking(
            client_user.id, _request(weekday_spot, vehicle, MONDAY, "10:00", "11:00", "10.00"), now=fixed_now
        )
        assert result.booking.start_time == "10:00"

    def test_unpaid_normal_booking_does_not_hold_the_slot(
        self, db, service, weekday_spot, client_user, vehicle, other_client, other_vehicle, fixed_now
    ):
        create_booking(
            db, spot=weekday_spot, client=other_client, vehicle=other_vehicle,
            start_date=MONDAY, start_time="09:00", end_time="10:00",
            status=BookingStatus.PAYMENT_PENDING.value,
        )

        result = service.create_booking(
            client_user.id, _request(weekday_spot, vehicle, MONDAY, "09:00", "10:00", "10.00"), now=fixed_now
        )
        assert result.booking.status == BookingStatus.PAYMENT_PENDING.value

    def test_unpaid_custom_booking_holds_the_range(
        self, db, service, weekday_spot, client_user, vehicle, other_client, other_vehicle, fixed_now
    ):
        create_booking(
            db, spot=weekday_spot, client=other_client, vehicle=other_vehicle,
            start_date=MONDAY, start_time="00:00", end_date=THURSDAY, end_time="00:00",
            booking_type=BookingType.CUSTOM.value, status=BookingStatus.PAYMENT_PENDING.value,
        )

        with pytest.raises(BookingConflictException):
            service.create_booking(
                client_user.id, _request(weekday_spot, vehicle, TUESDAY, "09:00", "10:00", "10.00"), now=fixed_now
            )

    def test_cancelled_booking_frees_the_slot(
        self, db, service, weekday_spot, client_user, vehicle, other_client, other_vehicle, fixed_now
    ):
        create_booking(
            db, spot=weekday_spot, client=other_client, vehicle=other_vehicle,
            start_date=MONDAY, start_time="09:00", end_time="10:00",
            status=BookingStatus.CANCELLED.value,
        )

        result = service.create_booking(
            client_user.id, _request(weekday_spot, vehicle, MONDAY, "09:00", "10:00", "10.00"), now=fixed_now
        )
        assert result.booking is not None

    @pytest.mark.parametrize("seed", range(6))
    def test_accepted_bookings_never_overlap(
        self, db, service, weekday_spot, client_user, vehicle, fake_stripe, fixed_now, seed
    ):
        rng = random.Random(seed)
        payments = PaymentService(db, stripe_service=fake_stripe)
        unconfirmed = []
        lost = []

        def confirm(result):
            try:
                payments.confirm_payment(client_user.id, result.payment.id, result.booking.id)
            except BookingConflictException:
                lost.append(result.booking.id)

        for _ in range(12):
            start = rng.randrange(8 * 60, 17 * 60, 15)
            end = min(start + rng.choice((15, 30, 45, 60, 90, 120, 180)), 18 * 60)
            gross = PricingService.calculate_gross(weekday_spot.hourly_rate, end - start)
            request = _request(
                weekday_spot, vehicle, MONDAY,
                minutes_to_time_str(start), minutes_to_time_str(end), str(gross),
            )
            try:
                result = service.create_booking(client_user.id, request, now=fixed_now)
            except BookingConflictException:
                continue
            if rng.random() < 0.5:
                confirm(result)
            else:
                unconfirmed.append(result)

        rng.shuffle(unconfirmed)
        for result in unconfirmed:
            confirm(result)

        accepted = db.query(Booking).filter_by(
            spot_id=weekday_spot.id, status=BookingStatus.ACCEPTED.value
        ).all()
        assert accepted
        for i, first in enumerate(accepted):
            for second in accepted[i + 1:]:
                assert not intervals_overlap(
                    first.start_at(), first.end_at(), second.start_at(), second.end_at()
                )
        for booking in db.query(Booking).filter(Booking.id.in_(lost)):
            assert booking.status == BookingStatus.CANCELLED.value


def test_processor_failure_rolls_back_the_booking(db, service, weekday_spot, client_user, vehicle, fake_stripe, fixed_now):
    fake_stripe.create_payment_intent.side_effect = ExternalServiceException(
        "Failed to create payment intent: card declined", code="PAYMENT_PROCESSOR_ERROR"
    )

    with pytest.raises(ExternalServiceException):
        service.create_booking(
            client_user.id, _request(weekday_spot, vehicle, MONDAY, "09:00", "10:00", "10.00"), now=fixed_now
        )

    assert db.query(Booking).count() == 0
    assert db.query(Payment).count() == 0


# ============================================================================
# Create: custom bookings
# ============================================================================


class TestCreateCustomBooking:
    def test_custom_booking_waits_for_host(self, db, service, spot, host, client_user, vehicle, fake_stripe, fixed_now):
        result = service.create_booking(
            client_user.id,
            _request(spot, vehicle, MONDAY, "00:00", "00:00", "720.00", end_date=THURSDAY, booking_type="custom"),
            now=fixed_now,
        )

        assert result.booking.status == BookingStatus.REQUEST_PENDING.value
        assert result.payment is None
        fake_stripe.create_payment_intent.assert_not_called()
        notification = db.query(Notification).filter_by(user_id=host.id).one()
        assert notification.title == "New Booking Request"

    def test_custom_booking_ignores_weekly_windows(self, service, spot, client_user, vehicle, fixed_now):
        # No availability at all on this spot
        result = service.create_booking(
            client_user.id,
            _request(spot, vehicle, MONDAY, "12:00", "12:00", "240.00", end_date=TUESDAY, booking_type="custom"),
            now=fixed_now,
        )
        assert result.booking.type == BookingType.CUSTOM.value

    def test_custom_booking_shorter_than_a_day(self, service, spot, client_user, vehicle, fixed_now):
        with pytest.raises(ValidationException) as exc_info:
            service.create_booking(
                client_user.id,
                _request(spot, vehicle, MONDAY, "09:00", "17:00", "80.00", booking_type="custom"),
                now=fixed_now,
            )
        assert exc_info.value.code == "INVALID_DURATION"

    def test_custom_blocked_by_unpaid_normal_booking(
        self, db, service, spot, client_user, vehicle, other_client, other_vehicle, fixed_now
    ):
        create_booking(
            db, spot=spot, client=other_client, vehicle=other_vehicle,
            start_date=TUESDAY, start_time="09:00", end_time="10:00",
            status=BookingStatus.PAYMENT_PENDING.value,
        )

        with pytest.raises(BookingConflictException):
            service.create_booking(
                client_user.id,
                _request(spot, vehicle, MONDAY, "00:00", "00:00", "720.00", end_date=THURSDAY, booking_type="custom"),
                now=fixed_now,
            )


# ============================================================================
# Host decisions
# ============================================================================


@pytest.fixture
def custom_request(db, spot, client_user, vehicle):
    return create_booking(
        db, spot=spot, client=client_user, vehicle=vehicle,
        start_date=MONDAY, start_time="00:00", end_date=THURSDAY, end_time="00:00",
        booking_type=BookingType.CUSTOM.value, status=BookingStatus.REQUEST_PENDING.value,
        gross_amount=Decimal("720.00"),
    )


class TestAcceptBooking:
    def test_accept_opens_payment(self, db, service, custom_request, host, client_user, fixed_now):
        result = service.accept_booking(host.id, custom_request.id, now=fixed_now)

        assert result.booking.status == BookingStatus.PAYMENT_PENDING.value
        assert result.payment.gross_amount == Decimal("720.00")
        titles = [n.title for n in db.query(Notification).filter_by(user_id=client_user.id)]
        assert "Booking Request Accepted" in titles

    def test_only_host_can_accept(self, service, custom_request, client_user, fixed_now):
        with pytest.raises(ForbiddenException):
            service.accept_booking(client_user.id, custom_request.id, now=fixed_now)

    def test_accept_twice_conflicts(self, service, custom_request, host, fixed_now):
        service.accept_booking(host.id, custom_request.id, now=fixed_now)
        with pytest.raises(ConflictException):
            service.accept_booking(host.id, custom_request.id, now=fixed_now)

    def test_competing_request_loses_once_another_is_accepted(
        self, db, service, spot, custom_request, host, other_client, other_vehicle, fixed_now
    ):
        competing = create_booking(
            db, spot=spot, client=other_client, vehicle=other_vehicle,
            start_date=TUESDAY, start_time="00:00", end_date=date(2024, 6, 12), end_time="00:00",
            booking_type=BookingType.CUSTOM.value, status=BookingStatus.REQUEST_PENDING.value,
            gross_amount=Decimal("240.00"),
        )
        service.accept_booking(host.id, custom_request.id, now=fixed_now)

        with pytest.raises(BookingConflictException):
            service.accept_booking(host.id, competing.id, now=fixed_now)


class TestDenyBooking:
    def test_deny_deletes_request(self, db, service, custom_request, host, client_user):
        summary = service.deny_booking(host.id, custom_request.id)

        assert summary["deleted"] is True
        assert summary["client_id"] == client_user.id
        assert summary["start_date"] == "2024-06-10"
        assert db.query(Booking).count() == 0
        titles = [n.title for n in db.query(Notification).filter_by(user_id=client_user.id)]
        assert titles == ["Booking Request Declined"]

    def test_deny_releases_open_payment(self, db, service, weekday_spot, client_user, vehicle, fake_stripe, fixed_now):
        result = service.create_booking(
            client_user.id, _request(weekday_spot, vehicle, MONDAY, "09:00", "10:00", "10.00"), now=fixed_now
        )
        intent_id = result.payment.payment_intent_id

        service.deny_booking(client_user.id, result.booking.id)

        fake_stripe.cancel_payment_intent.assert_called_once()
        assert fake_stripe.cancel_payment_intent.call_args.args[0] == intent_id

    def test_accepted_booking_cannot_be_denied(self, db, service, spot, host, client_user, vehicle):
        booking = create_booking(
            db, spot=spot, client=client_user, vehicle=vehicle,
            start_date=MONDAY, start_time="09:00", end_time="10:00",
        )
        with pytest.raises(BusinessRuleException):
            service.deny_booking(host.id, booking.id)

    def test_stranger_cannot_deny(self, service, custom_request, other_client):
        with pytest.raises(ForbiddenException):
            service.deny_booking(other_client.id, custom_request.id)


# ============================================================================
# Cancellation
# ============================================================================


class TestCancelBooking:
    def _accepted(self, db, spot, client, vehicle, start_time):
        return create_booking(
            db, spot=spot, client=client, vehicle=vehicle,
            start_date=SUNDAY, start_time=start_time, end_time="12:00",
        )

    def test_cancel_with_more_than_a_day_notice(self, db, service, spot, host, client_user, vehicle, fixed_now):
        # Sunday 08:01 New York is 24h01m after the fixed now
        booking = self._accepted(db, spot, client_user, vehicle, "08:01")

        cancelled = service.cancel_booking(client_user.id, booking.id, now=fixed_now)

        assert cancelled.status == BookingStatus.CANCELLED.value
        assert cancelled.canceled_by == CanceledBy.CLIENT.value
        assert cancelled.cancelled_at is not None
        host_titles = [n.title for n in db.query(Notification).filter_by(user_id=host.id)]
        assert host_titles == ["Booking Cancelled"]

    def test_cancel_inside_the_notice_window(self, db, service, spot, client_user, vehicle, fixed_now):
        booking = self._accepted(db, spot, client_user, vehicle, "07:59")

        with pytest.raises(InsufficientNoticeException):
            service.cancel_booking(client_user.id, booking.id, now=fixed_now)

        db.refresh(booking)
        assert booking.status == BookingStatus.ACCEPTED.value

    def test_host_cancellation_notifies_client(self, db, service, spot, host, client_user, vehicle, fixed_now):
        booking = self._accepted(db, spot, client_user, vehicle, "09:00")

        cancelled = service.cancel_booking(host.id, booking.id, now=fixed_now)

        assert cancelled.canceled_by == CanceledBy.HOST.value
        notification = db.query(Notification).filter_by(user_id=client_user.id).one()
        assert notification.body.startswith("Host has cancelled")

    def test_cancel_twice(self, db, service, spot, client_user, vehicle, fixed_now):
        booking = self._accepted(db, spot, client_user, vehicle, "09:00")
        service.cancel_booking(client_user.id, booking.id, now=fixed_now)
        with pytest.raises(NotFoundException):
            service.cancel_booking(client_user.id, booking.id, now=fixed_now)

    def test_cancel_releases_pending_payment(self, db, service, spot, client_user, vehicle, fake_stripe, fixed_now):
        booking = create_booking(
            db, spot=spot, client=client_user, vehicle=vehicle,
            start_date=SUNDAY, start_time="10:00", end_time="11:00",
            status=BookingStatus.PAYMENT_PENDING.value,
        )
        payment = create_payment(db, booking, status=PaymentStatus.PENDING.value)

        service.cancel_booking(client_user.id, booking.id, now=fixed_now)

        db.refresh(payment)
        assert payment.status == PaymentStatus.CANCELLED.value
        fake_stripe.cancel_payment_intent.assert_called_once()

    def test_cancel_rejects_open_time_change(self, db, service, custom_request, host, client_user, fixed_now):
        custom_request.status = BookingStatus.ACCEPTED.value
        db.commit()
        requested = create_time_change(
            db, custom_request,
            new_start_date=date(2024, 6, 17), new_start_time="00:00",
            new_end_date=date(2024, 6, 20), new_end_time="00:00",
        )

        service.cancel_booking(client_user.id, custom_request.id, now=fixed_now)

        db.refresh(requested)
        assert requested.status == TimeChangeStatus.REJECTED.value
        with pytest.raises(BusinessRuleException):
            TimeChangeService(db).accept_time_change(host.id, requested.id, now=fixed_now)
        db.refresh(custom_request)
        assert custom_request.start_date == MONDAY


# ============================================================================
# Time changes
# ============================================================================


class TestChangeTime:
    def test_normal_booking_moves_immediately(self, db, service, weekday_spot, host, client_user, vehicle, fixed_now):
        booking = create_booking(
            db, spot=weekday_spot, client=client_user, vehicle=vehicle,
            start_date=MONDAY, start_time="09:00", end_time="10:00",
        )

        result = service.change_time(client_user.id, booking.id, _change(TUESDAY, "11:00", "12:00"), now=fixed_now)

        assert isinstance(result, BookingResult)
        assert result.booking.day == "Tue"
        assert result.booking.start_time == "11:00"
        titles = [n.title for n in db.query(Notification).filter_by(user_id=host.id)]
        assert titles == ["Booking Time Changed"]

    def test_normal_booking_must_keep_its_duration(self, db, service, weekday_spot, client_user, vehicle, fixed_now):
        booking = create_booking(
            db, spot=weekday_spot, client=client_user, vehicle=vehicle,
            start_date=MONDAY, start_time="09:00", end_time="10:00",
        )
        with pytest.raises(ValidationException) as exc_info:
            service.change_time(client_user.id, booking.id, _change(TUESDAY, "11:00", "13:00"), now=fixed_now)
        assert exc_info.value.code == "DURATION_MISMATCH"

    def test_normal_move_conflicts_with_accepted_booking(
        self, db, service, weekday_spot, client_user, vehicle, other_client, other_vehicle, fixed_now
    ):
        booking = create_booking(
            db, spot=weekday_spot, client=client_user, vehicle=vehicle,
            start_date=MONDAY, start_time="09:00", end_time="10:00",
        )
        create_booking(
            db, spot=weekday_spot, client=other_client, vehicle=other_vehicle,
            start_date=TUESDAY, start_time="11:30", end_time="12:30",
        )

        with pytest.raises(BookingConflictException):
            service.change_time(client_user.id, booking.id, _change(TUESDAY, "11:00", "12:00"), now=fixed_now)

    def test_booking_may_overlap_its_own_old_range(self, db, service, weekday_spot, client_user, vehicle, fixed_now):
        booking = create_booking(
            db, spot=weekday_spot, client=client_user, vehicle=vehicle,
            start_date=MONDAY, start_time="09:00", end_time="10:00",
        )
        result = service.change_time(client_user.id, booking.id, _change(MONDAY, "09:30", "10:30"), now=fixed_now)
        assert result.booking.start_time == "09:30"

    def test_custom_booking_opens_time_change_request(self, db, service, custom_request, host, client_user, fixed_now):
        custom_request.status = BookingStatus.ACCEPTED.value
        db.commit()

        result = service.change_time(
            client_user.id,
            custom_request.id,
            _change(date(2024, 6, 17), "00:00", "00:00", end_date=date(2024, 6, 20)),
            now=fixed_now,
        )

        assert isinstance(result, TimeChange)
        assert result.status == TimeChangeStatus.PENDING.value
        assert result.old_start_date == MONDAY
        assert result.new_start_date == date(2024, 6, 17)
        db.refresh(custom_request)
        assert custom_request.start_date == MONDAY

    def test_second_pending_request_conflicts(self, db, service, custom_request, client_user, fixed_now):
        change = _change(date(2024, 6, 17), "00:00", "00:00", end_date=date(2024, 6, 20))
        service.change_time(client_user.id, custom_request.id, change, now=fixed_now)

        with pytest.raises(ConflictException):
            service.change_time(client_user.id, custom_request.id, change, now=fixed_now)

    def test_only_client_can_change(self, db, service, custom_request, host, fixed_now):
        change = _change(date(2024, 6, 17), "00:00", "00:00", end_date=date(2024, 6, 20))
        with pytest.raises(ForbiddenException):
            service.change_time(host.id, custom_request.id, change, now=fixed_now)

    def test_change_requires_notice(self, db, service, spot, client_user, vehicle, fixed_now):
        booking = create_booking(
            db, spot=spot, client=client_user, vehicle=vehicle,
            start_date=SUNDAY, start_time="07:00", end_time="08:00",
        )
        with pytest.raises(InsufficientNoticeException):
            service.change_time(client_user.id, booking.id, _change(MONDAY, "09:00", "10:00"), now=fixed_now)


# ============================================================================
# Queries
# ============================================================================


def test_get_booking_hides_other_users_bookings(db, service, custom_request, client_user, other_client):
    assert service.get_booking(client_user.id, custom_request.id).id == custom_request.id
    with pytest.raises(NotFoundException):
        service.get_booking(other_client.id, custom_request.id)


def test_list_bookings_by_role(db, service, custom_request, host, client_user):
    from app.core.enums import ActorRole

    assert [b.id for b in service.list_bookings(client_user.id)] == [custom_request.id]
    assert [b.id for b in service.list_bookings(host.id, ActorRole.HOST)] == [custom_request.id]
    assert service.list_bookings(client_user.id, ActorRole.HOST) == []
    with pytest.raises(ValidationException):
        service.list_bookings(client_user.id, status="bogus")


def test_pending_actions(db, service, custom_request, host, client_user, vehicle, spot, fixed_now):
    create_booking(
        db, spot=spot, client=client_user, vehicle=vehicle,
        start_date=date(2024, 6, 1), start_time="09:00", end_time="10:00",
        booking_type=BookingType.CUSTOM.value, status=BookingStatus.REQUEST_PENDING.value,
    )

    host_view = service.list_pending_actions(host.id, now=fixed_now)
    assert [b.id for b in host_view["booking_requests"]] == [custom_request.id]

    service.accept_booking(host.id, custom_request.id, now=fixed_now)
    client_view = service.list_pending_actions(client_user.id, now=fixed_now)
    assert [b.id for b in client_view["awaiting_payment"]] == [custom_request.id]
