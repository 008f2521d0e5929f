"""PayoutService: derived balances, payout requests and transfer webhooks."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from app.core.exceptions import (
    BusinessRuleException,
    ExternalServiceException,
    NotFoundException,
    RateLimitException,
    ValidationException,
)
from app.models.booking import BookingStatus, CanceledBy
from app.models.notification import Notification
from app.models.payment import Payout, PayoutStatus
from app.services.payout_service import PayoutService
from tests.factories.builders import create_booking, create_payment, create_stripe_account


@pytest.fixture
def service(db, fake_stripe):
    return PayoutService(db, stripe_service=fake_stripe)


@pytest.fixture
def paid_booking(db, spot, client_user, vehicle):
    """Build a booking with a succeeded payment."""

    def _build(status, gross="10.00", canceled_by=None, start_time="09:00", end_time="10:00"):
        booking = create_booking(
            db, spot=spot, client=client_user, vehicle=vehicle,
            start_date=date(2024, 6, 10), start_time=start_time, end_time=end_time,
            status=status, gross_amount=Decimal(gross), canceled_by=canceled_by,
        )
        create_payment(db, booking)
        return booking

    return _build


@pytest.fixture
def earning_host(db, host, paid_booking):
    """Host with $50.00 completed and a connected account."""
    paid_booking(BookingStatus.COMPLETED.value, gross="50.00", end_time="14:00")
    create_stripe_account(db, host)
    return host


class TestBalance:
    def test_completed_is_available_and_accepted_is_pending(self, service, host, paid_booking):
        paid_booking(BookingStatus.COMPLETED.value, gross="50.00")
        paid_booking(BookingStatus.ACCEPTED.value, gross="10.00")

        balance = service.get_balance(host.id)

        assert balance.available == Decimal("50.00")
        assert balance.pending == Decimal("10.00")
        assert balance.total_earnings == Decimal("60.00")
        assert balance.paid_out == Decimal("0")

    def test_unpaid_bookings_do_not_count(self, db, service, host, spot, client_user, vehicle):
        create_booking(
            db, spot=spot, client=client_user, vehicle=vehicle,
            start_date=date(2024, 6, 10), start_time="09:00", end_time="10:00",
            status=BookingStatus.COMPLETED.value,
        )
        assert service.get_balance(host.id).available == Decimal("0.00")

    def test_host_cancellation_costs_the_host(self, service, host, client_user, paid_booking):
        paid_booking(BookingStatus.COMPLETED.value, gross="50.00")
        paid_booking(BookingStatus.CANCELLED.value, gross="10.00", canceled_by=CanceledBy.HOST.value)

        host_balance = service.get_balance(host.id)
        client_balance = service.get_balance(client_user.id)

        assert host_balance.refund_loss == Decimal("3.00")
        assert host_balance.available == Decimal("47.00")
        assert client_balance.refund == Decimal("10.00")
        assert client_balance.refund_gain == Decimal("3.00")
        assert client_balance.available == Decimal("13.00")

    def test_client_cancellation_pays_the_host(self, service, host, client_user, paid_booking):
        paid_booking(BookingStatus.CANCELLED.value, gross="10.00", canceled_by=CanceledBy.CLIENT.value)

        host_balance = service.get_balance(host.id)
        client_balance = service.get_balance(client_user.id)

        assert host_balance.refund_gain == Decimal("3.00")
        assert host_balance.available == Decimal("3.00")
        assert client_balance.refund == Decimal("7.00")
        assert client_balance.refund_loss == Decimal("3.00")

    def test_to_dict_rounds_to_cents(self, service, host, paid_booking):
        paid_booking(BookingStatus.COMPLETED.value, gross="12.50")
        data = service.get_balance(host.id).to_dict()
        assert data["available"] == Decimal("12.50")
        assert set(data) == {
            "available", "pending", "total_earnings", "paid_out", "refund", "refund_gain", "refund_loss",
        }


class TestRequestPayout:
    def test_payout_is_sent_net_of_fee(self, db, service, fake_stripe, earning_host, fixed_now):
        payout = service.request_payout(earning_host.id, "20.00", now=fixed_now)

        assert payout.status == PayoutStatus.PROCESSING.value
        assert payout.gross_amount == Decimal("20.00")
        assert payout.net_amount == Decimal("19.75")
        assert payout.transfer_id == "tr_test_1"
        amount_cents, account_id = fake_stripe.create_transfer.call_args.args
        assert amount_cents == 1975
        assert account_id.startswith("acct_")
        assert service.get_balance(earning_host.id).available == Decimal("30.25")

    def test_below_minimum(self, service, earning_host, fixed_now):
        with pytest.raises(ValidationException) as exc_info:
            service.request_payout(earning_host.id, "9.99", now=fixed_now)
        assert exc_info.value.code == "PAYOUT_BELOW_MINIMUM"

    def test_zero_amount(self, service, earning_host, fixed_now):
        with pytest.raises(ValidationException):
            service.request_payout(earning_host.id, 0, now=fixed_now)

    def test_more_than_available(self, service, earning_host, fixed_now):
        with pytest.raises(ValidationException) as exc_info:
            service.request_payout(earning_host.id, "50.01", now=fixed_now)
        assert exc_info.value.code == "INSUFFICIENT_FUNDS"

    def test_whole_balance(self, service, earning_host, fixed_now):
        payout = service.request_payout(earning_host.id, "50.00", now=fixed_now)
        assert payout.net_amount == Decimal("49.75")

    def test_requires_connected_account(self, service, host, paid_booking, fixed_now):
        paid_booking(BookingStatus.COMPLETED.value, gross="50.00")
        with pytest.raises(NotFoundException):
            service.request_payout(host.id, "20.00", now=fixed_now)

    def test_requires_enabled_payouts(self, db, service, host, paid_booking, fixed_now):
        paid_booking(BookingStatus.COMPLETED.value, gross="50.00")
        create_stripe_account(db, host, payouts_enabled=False)
        with pytest.raises(BusinessRuleException):
            service.request_payout(host.id, "20.00", now=fixed_now)

    def test_fourth_request_of_the_day_is_limited(self, service, earning_host, fixed_now):
        # Rejected requests still count against the limit
        for _ in range(3):
            with pytest.raises(ValidationException):
                service.request_payout(earning_host.id, "1.00", now=fixed_now)

        with pytest.raises(RateLimitException) as exc_info:
            service.request_payout(earning_host.id, "20.00", now=fixed_now)
        assert exc_info.value.code == "PAYOUT_RATE_LIMITED"

    def test_transfer_failure_marks_payout_failed(self, db, service, fake_stripe, earning_host, fixed_now):
        fake_stripe.create_transfer.side_effect = ExternalServiceException(
            "Failed to create transfer: insufficient platform balance", code="PAYMENT_PROCESSOR_ERROR"
        )

        with pytest.raises(ExternalServiceException):
            service.request_payout(earning_host.id, "20.00", now=fixed_now)

        payout = db.query(Payout).one()
        assert payout.status == PayoutStatus.FAILED.value
        assert "insufficient platform balance" in payout.error_message
        assert service.get_balance(earning_host.id).available == Decimal("50.00")

    def test_untransferred_payout_reserves_funds(self, db, service, earning_host, fixed_now):
        db.add(
            Payout(
                user_id=earning_host.id,
                stripe_account_id="acct_left_over",
                gross_amount=Decimal("40.25"),
                stripe_fee=Decimal("0.25"),
                net_amount=Decimal("40.00"),
                status=PayoutStatus.PENDING.value,
            )
        )
        db.commit()

        assert service.get_balance(earning_host.id).available == Decimal("10.00")
        with pytest.raises(ValidationException) as exc_info:
            service.request_payout(earning_host.id, "20.00", now=fixed_now)
        assert exc_info.value.code == "INSUFFICIENT_FUNDS"

    def test_balance_is_checked_under_the_account_lock(self, db, service, earning_host, fixed_now):
        lock = MagicMock(wraps=service.account_repository.get_by_user_id_for_update)
        service.account_repository.get_by_user_id_for_update = lock

        service.request_payout(earning_host.id, "20.00", now=fixed_now)
        with pytest.raises(ValidationException):
            service.request_payout(earning_host.id, "40.00", now=fixed_now)

        assert lock.call_count == 2
        assert db.query(Payout).count() == 1


class TestTransferEvents:
    @pytest.fixture
    def payout(self, service, earning_host, fixed_now):
        return service.request_payout(earning_host.id, "20.00", now=fixed_now)

    def test_transfer_updated_completes_payout(self, db, service, payout, earning_host):
        assert service.handle_transfer_event("transfer.updated", {"id": "tr_test_1"}) is True

        db.refresh(payout)
        assert payout.status == PayoutStatus.COMPLETED.value
        notification = db.query(Notification).filter_by(user_id=earning_host.id).one()
        assert notification.title == "Payout Completed"

    def test_completed_payout_is_not_regressed(self, db, service, payout):
        service.handle_transfer_event("transfer.updated", {"id": "tr_test_1"})
        service.handle_transfer_event("transfer.created", {"id": "tr_test_1"})

        db.refresh(payout)
        assert payout.status == PayoutStatus.COMPLETED.value

    def test_reversed_transfer_fails_payout(self, db, service, payout, earning_host):
        service.handle_transfer_event("transfer.reversed", {"id": "tr_test_1"})

        db.refresh(payout)
        assert payout.status == PayoutStatus.FAILED.value
        assert service.get_balance(earning_host.id).available == Decimal("50.00")

    def test_lookup_by_metadata(self, db, service, payout):
        handled = service.handle_transfer_event(
            "transfer.updated", {"id": "tr_other", "metadata": {"payoutId": payout.id}}
        )
        assert handled is True
        db.refresh(payout)
        assert payout.status == PayoutStatus.COMPLETED.value

    def test_unknown_transfer(self, service):
        assert service.handle_transfer_event("transfer.updated", {"id": "tr_missing"}) is False

    def test_unhandled_transfer_event(self, service, payout):
        assert service.handle_transfer_event("transfer.paid", {"id": "tr_test_1"}) is False


def test_list_payouts(service, earning_host, fixed_now):
    payout = service.request_payout(earning_host.id, "20.00", now=fixed_now)

    assert [p.id for p in service.list_payouts(earning_host.id)] == [payout.id]
    assert service.list_payouts(earning_host.id, page=2, limit=1) == []
    with pytest.raises(ValidationException):
        service.list_payouts(earning_host.id, limit=0)
