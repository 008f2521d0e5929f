"""PaymentService: confirmation, failure, intent refresh, history and webhooks."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from app.core.enums import ActorRole
from app.core.exceptions import (
    BookingConflictException,
    BusinessRuleException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from app.models.booking import BookingStatus, CanceledBy
from app.models.notification import Notification
from app.models.payment import PaymentStatus
from app.services.payment_service import PaymentService
from tests.factories.builders import create_booking, create_payment

MONDAY = date(2024, 6, 10)


@pytest.fixture
def service(db, fake_stripe):
    return PaymentService(db, stripe_service=fake_stripe)


@pytest.fixture
def pending_booking(db, spot, client_user, vehicle):
    return create_booking(
        db, spot=spot, client=client_user, vehicle=vehicle,
        start_date=MONDAY, start_time="09:00", end_time="10:00",
        status=BookingStatus.PAYMENT_PENDING.value,
    )


@pytest.fixture
def pending_payment(db, pending_booking):
    return create_payment(db, pending_booking, status=PaymentStatus.PENDING.value, payment_intent_id="pi_open")


class TestConfirmPayment:
    def test_succeeded_intent_accepts_booking(self, db, service, pending_payment, pending_booking, client_user, host):
        booking = service.confirm_payment(client_user.id, pending_payment.id, pending_booking.id)

        assert booking.status == BookingStatus.ACCEPTED.value
        db.refresh(pending_payment)
        assert pending_payment.status == PaymentStatus.SUCCEEDED.value
        notification = db.query(Notification).filter_by(user_id=host.id).one()
        assert notification.title == "New Booking"

    def test_unfinished_intent(self, db, service, fake_stripe, pending_payment, pending_booking, client_user):
        fake_stripe.retrieve_payment_intent_status.return_value = "processing"

        with pytest.raises(ValidationException) as exc_info:
            service.confirm_payment(client_user.id, pending_payment.id, pending_booking.id)

        assert exc_info.value.code == "PAYMENT_NOT_COMPLETED"
        db.refresh(pending_booking)
        assert pending_booking.status == BookingStatus.PAYMENT_PENDING.value

    def test_payment_must_belong_to_booking(self, service, pending_payment, client_user):
        with pytest.raises(NotFoundException):
            service.confirm_payment(client_user.id, pending_payment.id, "01HZZZZZZZZZZZZZZZZZZZZZZZ")

    def test_payment_must_belong_to_client(self, service, pending_payment, pending_booking, other_client):
        with pytest.raises(ForbiddenException):
            service.confirm_payment(other_client.id, pending_payment.id, pending_booking.id)

    def test_first_payer_wins(
        self, db, service, fake_stripe, spot, pending_payment, pending_booking, client_user, other_client, other_vehicle
    ):
        rival = create_booking(
            db, spot=spot, client=other_client, vehicle=other_vehicle,
            start_date=MONDAY, start_time="09:30", end_time="10:30",
            status=BookingStatus.PAYMENT_PENDING.value,
        )
        rival_payment = create_payment(db, rival, status=PaymentStatus.PENDING.value, payment_intent_id="pi_rival")

        service.confirm_payment(client_user.id, pending_payment.id, pending_booking.id)
        with pytest.raises(BookingConflictException) as exc_info:
            service.confirm_payment(other_client.id, rival_payment.id, rival.id)

        assert exc_info.value.details["refunded"] is True
        fake_stripe.refund_payment_intent.assert_called_once_with("pi_rival", idempotency_key="refund:pi_rival")
        db.refresh(rival)
        db.refresh(rival_payment)
        assert rival.status == BookingStatus.CANCELLED.value
        assert rival.canceled_by == CanceledBy.ADMIN.value
        assert rival_payment.status == PaymentStatus.REFUNDED.value
        notification = db.query(Notification).filter_by(user_id=other_client.id).one()
        assert notification.title == "Booking Unavailable"

    def test_refunded_booking_does_not_count_toward_balances(
        self, db, service, spot, pending_payment, pending_booking, client_user, other_client, other_vehicle
    ):
        rival = create_booking(
            db, spot=spot, client=other_client, vehicle=other_vehicle,
            start_date=MONDAY, start_time="09:30", end_time="10:30",
            status=BookingStatus.PAYMENT_PENDING.value,
        )
        rival_payment = create_payment(db, rival, status=PaymentStatus.PENDING.value, payment_intent_id="pi_rival")
        service.confirm_payment(client_user.id, pending_payment.id, pending_booking.id)
        with pytest.raises(BookingConflictException):
            service.confirm_payment(other_client.id, rival_payment.id, rival.id)

        balance = service.payout_service.get_balance(other_client.id)

        assert balance.available == Decimal("0.00")

    def test_confirming_twice_is_harmless(self, db, service, pending_payment, pending_booking, client_user, host):
        service.confirm_payment(client_user.id, pending_payment.id, pending_booking.id)
        booking = service.confirm_payment(client_user.id, pending_payment.id, pending_booking.id)

        assert booking.status == BookingStatus.ACCEPTED.value
        assert db.query(Notification).filter_by(user_id=host.id).count() == 1


class TestFailPayment:
    def test_records_failure(self, db, service, fake_stripe, pending_payment, pending_booking, client_user):
        fake_stripe.retrieve_payment_intent_status.return_value = "requires_payment_method"

        payment = service.fail_payment(client_user.id, pending_payment.id, "card declined")

        assert payment.status == PaymentStatus.FAILED.value
        assert payment.error_message == "card declined"
        db.refresh(pending_booking)
        assert pending_booking.status == BookingStatus.PAYMENT_PENDING.value

    def test_succeeded_intent_cannot_fail(self, service, pending_payment, client_user):
        with pytest.raises(ValidationException) as exc_info:
            service.fail_payment(client_user.id, pending_payment.id, "oops")
        assert exc_info.value.code == "PAYMENT_ALREADY_SUCCEEDED"

    def test_unknown_payment(self, service, client_user):
        with pytest.raises(NotFoundException):
            service.fail_payment(client_user.id, "01HZZZZZZZZZZZZZZZZZZZZZZZ")


class TestRefreshPaymentIntent:
    def test_stale_intent_is_replaced(self, service, fake_stripe, pending_payment, pending_booking, client_user):
        fake_stripe.retrieve_payment_intent_status.return_value = "requires_payment_method"

        payment = service.refresh_payment_intent(client_user.id, pending_booking.id, pending_payment.id)

        assert payment.payment_intent_id == "pi_test_1"
        assert payment.client_secret == "pi_test_1_secret"
        assert payment.status == PaymentStatus.PENDING.value
        fake_stripe.cancel_payment_intent.assert_called_once()
        assert fake_stripe.create_payment_intent.call_args.args[0] == 1060

    def test_cancelled_intent_is_not_cancelled_again(
        self, service, fake_stripe, pending_payment, pending_booking, client_user
    ):
        fake_stripe.retrieve_payment_intent_status.return_value = "canceled"

        service.refresh_payment_intent(client_user.id, pending_booking.id, pending_payment.id)

        fake_stripe.cancel_payment_intent.assert_not_called()
        fake_stripe.create_payment_intent.assert_called_once()

    def test_live_intent_is_kept(self, service, fake_stripe, pending_payment, pending_booking, client_user):
        fake_stripe.retrieve_payment_intent_status.return_value = "requires_confirmation"

        payment = service.refresh_payment_intent(client_user.id, pending_booking.id, pending_payment.id)

        assert payment.payment_intent_id == "pi_open"
        fake_stripe.create_payment_intent.assert_not_called()

    def test_failed_payment_gets_new_intent(
        self, service, fake_stripe, pending_payment, pending_booking, client_user
    ):
        fake_stripe.retrieve_payment_intent_status.return_value = "requires_confirmation"
        service.fail_payment(client_user.id, pending_payment.id, "declined")

        payment = service.refresh_payment_intent(client_user.id, pending_booking.id, pending_payment.id)

        assert payment.payment_intent_id == "pi_test_1"
        assert payment.status == PaymentStatus.PENDING.value

    def test_booking_must_await_payment(self, db, service, pending_payment, pending_booking, client_user):
        pending_booking.status = BookingStatus.ACCEPTED.value
        db.commit()
        with pytest.raises(BusinessRuleException):
            service.refresh_payment_intent(client_user.id, pending_booking.id, pending_payment.id)


class TestListPayments:
    def test_client_and_host_views(self, service, pending_payment, client_user, host):
        assert [p.id for p in service.list_payments(client_user.id)] == [pending_payment.id]
        assert [p.id for p in service.list_payments(host.id, ActorRole.HOST)] == [pending_payment.id]
        assert service.list_payments(host.id) == []

    def test_status_filter(self, service, pending_payment, client_user):
        assert service.list_payments(client_user.id, status="succeeded") == []
        assert len(service.list_payments(client_user.id, status="pending")) == 1

    def test_date_window(self, service, pending_payment, client_user):
        wide = service.list_payments(client_user.id, start_date=date(2000, 1, 1), end_date=date(2999, 12, 31))
        assert len(wide) == 1
        assert service.list_payments(client_user.id, start_date=date(2999, 1, 1)) == []

    def test_invalid_filters(self, service, client_user):
        with pytest.raises(ValidationException):
            service.list_payments(client_user.id, status="bogus")
        with pytest.raises(ValidationException):
            service.list_payments(client_user.id, start_date=date(2024, 6, 2), end_date=date(2024, 6, 1))
        with pytest.raises(ValidationException):
            service.list_payments(client_user.id, page=0)


class TestWebhookEvents:
    def _event(self, event_type, obj):
        return {"type": event_type, "data": {"object": obj}}

    def test_intent_succeeded(self, db, service, pending_payment, pending_booking):
        result = service.handle_webhook_event(self._event("payment_intent.succeeded", {"id": "pi_open"}))

        assert result == {"success": True, "event_type": "payment_intent.succeeded", "handled": True}
        db.refresh(pending_booking)
        assert pending_booking.status == BookingStatus.ACCEPTED.value

    def test_intent_failed(self, db, service, pending_payment, client_user):
        result = service.handle_webhook_event(
            self._event(
                "payment_intent.payment_failed",
                {"id": "pi_open", "last_payment_error": {"message": "insufficient funds"}},
            )
        )

        assert result["handled"] is True
        db.refresh(pending_payment)
        assert pending_payment.status == PaymentStatus.FAILED.value
        assert pending_payment.error_message == "insufficient funds"
        notification = db.query(Notification).filter_by(user_id=client_user.id).one()
        assert notification.title == "Payment Failed"

    def test_intent_succeeded_after_range_was_taken(
        self, db, service, fake_stripe, spot, pending_payment, pending_booking, other_client, other_vehicle
    ):
        create_booking(
            db, spot=spot, client=other_client, vehicle=other_vehicle,
            start_date=MONDAY, start_time="09:30", end_time="10:30",
        )

        result = service.handle_webhook_event(self._event("payment_intent.succeeded", {"id": "pi_open"}))
        redelivered = service.handle_webhook_event(self._event("payment_intent.succeeded", {"id": "pi_open"}))

        assert result == {"success": True, "event_type": "payment_intent.succeeded", "handled": True}
        assert redelivered["handled"] is True
        fake_stripe.refund_payment_intent.assert_called_once_with("pi_open", idempotency_key="refund:pi_open")
        db.refresh(pending_booking)
        db.refresh(pending_payment)
        assert pending_booking.status == BookingStatus.CANCELLED.value
        assert pending_payment.status == PaymentStatus.REFUNDED.value

    def test_unknown_intent(self, service):
        result = service.handle_webhook_event(self._event("payment_intent.succeeded", {"id": "pi_nope"}))
        assert result["handled"] is False

    def test_unknown_event_type(self, service):
        result = service.handle_webhook_event(self._event("customer.created", {"id": "cus_1"}))
        assert result == {"success": True, "event_type": "customer.created", "handled": False}

    def test_transfer_events_go_to_payouts(self, db, fake_stripe):
        payout_service = MagicMock()
        payout_service.handle_transfer_event.return_value = True
        service = PaymentService(db, stripe_service=fake_stripe, payout_service=payout_service)

        result = service.handle_webhook_event(self._event("transfer.created", {"id": "tr_1"}))

        assert result["handled"] is True
        payout_service.handle_transfer_event.assert_called_once_with("transfer.created", {"id": "tr_1"})

    def test_handle_webhook_verifies_signature(self, db, fake_stripe):
        fake_stripe.construct_webhook_event.return_value = self._event("customer.created", {})
        service = PaymentService(db, stripe_service=fake_stripe)

        result = service.handle_webhook(b"{}", "t=1,v1=abc")

        fake_stripe.construct_webhook_event.assert_called_once_with(b"{}", "t=1,v1=abc")
        assert result["handled"] is False
