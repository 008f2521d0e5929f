"""Payment, payout and webhook endpoints."""

from datetime import date
from decimal import Decimal

import pytest

from app.core.exceptions import ValidationException
from app.models.booking import BookingStatus
from app.models.payment import PaymentStatus
from tests.factories.builders import create_booking, create_payment, create_stripe_account


@pytest.fixture
def pending(db, spot, client_user, vehicle):
    booking = create_booking(
        db, spot=spot, client=client_user, vehicle=vehicle,
        start_date=date(2024, 6, 10), start_time="09:00", end_time="10:00",
        status=BookingStatus.PAYMENT_PENDING.value,
    )
    payment = create_payment(db, booking, status=PaymentStatus.PENDING.value, payment_intent_id="pi_open")
    return booking, payment


class TestPayments:
    def test_fail_records_error(self, client, fake_stripe, pending, auth_headers_client):
        _, payment = pending
        fake_stripe.retrieve_payment_intent_status.return_value = "requires_payment_method"

        response = client.post(
            "/api/v1/payments/fail",
            json={"payment_id": payment.id, "error_message": "card declined"},
            headers=auth_headers_client,
        )

        assert response.status_code == 200
        assert response.json()["status"] == PaymentStatus.FAILED.value
        assert response.json()["error_message"] == "card declined"

    def test_confirm_unfinished_intent(self, client, fake_stripe, pending, auth_headers_client):
        booking, payment = pending
        fake_stripe.retrieve_payment_intent_status.return_value = "processing"

        response = client.post(
            "/api/v1/payments/confirm",
            json={"payment_id": payment.id, "booking_id": booking.id},
            headers=auth_headers_client,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "PAYMENT_NOT_COMPLETED"

    def test_history_for_both_roles(self, client, pending, auth_headers_client, auth_headers_host):
        _, payment = pending

        as_client = client.get("/api/v1/payments", headers=auth_headers_client).json()
        as_host = client.get("/api/v1/payments", params={"role": "host"}, headers=auth_headers_host).json()

        assert [p["id"] for p in as_client["payments"]] == [payment.id]
        assert [p["id"] for p in as_host["payments"]] == [payment.id]
        assert as_client["payments"][0]["total_amount"] == "10.60"

    def test_history_rejects_inverted_window(self, client, auth_headers_client):
        response = client.get(
            "/api/v1/payments",
            params={"startDate": "2024-06-02", "endDate": "2024-06-01"},
            headers=auth_headers_client,
        )
        assert response.status_code == 400


class TestPayouts:
    @pytest.fixture
    def earning_host(self, db, host, spot, client_user, vehicle):
        booking = create_booking(
            db, spot=spot, client=client_user, vehicle=vehicle,
            start_date=date(2024, 6, 10), start_time="09:00", end_time="14:00",
            status=BookingStatus.COMPLETED.value, gross_amount=Decimal("50.00"),
        )
        create_payment(db, booking)
        create_stripe_account(db, host)
        return host

    def test_balance(self, client, earning_host, auth_headers_host):
        response = client.get("/api/v1/payouts/balance", headers=auth_headers_host)

        assert response.status_code == 200
        assert response.json()["available"] == "50.00"
        assert response.json()["pending"] == "0.00"

    def test_request_and_list(self, client, earning_host, auth_headers_host):
        created = client.post("/api/v1/payouts", json={"amount": "20.00"}, headers=auth_headers_host)

        assert created.status_code == 201
        assert created.json()["net_amount"] == "19.75"
        assert created.json()["status"] == "processing"

        listed = client.get("/api/v1/payouts", headers=auth_headers_host).json()
        assert [p["id"] for p in listed["payouts"]] == [created.json()["id"]]
        assert client.get("/api/v1/payouts/balance", headers=auth_headers_host).json()["available"] == "30.25"

    def test_rate_limit_is_429(self, client, earning_host, auth_headers_host):
        for _ in range(3):
            client.post("/api/v1/payouts", json={"amount": "1.00"}, headers=auth_headers_host)

        response = client.post("/api/v1/payouts", json={"amount": "20.00"}, headers=auth_headers_host)

        assert response.status_code == 429
        assert response.json()["code"] == "PAYOUT_RATE_LIMITED"


class TestStripeWebhook:
    def test_event_is_acknowledged(self, db, client, fake_stripe, pending):
        booking, _ = pending
        fake_stripe.construct_webhook_event.return_value = {
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_open"}},
        }

        response = client.post(
            "/api/v1/webhooks/stripe", content=b'{"id": "evt_1"}', headers={"Stripe-Signature": "t=1,v1=sig"}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "event_type": "payment_intent.succeeded", "handled": True}
        fake_stripe.construct_webhook_event.assert_called_once_with(b'{"id": "evt_1"}', "t=1,v1=sig")
        db.refresh(booking)
        assert booking.status == BookingStatus.ACCEPTED.value

    def test_bad_signature(self, client, fake_stripe):
        fake_stripe.construct_webhook_event.side_effect = ValidationException(
            "Invalid webhook signature", code="INVALID_SIGNATURE"
        )

        response = client.post("/api/v1/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "bad"})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_SIGNATURE"
