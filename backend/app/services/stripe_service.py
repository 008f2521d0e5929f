# backend/app/services/stripe_service.py
"""
Stripe adapter for the Parkspace platform.

Thin wrapper over the Stripe SDK covering exactly the processor calls the
booking engine needs:
- PaymentIntents for booking charges (create, retrieve, cancel, refund)
- Transfers to a host's connected account for payouts
- Connected-account lookups
- Webhook signature verification

Money-moving calls are never retried here; a Stripe failure is fatal to the
attempt and surfaces as ExternalServiceException so the caller's transaction
rolls back.
"""

import json
import logging
from typing import Any, Dict, Optional

import stripe

from ..core.config import settings
from ..core.exceptions import ExternalServiceException, ServiceException, ValidationException

logger = logging.getLogger(__name__)


class StripeService:
    """Processor calls used by booking, payment and payout services."""

    def __init__(self) -> None:
        self.logger = logging.getLogger(__name__)
        self.stripe_configured = False
        if settings.stripe_configured:
            stripe.api_key = settings.stripe_secret_key.get_secret_value()
            # One retry for transient network errors
            stripe.max_network_retries = 1
            self.stripe_configured = True
        else:
            self.logger.warning("Stripe secret key not configured")

    def _check_stripe_configured(self) -> None:
        """Check if Stripe is properly configured before making API calls."""
        if not self.stripe_configured:
            raise ServiceException(
                "Stripe service not configured. Please check STRIPE_SECRET_KEY environment variable."
            )

    # PaymentIntents

    def create_payment_intent(
        self,
        amount_cents: int,
        metadata: Dict[str, str],
        *,
        currency: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, str]:
        """
        Open a PaymentIntent for a booking charge.

        Returns ``{"id", "client_secret", "status"}``.
        """
        self._check_stripe_configured()
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=currency or settings.stripe_currency,
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error creating payment intent: {str(e)}")
            raise ExternalServiceException(
                f"Failed to create payment intent: {str(e)}",
                code="PAYMENT_PROCESSOR_ERROR",
            )
        self.logger.info(f"Created payment intent {intent.id} for {amount_cents} cents")
        return {"id": intent.id, "client_secret": intent.client_secret, "status": intent.status}

    def retrieve_payment_intent_status(self, payment_intent_id: str) -> str:
        self._check_stripe_configured()
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id)
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error retrieving payment intent: {str(e)}")
            raise ExternalServiceException(
                f"Failed to retrieve payment intent: {str(e)}",
                code="PAYMENT_PROCESSOR_ERROR",
            )
        return str(intent.status)

    def cancel_payment_intent(
        self, payment_intent_id: str, *, idempotency_key: Optional[str] = None
    ) -> str:
        """Cancel a PaymentIntent to release the authorization; returns its new status."""
        self._check_stripe_configured()
        try:
            intent = stripe.PaymentIntent.cancel(
                payment_intent_id, idempotency_key=idempotency_key
            )
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error canceling payment intent: {str(e)}")
            raise ExternalServiceException(
                f"Failed to cancel payment intent: {str(e)}",
                code="PAYMENT_PROCESSOR_ERROR",
            )
        return str(intent.status)

    def refund_payment_intent(
        self, payment_intent_id: str, *, idempotency_key: Optional[str] = None
    ) -> str:
        """Refund the full captured amount of a PaymentIntent; returns the refund id."""
        self._check_stripe_configured()
        try:
            refund = stripe.Refund.create(
                payment_intent=payment_intent_id, idempotency_key=idempotency_key
            )
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error refunding payment intent: {str(e)}")
            raise ExternalServiceException(
                f"Failed to refund payment intent: {str(e)}",
                code="PAYMENT_PROCESSOR_ERROR",
            )
        self.logger.info(f"Refunded payment intent {payment_intent_id} ({refund.id})")
        return str(refund.id)

    # Transfers and connected accounts

    def create_transfer(
        self,
        amount_cents: int,
        destination: str,
        metadata: Dict[str, str],
        *,
        currency: Optional[str] = None,
    ) -> str:
        """Move funds to a connected account; returns the transfer id."""
        self._check_stripe_configured()
        try:
            transfer = stripe.Transfer.create(
                amount=amount_cents,
                currency=currency or settings.stripe_currency,
                destination=destination,
                metadata=metadata,
            )
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error creating transfer to {destination}: {str(e)}")
            raise ExternalServiceException(
                f"Failed to create transfer: {str(e)}",
                code="PAYOUT_TRANSFER_FAILED",
            )
        return str(transfer.id)

    def retrieve_account_payouts_enabled(self, account_id: str) -> bool:
        self._check_stripe_configured()
        try:
            account = stripe.Account.retrieve(account_id)
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error retrieving account {account_id}: {str(e)}")
            raise ExternalServiceException(
                f"Failed to retrieve connected account: {str(e)}",
                code="PAYMENT_PROCESSOR_ERROR",
            )
        return bool(getattr(account, "payouts_enabled", False))

    # Webhooks

    def construct_webhook_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Verify a webhook delivery and return the parsed event.

        Raises:
            ServiceException: If the webhook secret is not configured
            ValidationException: If the signature or payload is invalid
        """
        webhook_secret = settings.stripe_webhook_secret.get_secret_value()
        if not webhook_secret:
            raise ServiceException("Webhook secret not configured")

        raw = payload.encode("utf-8") if isinstance(payload, str) else payload

        try:
            stripe.Webhook.construct_event(raw, signature, webhook_secret)
        except stripe.SignatureVerificationError as e:
            self.logger.warning(f"Invalid webhook signature: {str(e)}")
            raise ValidationException("Invalid webhook signature", code="INVALID_SIGNATURE")
        except ValueError as e:
            self.logger.warning(f"Invalid webhook payload: {str(e)}")
            raise ValidationException(f"Invalid webhook payload: {str(e)}")
        # Signature is valid, so the raw body is the event itself
        return json.loads(raw)
