# backend/app/routes/v1/webhooks.py
"""
Stripe webhook receiver - API v1

The raw body is passed through untouched; signature verification needs the
exact bytes Stripe signed.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Header, Request

from ...api.dependencies import get_payment_service
from ...core.exceptions import DomainException
from ...schemas.payment_schemas import WebhookAckResponse
from ...services.payment_service import PaymentService
from ._shared import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks-v1"])


@router.post("/stripe", response_model=WebhookAckResponse)
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header("", alias="Stripe-Signature"),
    payment_service: PaymentService = Depends(get_payment_service),
) -> WebhookAckResponse:
    payload = await request.body()
    try:
        result = await asyncio.to_thread(
            payment_service.handle_webhook, payload, stripe_signature
        )
        return WebhookAckResponse.model_validate(result)
    except DomainException as e:
        logger.warning(f"Rejected Stripe webhook: {e.message}")
        handle_domain_exception(e)
