"""Payment gateway webhook receiver."""

import logging

from fastapi import APIRouter, Depends, Header, Request

from sacmtb.api.middleware.error_handler import (
    InvalidSignatureError,
    InvalidTransitionError,
    NotFoundError,
    StockReconciliationError,
    ValidationError,
)
from sacmtb.schemas.payment import WebhookAck
from sacmtb.services.order_service import OrderService, get_order_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post(
    "/payments",
    response_model=WebhookAck,
    summary="Payment gateway webhook",
    description="Verify the event over the raw body and settle the referenced order.",
)
async def payment_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="stripe-signature"),
    order_service: OrderService = Depends(get_order_service),
) -> WebhookAck:
    """Receive a gateway event.

    Events that verify but cannot be applied are logged and acknowledged so
    the gateway does not keep redelivering them.

    Raises:
        InvalidSignatureError: If the signature header is missing or does not
            verify against the raw body.
    """
    if not stripe_signature:
        raise InvalidSignatureError("Missing stripe-signature header")

    payload = await request.body()
    event = order_service.gateway.construct_webhook_event(payload, stripe_signature)
    logger.info("Received webhook event %s (%s)", event.get("id"), event.get("type"))

    try:
        await order_service.settle_from_webhook(event)
    except StockReconciliationError as e:
        logger.error("Webhook %s settled with stock shortfall: %s", event.get("id"), e.details)
    except (NotFoundError, ValidationError, InvalidTransitionError) as e:
        logger.warning("Webhook %s not applied: %s", event.get("id"), e.message)

    return WebhookAck()
