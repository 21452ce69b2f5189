"""Payment gateway adapter: intents, confirmation signatures and webhook events."""

import asyncio
import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import stripe
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from sacmtb.api.middleware.error_handler import DependencyFailureError, InvalidSignatureError
from sacmtb.core.config import Settings, get_settings
from sacmtb.core.stripe import get_stripe

logger = logging.getLogger(__name__)

RETRYABLE_GATEWAY_ERRORS = (asyncio.TimeoutError, stripe.APIConnectionError)


@dataclass
class PaymentIntent:
    """A gateway-side payment intent for one order."""

    intent_id: str
    client_secret: str | None
    amount: int
    currency: str
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


def to_minor_units(amount: float | Decimal | str) -> int:
    """Convert a major-unit amount to integer minor units, rounding half up.

    >>> to_minor_units(1000.00)
    100000
    """
    value = Decimal(str(amount)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentGateway:
    """Wraps the Stripe SDK behind the operations the order engine needs."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.stripe = get_stripe()

    async def create_intent(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        metadata: dict[str, str] | None = None,
    ) -> PaymentIntent:
        """Create a payment intent for an order.

        Each attempt runs in a worker thread bounded by the gateway timeout;
        timeouts and connection errors are retried with backoff.

        Args:
            amount_minor: Amount in the currency's minor unit.
            currency: ISO currency code.
            receipt: Merchant receipt reference, e.g. ``rcpt_<orderId>``.
            metadata: Extra key/values stored on the intent.

        Returns:
            PaymentIntent: The created intent.

        Raises:
            DependencyFailureError: If the gateway is not configured, keeps
                timing out, or rejects the request.
        """
        if not self.settings.stripe_secret_key:
            raise DependencyFailureError("Online payments are not configured")

        params = {
            "amount": amount_minor,
            "currency": currency.lower(),
            "description": receipt,
            "metadata": {"receipt": receipt, **(metadata or {})},
            "automatic_payment_methods": {"enabled": True},
        }

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(RETRYABLE_GATEWAY_ERRORS),
                stop=stop_after_attempt(self.settings.gateway_max_attempts),
                wait=wait_exponential(multiplier=0.5, max=4),
                reraise=True,
            ):
                with attempt:
                    intent = await asyncio.wait_for(
                        asyncio.to_thread(self.stripe.PaymentIntent.create, **params),
                        timeout=self.settings.gateway_timeout_seconds,
                    )
        except asyncio.TimeoutError as e:
            logger.error("Payment intent creation timed out for %s", receipt)
            raise DependencyFailureError("Payment gateway timed out") from e
        except stripe.StripeError as e:
            logger.error("Payment intent creation failed for %s: %s", receipt, str(e))
            raise DependencyFailureError("Payment gateway rejected the request") from e

        logger.info("Created payment intent %s for %s (%d %s)", intent["id"], receipt, amount_minor, currency)
        return PaymentIntent(
            intent_id=intent["id"],
            client_secret=intent.get("client_secret"),
            amount=int(intent.get("amount", amount_minor)),
            currency=intent.get("currency", currency.lower()),
            raw=dict(intent),
        )

    def sign(self, order_ref: str, payment_ref: str) -> str:
        """HMAC-SHA256 hex digest of ``order_ref|payment_ref`` under the shared secret."""
        message = f"{order_ref}|{payment_ref}".encode("utf-8")
        return hmac.new(
            self.settings.payment_signing_secret.encode("utf-8"),
            message,
            hashlib.sha256,
        ).hexdigest()

    def verify_signature(self, order_ref: str, payment_ref: str, signature: str) -> bool:
        """Check a client-supplied payment confirmation signature.

        Args:
            order_ref: Gateway order (intent) id.
            payment_ref: Gateway payment id.
            signature: Hex signature supplied by the client.

        Returns:
            bool: True only if the signature matches, compared in constant time.
        """
        if not self.settings.payment_signing_secret:
            logger.error("Payment signing secret is not configured; rejecting signature")
            return False
        if not signature:
            return False
        expected = self.sign(order_ref, payment_ref)
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))

    def construct_webhook_event(self, payload: bytes, sig_header: str) -> dict[str, Any]:
        """Verify a webhook delivery over its raw bytes and parse it.

        Args:
            payload: Raw request body.
            sig_header: Value of the Stripe-Signature header.

        Returns:
            dict: The verified event.

        Raises:
            InvalidSignatureError: If the secret is missing, the signature does
                not match, or the payload is not a valid event.
        """
        if not self.settings.stripe_webhook_secret:
            logger.error("Webhook secret is not configured; rejecting delivery")
            raise InvalidSignatureError("Invalid webhook signature")

        try:
            return self.stripe.Webhook.construct_event(
                payload, sig_header, self.settings.stripe_webhook_secret
            )
        except stripe.SignatureVerificationError as e:
            logger.warning("Invalid webhook signature: %s", str(e))
            raise InvalidSignatureError("Invalid webhook signature") from e
        except ValueError as e:
            logger.warning("Malformed webhook payload: %s", str(e))
            raise InvalidSignatureError("Invalid webhook payload") from e
