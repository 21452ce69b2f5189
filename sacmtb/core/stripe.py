"""Stripe client configuration and singleton."""

import logging

import stripe

from sacmtb.core.config import get_settings

logger = logging.getLogger(__name__)


def configure_stripe() -> None:
    """Configure Stripe SDK with API key from settings.

    This should be called once at application startup.
    If Stripe keys are not configured, Stripe operations will fail with clear errors.
    """
    settings = get_settings()
    if settings.stripe_secret_key:
        stripe.api_key = settings.stripe_secret_key
        # PaymentGateway owns the retry policy
        stripe.max_network_retries = 0
    else:
        logger.warning("Stripe secret key not configured. Online payments will not work.")


def get_stripe() -> stripe:
    """Get the configured Stripe module.

    Returns:
        stripe: The Stripe module with API key configured.

    Note:
        Stripe SDK uses module-level configuration, so this returns
        the stripe module itself. Ensure configure_stripe() has been
        called before using Stripe API calls.
    """
    return stripe
