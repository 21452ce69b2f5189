"""Email service using Resend for transactional emails."""

import asyncio
import logging
from dataclasses import dataclass

import resend

from sacmtb.core.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class NotificationResult:
    """Outcome of a single delivery attempt, logged by the caller."""

    recipient: str
    subject: str
    success: bool
    message_id: str | None = None
    error: str | None = None


class EmailService:
    """Service for sending transactional emails via Resend."""

    def __init__(self) -> None:
        """Initialize email service with Resend API key."""
        settings = get_settings()
        resend.api_key = settings.resend_api_key
        self.configured = bool(settings.resend_api_key)
        self.from_email = settings.email_from_address

    async def send_email(self, recipient: str, subject: str, html: str) -> NotificationResult:
        """Send one email.

        Delivery errors are reported in the result, never raised.

        Args:
            recipient: Destination address.
            subject: Subject line.
            html: HTML body.

        Returns:
            NotificationResult: Success flag with the provider message id or error.
        """
        if not self.configured:
            logger.warning("Resend API key not configured; not sending '%s' to %s", subject, recipient)
            return NotificationResult(recipient, subject, success=False, error="Email delivery is not configured")

        try:
            response = await asyncio.to_thread(
                resend.Emails.send,
                {
                    "from": self.from_email,
                    "to": [recipient],
                    "subject": subject,
                    "html": html,
                },
            )
        except Exception as e:
            logger.error("Failed to send '%s' to %s: %s", subject, recipient, str(e))
            return NotificationResult(recipient, subject, success=False, error=str(e))

        message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        logger.info("Email '%s' sent to %s, id: %s", subject, recipient, message_id)
        return NotificationResult(recipient, subject, success=True, message_id=message_id)
