"""Fire-and-forget notification dispatch and order event notifications."""

import asyncio
import logging
from typing import Any

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from sacmtb.core.config import Settings, get_settings
from sacmtb.services import email_templates
from sacmtb.services.email_service import EmailService, NotificationResult

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Schedules email deliveries as background tasks.

    Each delivery is bounded by the notification timeout and retried on
    timeout. Results are logged when the task finishes; a failed delivery
    never propagates to the code that dispatched it.
    """

    def __init__(self, email_service: EmailService | None = None, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._email_service = email_service
        self._tasks: set[asyncio.Task] = set()

    @property
    def email_service(self) -> EmailService:
        """Get email service."""
        if self._email_service is None:
            self._email_service = EmailService()
        return self._email_service

    @property
    def pending(self) -> int:
        """Number of deliveries still in flight."""
        return len(self._tasks)

    def dispatch(self, recipient: str, subject: str, html: str) -> asyncio.Task:
        """Schedule one email without waiting for it.

        Must be called from inside a running event loop.

        Returns:
            asyncio.Task: The delivery task, resolving to a NotificationResult.
        """
        task = asyncio.create_task(self._deliver(recipient, subject, html))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _deliver(self, recipient: str, subject: str, html: str) -> NotificationResult:
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(asyncio.TimeoutError),
                stop=stop_after_attempt(self.settings.notification_max_attempts),
                wait=wait_exponential(multiplier=0.5, max=4),
                reraise=True,
            ):
                with attempt:
                    result = await asyncio.wait_for(
                        self.email_service.send_email(recipient, subject, html),
                        timeout=self.settings.notification_timeout_seconds,
                    )
        except asyncio.TimeoutError:
            result = NotificationResult(recipient, subject, success=False, error="Delivery timed out")
        except Exception as e:
            logger.exception("Unexpected error delivering '%s' to %s", subject, recipient)
            result = NotificationResult(recipient, subject, success=False, error=str(e))

        if result.success:
            logger.info("Notification '%s' delivered to %s", subject, recipient)
        else:
            logger.warning("Notification '%s' to %s failed: %s", subject, recipient, result.error)
        return result

    async def drain(self) -> list[NotificationResult]:
        """Wait for every in-flight delivery and return their results."""
        results: list[NotificationResult] = []
        while self._tasks:
            done = await asyncio.gather(*list(self._tasks), return_exceptions=True)
            results.extend(r for r in done if isinstance(r, NotificationResult))
        return results


class OrderNotifier:
    """Sends order lifecycle emails to the customer and the admin recipient."""

    def __init__(self, dispatcher: NotificationDispatcher | None = None, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> NotificationDispatcher:
        """Get notification dispatcher."""
        if self._dispatcher is None:
            self._dispatcher = get_notification_dispatcher()
        return self._dispatcher

    def _notify(self, order: dict[str, Any], render: Any, recipient: str, for_admin: bool) -> asyncio.Task | None:
        # The order change is already committed; a bad template must not undo it
        try:
            subject, html = render(order, for_admin=for_admin)
            return self.dispatcher.dispatch(recipient, subject, html)
        except Exception:
            logger.exception("Could not prepare notification for order %s to %s", order.get("id"), recipient)
            return None

    def _notify_both(self, order: dict[str, Any], render: Any) -> list[asyncio.Task]:
        tasks = []
        user_email = order.get("user_email")
        if user_email:
            tasks.append(self._notify(order, render, user_email, for_admin=False))
        else:
            logger.warning("Order %s has no customer email; skipping customer notification", order.get("id"))
        tasks.append(self._notify(order, render, self.settings.admin_email, for_admin=True))
        return [t for t in tasks if t is not None]

    def order_confirmed(self, order: dict[str, Any]) -> list[asyncio.Task]:
        """Notify that an order was placed (COD) or paid (ONLINE)."""
        return self._notify_both(order, email_templates.order_confirmation_email)

    def order_shipped(self, order: dict[str, Any]) -> list[asyncio.Task]:
        """Notify that an order left the warehouse."""
        return self._notify_both(order, email_templates.shipment_email)

    def order_delivered(self, order: dict[str, Any]) -> list[asyncio.Task]:
        """Notify that an order was delivered."""
        return self._notify_both(order, email_templates.delivered_email)

    def order_cancelled(self, order: dict[str, Any]) -> list[asyncio.Task]:
        """Notify that an order was cancelled."""
        return self._notify_both(order, email_templates.cancelled_email)


# Global singleton instance
_dispatcher: NotificationDispatcher | None = None


def get_notification_dispatcher() -> NotificationDispatcher:
    """Get or create the global notification dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher()
    return _dispatcher


async def shutdown_notification_dispatcher() -> None:
    """Wait for in-flight notifications. Call at app shutdown."""
    global _dispatcher
    if _dispatcher:
        results = await _dispatcher.drain()
        if results:
            logger.info("Drained %d pending notifications", len(results))
        _dispatcher = None
