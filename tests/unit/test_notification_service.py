"""Unit tests for notification dispatch."""

import asyncio
from typing import Any
from unittest.mock import MagicMock

import pytest

from sacmtb.services.email_service import NotificationResult
from sacmtb.services.email_templates import TRACKING_FALLBACK_TEXT
from sacmtb.services.notification_service import NotificationDispatcher, OrderNotifier


class RecordingEmailService:
    """Email service double that records deliveries."""

    def __init__(self, delay: float = 0.0, fail: bool = False) -> None:
        self.delay = delay
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    async def send_email(self, recipient: str, subject: str, html: str) -> NotificationResult:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.sent.append((recipient, subject))
        if self.fail:
            return NotificationResult(recipient, subject, success=False, error="provider down")
        return NotificationResult(recipient, subject, success=True, message_id="msg_1")


@pytest.fixture
def fast_settings(test_settings: Any) -> Any:
    """Settings with a short delivery timeout."""
    return test_settings.model_copy(update={"notification_timeout_seconds": 0.05, "notification_max_attempts": 2})


@pytest.fixture
def sample_order() -> dict:
    """Create a sample order row."""
    return {
        "id": "order-1",
        "user_id": "user-1",
        "user_name": "Asha",
        "user_email": "asha@example.com",
        "order_items": [{"product_id": "p1", "name": "Trailblazer 29", "image": "", "qty": 1, "price": 1000.0}],
        "shipping_address": {"fullName": "Asha", "address": "1 MG Road", "city": "Pune", "postalCode": "411001"},
        "payment_method": "COD",
        "total_price": 1000.0,
        "status": "shipping",
        "delivery_partner": "Unknown Co",
        "tracking_id": "X1",
        "tracking_link": "",
    }


class TestNotificationDispatcher:
    """Tests for NotificationDispatcher."""

    @pytest.mark.asyncio
    async def test_dispatch_does_not_wait_for_delivery(self, fast_settings: Any) -> None:
        """Test that dispatch returns while the delivery is still running."""
        email_service = RecordingEmailService(delay=0.01)
        dispatcher = NotificationDispatcher(email_service, fast_settings)

        dispatcher.dispatch("a@example.com", "Hello", "<p>hi</p>")

        assert dispatcher.pending == 1
        assert email_service.sent == []

        results = await dispatcher.drain()

        assert dispatcher.pending == 0
        assert [r.success for r in results] == [True]
        assert email_service.sent == [("a@example.com", "Hello")]

    @pytest.mark.asyncio
    async def test_timeout_is_reported_not_raised(self, fast_settings: Any) -> None:
        """Test that a stuck provider yields a failed result after retries."""
        dispatcher = NotificationDispatcher(RecordingEmailService(delay=1.0), fast_settings)

        task = dispatcher.dispatch("a@example.com", "Hello", "<p>hi</p>")
        result = await task

        assert result.success is False
        assert result.error == "Delivery timed out"

    @pytest.mark.asyncio
    async def test_provider_failure_is_reported(self, fast_settings: Any) -> None:
        """Test that a provider error is captured in the result."""
        dispatcher = NotificationDispatcher(RecordingEmailService(fail=True), fast_settings)

        dispatcher.dispatch("a@example.com", "Hello", "<p>hi</p>")
        results = await dispatcher.drain()

        assert results[0].success is False
        assert results[0].error == "provider down"

    @pytest.mark.asyncio
    async def test_drain_with_nothing_pending(self, fast_settings: Any) -> None:
        """Test that draining an idle dispatcher returns immediately."""
        dispatcher = NotificationDispatcher(RecordingEmailService(), fast_settings)
        assert await dispatcher.drain() == []


class TestOrderNotifier:
    """Tests for OrderNotifier."""

    def test_notifies_customer_and_admin(self, test_settings: Any, sample_order: dict) -> None:
        """Test that each event goes to the customer and the admin recipient."""
        dispatcher = MagicMock()
        notifier = OrderNotifier(dispatcher, test_settings)

        notifier.order_confirmed(sample_order)

        recipients = [c.args[0] for c in dispatcher.dispatch.call_args_list]
        subjects = [c.args[1] for c in dispatcher.dispatch.call_args_list]
        assert recipients == ["asha@example.com", test_settings.admin_email]
        assert subjects == ["Order Confirmed - order-1", "New Order - order-1"]

    def test_skips_customer_without_email(self, test_settings: Any, sample_order: dict) -> None:
        """Test that the admin is still notified when the customer has no email."""
        dispatcher = MagicMock()
        notifier = OrderNotifier(dispatcher, test_settings)
        sample_order["user_email"] = None

        notifier.order_cancelled(sample_order)

        assert dispatcher.dispatch.call_count == 1
        assert dispatcher.dispatch.call_args.args[0] == test_settings.admin_email

    def test_shipment_without_link_uses_fallback_text(self, test_settings: Any, sample_order: dict) -> None:
        """Test that an unmatched carrier gets the fallback instructions."""
        dispatcher = MagicMock()
        notifier = OrderNotifier(dispatcher, test_settings)

        notifier.order_shipped(sample_order)

        html = dispatcher.dispatch.call_args_list[0].args[2]
        assert TRACKING_FALLBACK_TEXT in html
        assert "X1" in html

    def test_render_failure_is_logged_not_raised(self, test_settings: Any, sample_order: dict) -> None:
        """Test that a template error for one recipient does not stop the other or raise."""
        dispatcher = MagicMock()
        notifier = OrderNotifier(dispatcher, test_settings)

        def render(order: dict, for_admin: bool = False) -> tuple[str, str]:
            if not for_admin:
                raise TypeError("bad address field")
            return "Admin copy", "<p>ok</p>"

        tasks = notifier._notify_both(sample_order, render)

        assert len(tasks) == 1
        assert dispatcher.dispatch.call_args.args[0] == test_settings.admin_email

    def test_legacy_address_with_null_fields(self, test_settings: Any, sample_order: dict) -> None:
        """Test that null address fields still render a confirmation."""
        dispatcher = MagicMock()
        notifier = OrderNotifier(dispatcher, test_settings)
        sample_order["shipping_address"] = {"fullName": None, "address": None, "city": "Pune"}

        notifier.order_confirmed(sample_order)

        assert dispatcher.dispatch.call_count == 2
