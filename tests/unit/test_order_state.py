"""Unit tests for the order status transition table."""

import pytest

from sacmtb.api.middleware.error_handler import InvalidTransitionError, MissingFieldError
from sacmtb.models.order import OrderStatus
from sacmtb.services.order_state import (
    TERMINAL_STATUSES,
    TransitionTrigger,
    allowed_targets,
    find_transition,
    validate_transition,
)

SHIPPING_EXTRA = {"delivery_partner": "Delhivery", "tracking_id": "DL123"}
PAYMENT_EXTRA = {"gateway_order_id": "pi_1", "gateway_payment_id": "ch_1", "signature": "abc"}


class TestTransitionTable:
    """Tests for the shape of the state graph."""

    def test_terminal_statuses_have_no_exits(self) -> None:
        """Test that completed and cancelled orders cannot move anywhere."""
        for status in TERMINAL_STATUSES:
            assert allowed_targets(status) == []

    def test_cart_only_moves_to_waiting(self) -> None:
        """Test that a cart order can only be paid."""
        assert allowed_targets(OrderStatus.CART) == [OrderStatus.WAITING]

    def test_waiting_moves_to_shipping_or_cancelled(self) -> None:
        """Test the exits of a waiting order."""
        assert set(allowed_targets("waiting")) == {OrderStatus.SHIPPING, OrderStatus.CANCELLED}

    def test_find_transition_returns_none_for_unknown_pair(self) -> None:
        """Test lookup of a pair that is not in the table."""
        assert find_transition(OrderStatus.CART, OrderStatus.SHIPPING) is None


class TestValidateTransition:
    """Tests for validate_transition."""

    def test_payment_settles_cart(self) -> None:
        """Test that a payment moves cart to waiting."""
        transition = validate_transition("cart", "waiting", TransitionTrigger.PAYMENT, PAYMENT_EXTRA)
        assert transition.target == OrderStatus.WAITING

    def test_admin_cannot_settle_cart(self) -> None:
        """Test that the payment edge rejects an admin trigger."""
        with pytest.raises(InvalidTransitionError):
            validate_transition("cart", "waiting", TransitionTrigger.ADMIN, PAYMENT_EXTRA)

    @pytest.mark.parametrize(
        ("source", "target"),
        [
            ("cart", "shipping"),
            ("cart", "cancelled"),
            ("waiting", "completed"),
            ("shipping", "waiting"),
            ("completed", "cancelled"),
            ("cancelled", "waiting"),
            ("waiting", "waiting"),
        ],
    )
    def test_rejects_moves_outside_table(self, source: str, target: str) -> None:
        """Test that every pair outside the table is rejected."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_transition(source, target, TransitionTrigger.ADMIN, SHIPPING_EXTRA)

        assert exc_info.value.status_code == 409

    def test_rejection_lists_allowed_next_statuses(self) -> None:
        """Test that the error details name the legal targets."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_transition("shipping", "waiting", TransitionTrigger.ADMIN)

        assert "completed" in exc_info.value.details[0]["msg"]
        assert "cancelled" in exc_info.value.details[0]["msg"]

    def test_shipping_requires_partner_and_tracking_id(self) -> None:
        """Test that shipping without carrier details is refused."""
        with pytest.raises(MissingFieldError) as exc_info:
            validate_transition("waiting", "shipping", TransitionTrigger.ADMIN, {"delivery_partner": "Delhivery"})

        assert exc_info.value.fields == ["tracking_id"]
        assert exc_info.value.error_type == "missing_field"

    def test_blank_required_field_counts_as_missing(self) -> None:
        """Test that whitespace-only values do not satisfy a requirement."""
        with pytest.raises(MissingFieldError):
            validate_transition(
                "waiting",
                "shipping",
                TransitionTrigger.ADMIN,
                {"delivery_partner": "   ", "tracking_id": "DL1"},
            )

    def test_cancel_needs_no_extra_fields(self) -> None:
        """Test that cancelling from shipping is allowed without a reason."""
        transition = validate_transition("shipping", "cancelled", TransitionTrigger.ADMIN)
        assert transition.required == ()
