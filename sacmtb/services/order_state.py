"""Order status transition table.

Every legal move between order statuses is listed once here together with
who may trigger it and which extra fields it needs. Anything not in the
table is rejected before the order is touched.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from sacmtb.api.middleware.error_handler import InvalidTransitionError, MissingFieldError
from sacmtb.models.order import OrderStatus


class TransitionTrigger(str, Enum):
    """Who is allowed to cause a transition."""

    PAYMENT = "payment"
    ADMIN = "admin"


@dataclass(frozen=True)
class Transition:
    """One allowed edge of the order state graph."""

    source: OrderStatus
    target: OrderStatus
    trigger: TransitionTrigger
    required: tuple[str, ...] = ()


TRANSITIONS: tuple[Transition, ...] = (
    Transition(
        OrderStatus.CART,
        OrderStatus.WAITING,
        TransitionTrigger.PAYMENT,
        ("gateway_order_id", "gateway_payment_id", "signature"),
    ),
    Transition(
        OrderStatus.WAITING,
        OrderStatus.SHIPPING,
        TransitionTrigger.ADMIN,
        ("delivery_partner", "tracking_id"),
    ),
    Transition(OrderStatus.SHIPPING, OrderStatus.COMPLETED, TransitionTrigger.ADMIN),
    Transition(OrderStatus.WAITING, OrderStatus.CANCELLED, TransitionTrigger.ADMIN),
    Transition(OrderStatus.SHIPPING, OrderStatus.CANCELLED, TransitionTrigger.ADMIN),
)

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})

DEFAULT_CANCELLATION_REASON = "Cancelled by admin"


def find_transition(source: OrderStatus | str, target: OrderStatus | str) -> Transition | None:
    """Look up the table entry for a (source, target) pair."""
    source, target = OrderStatus(source), OrderStatus(target)
    for transition in TRANSITIONS:
        if transition.source == source and transition.target == target:
            return transition
    return None


def allowed_targets(source: OrderStatus | str) -> list[OrderStatus]:
    """Statuses reachable in one step from `source`."""
    source = OrderStatus(source)
    return [t.target for t in TRANSITIONS if t.source == source]


def validate_transition(
    source: OrderStatus | str,
    target: OrderStatus | str,
    trigger: TransitionTrigger,
    extra: dict[str, Any] | None = None,
) -> Transition:
    """Check a requested move against the table.

    Args:
        source: The order's current status.
        target: The requested status.
        trigger: Who is asking.
        extra: Extra fields supplied with the request.

    Returns:
        Transition: The matching table entry.

    Raises:
        InvalidTransitionError: If the pair is not in the table or the
            trigger is not the one the table names.
        MissingFieldError: If a field the transition needs is absent or blank.
    """
    transition = find_transition(source, target)
    if transition is None or transition.trigger != trigger:
        source_value = OrderStatus(source).value
        target_value = OrderStatus(target).value
        allowed = [s.value for s in allowed_targets(source)]
        raise InvalidTransitionError(
            message=f"Cannot move order from '{source_value}' to '{target_value}'",
            details=[{"loc": ["status"], "msg": f"Allowed next statuses: {allowed}", "type": "invalid_transition"}],
        )

    extra = extra or {}
    missing = [name for name in transition.required if not str(extra.get(name) or "").strip()]
    if missing:
        raise MissingFieldError(missing)

    return transition
