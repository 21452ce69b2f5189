"""Order lifecycle engine: placement, payment settlement and admin transitions."""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from supabase import Client

from sacmtb.api.middleware.error_handler import (
    AuthorizationError,
    InvalidSignatureError,
    InvalidTransitionError,
    NotFoundError,
    OutOfStockError,
    StockReconciliationError,
    ValidationError,
)
from sacmtb.core.config import Settings, get_settings
from sacmtb.core.supabase import get_supabase_client
from sacmtb.models.order import Order, OrderStatus, PaymentMethod
from sacmtb.models.product import primary_image, unit_price
from sacmtb.schemas.auth import UserContext
from sacmtb.services.notification_service import OrderNotifier
from sacmtb.services.order_state import DEFAULT_CANCELLATION_REASON, TransitionTrigger, validate_transition
from sacmtb.services.payment_gateway import PaymentGateway, PaymentIntent, to_minor_units
from sacmtb.services.product_service import ProductService, StockWriteConflict
from sacmtb.services.tracking import derive_tracking_link

logger = logging.getLogger(__name__)

# Tolerance when checking that the price components add up to the total
PRICE_TOLERANCE = Decimal("0.01")

PRICE_FIELDS = ("items_price", "tax_price", "shipping_price", "total_price")


@dataclass
class PlacedOrder:
    """A freshly placed order and, for online payment, its gateway intent."""

    order: Order
    intent: PaymentIntent | None = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _money(value: Any) -> Decimal:
    return Decimal(str(value))


def aggregate_quantities(items: list[dict[str, Any]]) -> "OrderedDict[str, int]":
    """Total requested quantity per product, in first-seen order."""
    totals: OrderedDict[str, int] = OrderedDict()
    for item in items:
        product_id = str(item["product_id"])
        totals[product_id] = totals.get(product_id, 0) + int(item["qty"])
    return totals


def validate_pricing(pricing: dict[str, Any]) -> dict[str, float]:
    """Check the price breakdown and return it as floats.

    Raises:
        ValidationError: If a component is missing or negative, the total is
            not positive, or the components do not add up to the total.
    """
    values: dict[str, Decimal] = {}
    for name in PRICE_FIELDS:
        if pricing.get(name) is None:
            raise ValidationError(f"Missing price field: {name}")
        values[name] = _money(pricing[name])
        if values[name] < 0:
            raise ValidationError(f"{name} must not be negative")

    if values["total_price"] <= 0:
        raise ValidationError("total_price must be greater than zero")

    expected = values["items_price"] + values["tax_price"] + values["shipping_price"]
    if abs(expected - values["total_price"]) > PRICE_TOLERANCE:
        raise ValidationError(
            "Price breakdown does not add up to the total",
            details=[{"loc": ["totalPrice"], "msg": f"Expected {expected}", "type": "price_mismatch"}],
        )

    return {name: float(value) for name, value in values.items()}


class OrderService:
    """Service owning every write to an order after validation."""

    def __init__(
        self,
        supabase_client: Client | None = None,
        product_service: ProductService | None = None,
        gateway: PaymentGateway | None = None,
        notifier: OrderNotifier | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize order service.

        Args:
            supabase_client: Optional Supabase client for testing.
            product_service: Optional catalog store for testing.
            gateway: Optional payment gateway adapter for testing.
            notifier: Optional order notifier for testing.
            settings: Optional settings override.
        """
        self._supabase_client = supabase_client
        self._product_service = product_service
        self._gateway = gateway
        self._notifier = notifier
        self.settings = settings or get_settings()

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    @property
    def products(self) -> ProductService:
        """Get catalog store."""
        if self._product_service is None:
            self._product_service = ProductService(self._supabase_client)
        return self._product_service

    @property
    def gateway(self) -> PaymentGateway:
        """Get payment gateway adapter."""
        if self._gateway is None:
            self._gateway = PaymentGateway(self.settings)
        return self._gateway

    @property
    def notifier(self) -> OrderNotifier:
        """Get order notifier."""
        if self._notifier is None:
            self._notifier = OrderNotifier(settings=self.settings)
        return self._notifier

    # Reads

    async def _load(self, order_id: str) -> Order:
        result = (
            self.supabase.table("orders")
            .select("*")
            .eq("id", str(order_id))
            .execute()
        )
        if not result.data:
            raise NotFoundError("Order not found")
        return result.data[0]

    async def get_order(self, order_id: str, actor: UserContext) -> Order:
        """Get an order visible to the caller.

        Raises:
            NotFoundError: If the order does not exist.
            AuthorizationError: If the caller is neither the owner nor an admin.
        """
        order = await self._load(order_id)
        self._ensure_owner_or_admin(order, actor)
        return order

    async def list_my_orders(self, user_id: str) -> list[Order]:
        """List the caller's orders, newest first."""
        result = (
            self.supabase.table("orders")
            .select("*")
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .execute()
        )
        return result.data or []

    async def list_all_orders(self) -> tuple[list[Order], float]:
        """List every order, newest first, with the summed order value."""
        result = (
            self.supabase.table("orders")
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        orders = result.data or []
        total = sum((_money(o.get("total_price") or 0) for o in orders), Decimal("0"))
        return orders, float(total.quantize(Decimal("0.01")))

    @staticmethod
    def _ensure_owner_or_admin(order: Order, actor: UserContext) -> None:
        if actor.is_admin or str(order.get("user_id")) == str(actor.user_id):
            return
        raise AuthorizationError("Not authorized to access this order")

    # Placement

    async def place_order(
        self,
        user: UserContext,
        items: list[dict[str, Any]],
        shipping_address: dict[str, Any],
        pricing: dict[str, Any],
        payment_method: PaymentMethod | str,
    ) -> PlacedOrder:
        """Create an order.

        COD orders reserve stock immediately and start in ``waiting``.
        ONLINE orders start in ``cart`` without touching stock and come back
        with a gateway intent the client pays against.

        Args:
            user: The placing user.
            items: Lines of ``{product_id, qty}``.
            shipping_address: Delivery address.
            pricing: ``items_price``, ``tax_price``, ``shipping_price`` and
                ``total_price``.
            payment_method: ``COD`` or ``ONLINE``.

        Returns:
            PlacedOrder: The stored order, plus the intent for ONLINE.

        Raises:
            ValidationError: If there are no items, a quantity is not
                positive, or the pricing is inconsistent.
            NotFoundError: If a product does not exist.
            OutOfStockError: If a product has fewer units than requested.
            DependencyFailureError: If the payment intent cannot be created;
                the ONLINE order is left in ``cart``.
        """
        payment_method = PaymentMethod(payment_method)
        if not items:
            raise ValidationError("No order items")
        for item in items:
            if int(item.get("qty") or 0) < 1:
                raise ValidationError("Item quantity must be at least 1")

        requested = aggregate_quantities(items)
        catalog: dict[str, dict[str, Any]] = {}
        for product_id, qty in requested.items():
            product = await self.products.find_product(product_id)
            if product is None:
                raise NotFoundError(f"Product not found: {product_id}")
            available = int(product.get("stock") or 0)
            if available < qty:
                raise OutOfStockError(
                    product_name=product["name"],
                    requested=qty,
                    available=available,
                    product_id=product_id,
                )
            catalog[product_id] = product

        prices = validate_pricing(pricing)

        order_items = [
            {
                "product_id": str(item["product_id"]),
                "name": catalog[str(item["product_id"])]["name"],
                "image": primary_image(catalog[str(item["product_id"])]),
                "qty": int(item["qty"]),
                "price": unit_price(catalog[str(item["product_id"])]),
            }
            for item in items
        ]

        row: dict[str, Any] = {
            "user_id": str(user.user_id),
            "user_name": user.name,
            "user_email": user.email,
            "order_items": order_items,
            "shipping_address": dict(shipping_address),
            "payment_method": payment_method.value,
            "payment_info": None,
            "gateway_order_id": None,
            **prices,
            "currency": self.settings.payment_currency,
            "is_shipped": False,
            "is_delivered": False,
        }

        if payment_method == PaymentMethod.COD:
            return PlacedOrder(order=await self._place_cod(row, requested))
        return await self._place_online(row)

    async def _place_cod(self, row: dict[str, Any], requested: "OrderedDict[str, int]") -> Order:
        reserved: list[tuple[str, int]] = []
        try:
            for product_id, qty in requested.items():
                await self.products.decrement_stock(product_id, qty)
                reserved.append((product_id, qty))
        except Exception:
            await self._release_stock(reserved)
            raise

        now = _now()
        row = {**row, "status": OrderStatus.WAITING.value, "is_paid": True, "paid_at": now}
        try:
            result = self.supabase.table("orders").insert(row).execute()
            if not result.data:
                raise Exception("Failed to create order")
        except Exception:
            logger.error("Order insert failed after reserving stock; releasing %d items", len(reserved))
            await self._release_stock(reserved)
            raise

        order = result.data[0]
        logger.info("Placed COD order %s for user %s", order["id"], order["user_id"])
        self.notifier.order_confirmed(order)
        return order

    async def _place_online(self, row: dict[str, Any]) -> PlacedOrder:
        row = {**row, "status": OrderStatus.CART.value, "is_paid": False, "paid_at": None}
        result = self.supabase.table("orders").insert(row).execute()
        if not result.data:
            raise Exception("Failed to create order")
        order = result.data[0]
        order_id = str(order["id"])

        try:
            intent = await self.gateway.create_intent(
                amount_minor=to_minor_units(order["total_price"]),
                currency=order.get("currency") or self.settings.payment_currency,
                receipt=f"rcpt_{order_id}",
                metadata={"order_id": order_id},
            )
        except Exception:
            logger.warning("Payment intent failed; order %s left in cart", order_id)
            raise

        updated = (
            self.supabase.table("orders")
            .update({"gateway_order_id": intent.intent_id, "updated_at": _now()})
            .eq("id", order_id)
            .execute()
        )
        if updated.data:
            order = updated.data[0]
        logger.info("Placed ONLINE order %s with intent %s", order_id, intent.intent_id)
        return PlacedOrder(order=order, intent=intent)

    async def _release_stock(self, reserved: list[tuple[str, int]]) -> None:
        for product_id, qty in reserved:
            try:
                await self.products.increment_stock(product_id, qty)
            except Exception:
                logger.exception("Failed to release %d units of product %s", qty, product_id)

    # Payment settlement

    async def verify_payment(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
        order_id: str,
        actor: UserContext,
    ) -> Order:
        """Settle an ONLINE order from a client-side payment confirmation.

        Idempotent: an already-paid order is returned unchanged.

        Raises:
            InvalidSignatureError: If the signature does not verify.
            NotFoundError: If the order does not exist.
            AuthorizationError: If the caller is neither owner nor admin.
            InvalidTransitionError: If the order is not an unpaid ONLINE order.
            ValidationError: If the gateway order id does not match the order.
            StockReconciliationError: If the payment was recorded but some
                stock could not be decremented.
        """
        if not self.gateway.verify_signature(gateway_order_id, gateway_payment_id, signature):
            logger.warning("Rejected payment confirmation for order %s: bad signature", order_id)
            raise InvalidSignatureError("Invalid payment signature")

        return await self._settle(
            order_id=order_id,
            gateway_order_id=gateway_order_id,
            gateway_payment_id=gateway_payment_id,
            signature=signature,
            actor=actor,
        )

    async def settle_from_webhook(self, event: dict[str, Any]) -> Order | None:
        """Apply a verified gateway webhook event.

        Args:
            event: Event already verified over its raw bytes.

        Returns:
            Order | None: The settled order, or None for events that do not
            settle anything.
        """
        event_type = event.get("type", "")
        intent = (event.get("data") or {}).get("object") or {}
        order_id = (intent.get("metadata") or {}).get("order_id")

        if event_type == "payment_intent.succeeded":
            if not order_id:
                logger.warning("Webhook intent %s has no order_id metadata", intent.get("id"))
                return None
            return await self._settle(
                order_id=order_id,
                gateway_order_id=intent["id"],
                gateway_payment_id=intent.get("latest_charge") or intent["id"],
                signature=event.get("id", ""),
                actor=None,
            )

        if event_type == "payment_intent.payment_failed":
            error = (intent.get("last_payment_error") or {}).get("message")
            logger.warning("Payment failed for order %s (intent %s): %s", order_id, intent.get("id"), error)
            return None

        logger.debug("Ignoring webhook event type %s", event_type)
        return None

    async def _settle(
        self,
        order_id: str,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
        actor: UserContext | None,
    ) -> Order:
        order = await self._load(order_id)
        if actor is not None:
            self._ensure_owner_or_admin(order, actor)

        if order.get("payment_method") != PaymentMethod.ONLINE.value:
            raise InvalidTransitionError("Cash on delivery orders are not paid online")

        recorded = order.get("gateway_order_id")
        if recorded and recorded != gateway_order_id:
            raise ValidationError("Payment does not belong to this order")

        if order.get("is_paid"):
            logger.info("Order %s already paid; ignoring repeated settlement", order_id)
            return order

        validate_transition(
            order["status"],
            OrderStatus.WAITING,
            TransitionTrigger.PAYMENT,
            {
                "gateway_order_id": gateway_order_id,
                "gateway_payment_id": gateway_payment_id,
                "signature": signature,
            },
        )

        now = _now()
        result = (
            self.supabase.table("orders")
            .update(
                {
                    "status": OrderStatus.WAITING.value,
                    "is_paid": True,
                    "paid_at": now,
                    "payment_info": {
                        "gatewayPaymentId": gateway_payment_id,
                        "status": "Paid",
                        "gatewayOrderId": gateway_order_id,
                        "signature": signature,
                    },
                    "updated_at": now,
                }
            )
            .eq("id", str(order_id))
            .eq("status", OrderStatus.CART.value)
            .eq("is_paid", False)
            .execute()
        )
        if not result.data:
            fresh = await self._load(order_id)
            if fresh.get("is_paid"):
                logger.info("Order %s was settled concurrently", order_id)
                return fresh
            raise InvalidTransitionError("Order can no longer be paid")

        order = result.data[0]
        logger.info("Order %s paid via %s", order_id, gateway_payment_id)

        shortfalls: list[str] = []
        for product_id, qty in aggregate_quantities(order.get("order_items") or []).items():
            try:
                await self.products.decrement_stock(product_id, qty)
            except (OutOfStockError, NotFoundError, StockWriteConflict) as e:
                logger.error(
                    "Stock shortfall on paid order %s for product %s (qty %d): %s",
                    order_id,
                    product_id,
                    qty,
                    str(e),
                )
                shortfalls.append(product_id)

        self.notifier.order_confirmed(order)

        if shortfalls:
            raise StockReconciliationError(str(order_id), shortfalls)
        return order

    # Admin transitions

    async def transition_status(
        self,
        order_id: str,
        new_status: OrderStatus | str,
        extra: dict[str, Any] | None,
        actor: UserContext,
    ) -> Order:
        """Move an order along the admin-driven part of the lifecycle.

        Args:
            order_id: Order ID.
            new_status: Target status.
            extra: ``delivery_partner`` and ``tracking_id`` for shipping,
                optional ``cancellation_reason`` for cancelling.
            actor: The caller; must be an admin.

        Returns:
            Order: The updated order.

        Raises:
            AuthorizationError: If the caller is not an admin.
            NotFoundError: If the order does not exist.
            InvalidTransitionError: If the move is not allowed or the order
                changed status concurrently.
            MissingFieldError: If a required extra field is absent.
        """
        if not actor.is_admin:
            raise AuthorizationError("Admin access required")

        new_status = OrderStatus(new_status)
        extra = extra or {}
        order = await self._load(order_id)
        current = order["status"]
        validate_transition(current, new_status, TransitionTrigger.ADMIN, extra)

        now = _now()
        changes: dict[str, Any] = {"status": new_status.value, "updated_at": now}
        if new_status == OrderStatus.SHIPPING:
            partner = str(extra["delivery_partner"]).strip()
            tracking_id = str(extra["tracking_id"]).strip()
            changes.update(
                {
                    "delivery_partner": partner,
                    "tracking_id": tracking_id,
                    "tracking_link": derive_tracking_link(partner, tracking_id),
                    "is_shipped": True,
                    "shipped_at": now,
                }
            )
        elif new_status == OrderStatus.COMPLETED:
            changes.update({"is_delivered": True, "delivered_at": now})
        elif new_status == OrderStatus.CANCELLED:
            reason = str(extra.get("cancellation_reason") or "").strip()
            changes["cancellation_reason"] = reason or DEFAULT_CANCELLATION_REASON

        result = (
            self.supabase.table("orders")
            .update(changes)
            .eq("id", str(order_id))
            .eq("status", current)
            .execute()
        )
        if not result.data:
            raise InvalidTransitionError("Order status changed concurrently; reload and retry")

        updated = result.data[0]
        logger.info("Order %s moved %s -> %s by %s", order_id, current, new_status.value, actor.user_id)

        if new_status == OrderStatus.SHIPPING:
            self.notifier.order_shipped(updated)
        elif new_status == OrderStatus.COMPLETED:
            self.notifier.order_delivered(updated)
        elif new_status == OrderStatus.CANCELLED:
            self.notifier.order_cancelled(updated)
        return updated


def get_order_service() -> OrderService:
    """Dependency provider for OrderService."""
    return OrderService()
