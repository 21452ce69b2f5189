"""Order model type definitions for database operations."""

from enum import Enum
from typing import TypedDict


class OrderStatus(str, Enum):
    """Lifecycle status of an order, matching the orders.status column."""

    CART = "cart"
    WAITING = "waiting"
    SHIPPING = "shipping"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    """How an order is paid for. Fixed at creation."""

    COD = "COD"
    ONLINE = "ONLINE"


class OrderItem(TypedDict):
    """A single line of an order.

    Stored as part of the order_items JSONB array and snapshotted from the
    catalog at creation.
    """

    product_id: str
    name: str
    image: str
    qty: int
    price: float


class ShippingAddress(TypedDict):
    """Delivery address stored in the shipping_address JSONB column."""

    fullName: str
    phoneNumber: str
    address: str
    city: str
    state: str
    postalCode: str
    country: str


class PaymentInfo(TypedDict):
    """Settlement evidence stored in the payment_info JSONB column."""

    gatewayPaymentId: str
    status: str
    gatewayOrderId: str
    signature: str


class Order(TypedDict):
    """Order table row representation.

    Money columns are stored as numeric and read back as floats; datetimes
    are ISO-8601 strings.
    """

    id: str
    user_id: str
    user_name: str
    user_email: str
    order_items: list[OrderItem]
    shipping_address: ShippingAddress
    payment_method: str
    payment_info: PaymentInfo | None
    gateway_order_id: str | None
    items_price: float
    tax_price: float
    shipping_price: float
    total_price: float
    currency: str
    status: str
    is_paid: bool
    paid_at: str | None
    is_shipped: bool
    shipped_at: str | None
    is_delivered: bool
    delivered_at: str | None
    delivery_partner: str | None
    tracking_id: str | None
    tracking_link: str | None
    cancellation_reason: str | None
    created_at: str
    updated_at: str


class OrderUpdate(TypedDict, total=False):
    """Columns that may change after creation."""

    status: str
    payment_info: PaymentInfo
    is_paid: bool
    paid_at: str
    is_shipped: bool
    shipped_at: str
    is_delivered: bool
    delivered_at: str
    delivery_partner: str
    tracking_id: str
    tracking_link: str
    cancellation_reason: str
    gateway_order_id: str
    updated_at: str
