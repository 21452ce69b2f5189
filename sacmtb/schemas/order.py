"""Order request and response schemas."""

from datetime import datetime
from typing import Any

from pydantic import Field

from sacmtb.models.order import OrderStatus, PaymentMethod
from sacmtb.schemas.common import CamelModel


class ShippingAddressSchema(CamelModel):
    """Delivery address."""

    full_name: str = Field(..., min_length=1, max_length=255)
    phone_number: str = Field(..., min_length=1, max_length=32)
    address: str = Field(..., min_length=1, max_length=1000)
    city: str = Field(..., min_length=1, max_length=255)
    state: str = Field(..., min_length=1, max_length=255)
    postal_code: str = Field(..., min_length=1, max_length=32)
    country: str = Field(default="India", min_length=1, max_length=255)


class OrderItemRequest(CamelModel):
    """One requested line. Name, image and price come from the catalog."""

    product_id: str = Field(..., alias="product", description="Product ID")
    qty: int = Field(..., gt=0, description="Quantity")


class PricingFields(CamelModel):
    """Price breakdown supplied by the client and checked for consistency."""

    items_price: float = Field(..., ge=0)
    tax_price: float = Field(default=0, ge=0)
    shipping_price: float = Field(default=0, ge=0)
    total_price: float = Field(..., gt=0)

    def pricing(self) -> dict[str, float]:
        """The four price components as a plain dict."""
        return {
            "items_price": self.items_price,
            "tax_price": self.tax_price,
            "shipping_price": self.shipping_price,
            "total_price": self.total_price,
        }


class PlaceOrderRequest(PricingFields):
    """Request schema for placing an order."""

    order_items: list[OrderItemRequest] = Field(..., description="Requested lines")
    shipping_address: ShippingAddressSchema = Field(..., description="Delivery address")
    payment_method: PaymentMethod = Field(default=PaymentMethod.COD, description="COD or ONLINE")

    def items(self) -> list[dict[str, Any]]:
        """Requested lines as ``{product_id, qty}`` dicts."""
        return [{"product_id": i.product_id, "qty": i.qty} for i in self.order_items]


class StatusUpdateRequest(CamelModel):
    """Request schema for an admin status change."""

    status: OrderStatus = Field(..., description="Target status")
    delivery_partner: str | None = Field(default=None, max_length=255, description="Carrier name, required for shipping")
    tracking_id: str | None = Field(default=None, max_length=255, description="Carrier tracking number, required for shipping")
    cancellation_reason: str | None = Field(default=None, max_length=1000, description="Reason, used when cancelling")

    def extra(self) -> dict[str, Any]:
        """Transition extras with unset values dropped."""
        return {
            k: v
            for k, v in {
                "delivery_partner": self.delivery_partner,
                "tracking_id": self.tracking_id,
                "cancellation_reason": self.cancellation_reason,
            }.items()
            if v is not None
        }


class OrderItemResponse(CamelModel):
    """A snapshotted order line."""

    product_id: str = Field(alias="product")
    name: str
    image: str = ""
    qty: int
    price: float


class OrderUserResponse(CamelModel):
    """Display fields of the user who placed the order."""

    id: str
    name: str | None = None
    email: str | None = None


class PaymentInfoResponse(CamelModel):
    """Settlement evidence of an ONLINE order."""

    gateway_payment_id: str | None = None
    status: str | None = None
    gateway_order_id: str | None = None
    signature: str | None = None


class OrderResponse(CamelModel):
    """Response schema for an order."""

    id: str
    user: OrderUserResponse
    order_items: list[OrderItemResponse]
    shipping_address: ShippingAddressSchema
    payment_method: PaymentMethod
    payment_info: PaymentInfoResponse | None = None
    gateway_order_id: str | None = None
    items_price: float
    tax_price: float
    shipping_price: float
    total_price: float
    currency: str | None = None
    status: OrderStatus
    is_paid: bool = False
    paid_at: datetime | None = None
    is_shipped: bool = False
    shipped_at: datetime | None = None
    is_delivered: bool = False
    delivered_at: datetime | None = None
    delivery_partner: str | None = None
    tracking_id: str | None = None
    tracking_link: str | None = None
    cancellation_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "OrderResponse":
        """Build the response from an orders row, populating user display fields."""
        data = dict(row)
        data["user"] = {
            "id": str(row.get("user_id")),
            "name": row.get("user_name"),
            "email": row.get("user_email"),
        }
        return cls.model_validate(data)


class OrderListResponse(CamelModel):
    """A list of orders."""

    orders: list[OrderResponse]
    count: int


class AdminOrderListResponse(OrderListResponse):
    """Every order with the summed order value."""

    total_amount: float


class PaymentIntentResponse(CamelModel):
    """What the client needs to complete an online payment."""

    intent_id: str
    client_secret: str | None = None
    amount: int = Field(description="Amount in minor units")
    currency: str
    publishable_key: str | None = None


class PlaceOrderResponse(CamelModel):
    """A placed order, with the gateway intent for online payment."""

    order: OrderResponse
    payment: PaymentIntentResponse | None = None
