"""Online payment schemas."""

from pydantic import Field

from sacmtb.schemas.common import CamelModel
from sacmtb.schemas.order import OrderItemRequest, PricingFields, ShippingAddressSchema


class CreatePaymentOrderRequest(PricingFields):
    """Request schema for placing an ONLINE order and opening its payment."""

    order_items: list[OrderItemRequest] = Field(..., description="Requested lines")
    shipping_address: ShippingAddressSchema = Field(..., description="Delivery address")


class VerifyPaymentRequest(CamelModel):
    """Client-side payment confirmation."""

    gateway_order_id: str = Field(..., min_length=1, description="Gateway order (intent) ID")
    gateway_payment_id: str = Field(..., min_length=1, description="Gateway payment ID")
    signature: str = Field(..., min_length=1, description="HMAC-SHA256 hex of 'orderId|paymentId'")
    order_id: str = Field(..., min_length=1, description="Local order ID")


class WebhookAck(CamelModel):
    """Acknowledgement returned to the gateway."""

    status: str = "received"
