"""Online payment API routes."""

from fastapi import APIRouter, Depends, status

from sacmtb.api.deps import CurrentUser
from sacmtb.api.routes.orders import placed_order_response
from sacmtb.models.order import PaymentMethod
from sacmtb.schemas.order import OrderResponse, PlaceOrderResponse
from sacmtb.schemas.payment import CreatePaymentOrderRequest, VerifyPaymentRequest
from sacmtb.services.order_service import OrderService, get_order_service

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post(
    "/create-order",
    response_model=PlaceOrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an online payment order",
    description="Place an ONLINE order in 'cart' and open a payment intent for its total.",
)
async def create_payment_order(
    data: CreatePaymentOrderRequest,
    user: CurrentUser,
    order_service: OrderService = Depends(get_order_service),
) -> PlaceOrderResponse:
    """Place an ONLINE order and return the intent to pay against."""
    placed = await order_service.place_order(
        user=user,
        items=[{"product_id": i.product_id, "qty": i.qty} for i in data.order_items],
        shipping_address=data.shipping_address.model_dump(by_alias=True),
        pricing=data.pricing(),
        payment_method=PaymentMethod.ONLINE,
    )
    return placed_order_response(placed)


@router.post(
    "/verify",
    response_model=OrderResponse,
    summary="Confirm an online payment",
    description="Verify the payment signature and settle the order. Repeated calls return the paid order.",
)
async def verify_payment(
    data: VerifyPaymentRequest,
    user: CurrentUser,
    order_service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    """Settle an ONLINE order from a client-side confirmation."""
    order = await order_service.verify_payment(
        gateway_order_id=data.gateway_order_id,
        gateway_payment_id=data.gateway_payment_id,
        signature=data.signature,
        order_id=data.order_id,
        actor=user,
    )
    return OrderResponse.from_row(order)
