"""Order API routes."""

from fastapi import APIRouter, Depends, status

from sacmtb.api.deps import AdminUser, CurrentUser
from sacmtb.core.config import get_settings
from sacmtb.schemas.order import (
    AdminOrderListResponse,
    OrderListResponse,
    OrderResponse,
    PaymentIntentResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
    StatusUpdateRequest,
)
from sacmtb.services.order_service import OrderService, PlacedOrder, get_order_service

router = APIRouter(prefix="/orders", tags=["orders"])


def placed_order_response(placed: PlacedOrder) -> PlaceOrderResponse:
    """Shape a placed order, attaching the client payment details when there are any."""
    payment = None
    if placed.intent is not None:
        payment = PaymentIntentResponse(
            intent_id=placed.intent.intent_id,
            client_secret=placed.intent.client_secret,
            amount=placed.intent.amount,
            currency=placed.intent.currency,
            publishable_key=get_settings().stripe_publishable_key or None,
        )
    return PlaceOrderResponse(order=OrderResponse.from_row(placed.order), payment=payment)


@router.post(
    "",
    response_model=PlaceOrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place an order",
    description=(
        "COD orders reserve stock and start in 'waiting'. "
        "ONLINE orders start in 'cart' and return a payment intent."
    ),
)
async def place_order(
    data: PlaceOrderRequest,
    user: CurrentUser,
    order_service: OrderService = Depends(get_order_service),
) -> PlaceOrderResponse:
    """Place an order for the caller."""
    placed = await order_service.place_order(
        user=user,
        items=data.items(),
        shipping_address=data.shipping_address.model_dump(by_alias=True),
        pricing=data.pricing(),
        payment_method=data.payment_method,
    )
    return placed_order_response(placed)


@router.get("/mine", response_model=OrderListResponse, summary="List my orders")
async def list_my_orders(
    user: CurrentUser,
    order_service: OrderService = Depends(get_order_service),
) -> OrderListResponse:
    """Return the caller's orders, newest first."""
    orders = await order_service.list_my_orders(user.user_id)
    return OrderListResponse(orders=[OrderResponse.from_row(o) for o in orders], count=len(orders))


@router.get("", response_model=AdminOrderListResponse, summary="List all orders (admin)")
async def list_all_orders(
    admin: AdminUser,
    order_service: OrderService = Depends(get_order_service),
) -> AdminOrderListResponse:
    """Return every order with the summed order value."""
    orders, total_amount = await order_service.list_all_orders()
    return AdminOrderListResponse(
        orders=[OrderResponse.from_row(o) for o in orders],
        count=len(orders),
        total_amount=total_amount,
    )


@router.get("/{order_id}", response_model=OrderResponse, summary="Get an order")
async def get_order(
    order_id: str,
    user: CurrentUser,
    order_service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    """Return one order. Visible to its owner and to admins."""
    return OrderResponse.from_row(await order_service.get_order(order_id, actor=user))


@router.put(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="Change order status (admin)",
    description="Shipping requires deliveryPartner and trackingId; the tracking link is derived from the carrier.",
)
async def update_status(
    order_id: str,
    data: StatusUpdateRequest,
    admin: AdminUser,
    order_service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    """Move an order to the requested status."""
    order = await order_service.transition_status(
        order_id,
        new_status=data.status,
        extra=data.extra(),
        actor=admin,
    )
    return OrderResponse.from_row(order)
