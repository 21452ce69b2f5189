"""Database model type definitions."""

from sacmtb.models.game_score import GameScore
from sacmtb.models.order import Order, OrderItem, OrderStatus, PaymentInfo, PaymentMethod, ShippingAddress
from sacmtb.models.product import BikeType, Product
from sacmtb.models.review import Review
from sacmtb.models.user import User

__all__ = [
    "BikeType",
    "GameScore",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentInfo",
    "PaymentMethod",
    "Product",
    "Review",
    "ShippingAddress",
    "User",
]
