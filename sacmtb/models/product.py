"""Product model type definitions for database operations."""

from enum import Enum
from typing import Any, TypedDict


class BikeType(str, Enum):
    """Bicycle type values."""

    MTB = "MTB"
    ROAD = "Road"
    HYBRID = "Hybrid"
    KIDS = "Kids"
    LADIES = "Ladies"


class Product(TypedDict):
    """Product table row representation."""

    id: str
    name: str
    brand: str
    model_number: str | None
    type: str
    description: str | None
    bullet_points: list[str]
    price: float
    discount_price: float | None
    category: str
    color_options: list[str]
    wheel_size: str | None
    frame_material: str | None
    suspension: str | None
    brake_type: str | None
    gears: str | None
    weight: str | None
    stock: int
    image_urls: list[str]
    video_url: str | None
    rating: float
    num_reviews: int
    is_featured: bool
    created_at: str
    updated_at: str


def unit_price(product: dict[str, Any]) -> float:
    """Final selling price: the discount price when set, else the list price."""
    discount = product.get("discount_price")
    if discount is not None:
        return float(discount)
    return float(product["price"])


def primary_image(product: dict[str, Any]) -> str:
    """First image URL of a product, or an empty string."""
    images = product.get("image_urls") or []
    return images[0] if images else ""
