"""Product catalog schemas."""

from datetime import datetime

from pydantic import Field

from sacmtb.models.product import BikeType
from sacmtb.schemas.common import CamelModel


class ProductBase(CamelModel):
    """Fields shared by product create requests and responses."""

    name: str = Field(..., min_length=1, max_length=255, description="Product name")
    brand: str = Field(default="SAC MTB", description="Brand")
    model_number: str | None = Field(default=None, description="Manufacturer model number")
    type: BikeType = Field(default=BikeType.MTB, description="Bicycle type")
    description: str | None = Field(default=None, description="Long description")
    bullet_points: list[str] = Field(default_factory=list, description="Highlight bullet points")
    price: float = Field(..., ge=0, description="List price")
    discount_price: float | None = Field(default=None, ge=0, description="Discounted price, if any")
    category: str = Field(default="Bicycle", description="Category")
    color_options: list[str] = Field(default_factory=list, description="Available colours")
    wheel_size: str | None = Field(default=None, description="Wheel size")
    frame_material: str | None = Field(default=None, description="Frame material")
    suspension: str | None = Field(default=None, description="Suspension type")
    brake_type: str | None = Field(default=None, description="Brake type")
    gears: str | None = Field(default=None, description="Gearing")
    weight: str | None = Field(default=None, description="Weight")
    stock: int = Field(default=0, ge=0, description="Units in stock")
    image_urls: list[str] = Field(default_factory=list, description="Image URLs")
    video_url: str | None = Field(default=None, description="Video URL")
    is_featured: bool = Field(default=False, description="Shown on the featured shelf")


class ProductCreateRequest(ProductBase):
    """Request schema for creating a product. `name` and `price` are required."""


class ProductUpdateRequest(CamelModel):
    """Request schema for a partial product update."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    brand: str | None = None
    model_number: str | None = None
    type: BikeType | None = None
    description: str | None = None
    bullet_points: list[str] | None = None
    price: float | None = Field(default=None, ge=0)
    discount_price: float | None = Field(default=None, ge=0)
    category: str | None = None
    color_options: list[str] | None = None
    wheel_size: str | None = None
    frame_material: str | None = None
    suspension: str | None = None
    brake_type: str | None = None
    gears: str | None = None
    weight: str | None = None
    stock: int | None = Field(default=None, ge=0)
    image_urls: list[str] | None = None
    video_url: str | None = None
    is_featured: bool | None = None


class ProductResponse(ProductBase):
    """Response schema for a product."""

    id: str = Field(description="Product ID")
    rating: float = Field(default=0, description="Average review rating")
    num_reviews: int = Field(default=0, description="Number of reviews")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")
