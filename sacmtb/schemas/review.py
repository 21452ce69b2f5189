"""Product review schemas."""

from datetime import datetime

from pydantic import Field

from sacmtb.schemas.common import CamelModel


class ReviewCreateRequest(CamelModel):
    """Request schema for adding a review."""

    product_id: str = Field(..., min_length=1, description="Reviewed product ID")
    name: str = Field(..., min_length=1, max_length=255, description="Reviewer display name")
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")
    comment: str = Field(..., min_length=1, max_length=5000, description="Review text")


class ReviewResponse(CamelModel):
    """Response schema for a review."""

    id: str
    product_id: str
    user_id: str | None = None
    name: str
    rating: int
    comment: str
    created_at: datetime | None = None


class ReviewCreatedResponse(CamelModel):
    """A newly added review."""

    message: str
    review: ReviewResponse
