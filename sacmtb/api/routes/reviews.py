"""Product review API routes."""

from fastapi import APIRouter, status

from sacmtb.api.deps import CurrentUser
from sacmtb.schemas.common import MessageResponse
from sacmtb.schemas.review import ReviewCreatedResponse, ReviewCreateRequest, ReviewResponse
from sacmtb.services.review_service import ReviewService

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post("", response_model=ReviewCreatedResponse, status_code=status.HTTP_201_CREATED)
async def add_review(data: ReviewCreateRequest, user: CurrentUser) -> ReviewCreatedResponse:
    """Add a review and refresh the product rating."""
    review = await ReviewService().add_review(
        product_id=data.product_id,
        name=data.name,
        rating=data.rating,
        comment=data.comment,
        user_id=user.user_id,
    )
    return ReviewCreatedResponse(message="Review added", review=ReviewResponse.model_validate(review))


@router.get("/{product_id}", response_model=list[ReviewResponse])
async def list_reviews(product_id: str) -> list[ReviewResponse]:
    """List a product's reviews, newest first."""
    return [ReviewResponse.model_validate(r) for r in await ReviewService().list_reviews(product_id)]


@router.delete("/{review_id}", response_model=MessageResponse)
async def delete_review(review_id: str, user: CurrentUser) -> MessageResponse:
    """Delete a review. Allowed for its author and for admins."""
    await ReviewService().delete_review(review_id, actor=user)
    return MessageResponse(message="Review deleted")
