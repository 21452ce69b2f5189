"""Product reviews and the product rating aggregate."""

import logging
from decimal import ROUND_HALF_UP, Decimal

from supabase import Client

from sacmtb.api.middleware.error_handler import AuthorizationError, NotFoundError
from sacmtb.core.supabase import get_supabase_client
from sacmtb.models.review import Review
from sacmtb.schemas.auth import UserContext
from sacmtb.services.product_service import ProductService

logger = logging.getLogger(__name__)


class ReviewService:
    """Service for review operations."""

    def __init__(
        self,
        supabase_client: Client | None = None,
        product_service: ProductService | None = None,
    ):
        self._supabase_client = supabase_client
        self._product_service = product_service

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    @property
    def products(self) -> ProductService:
        """Get catalog store."""
        if self._product_service is None:
            self._product_service = ProductService(self._supabase_client)
        return self._product_service

    async def add_review(
        self,
        product_id: str,
        name: str,
        rating: int,
        comment: str,
        user_id: str | None = None,
    ) -> Review:
        """Add a review and refresh the product's rating.

        Raises:
            NotFoundError: If the product does not exist.
        """
        await self.products.get_product(product_id)
        result = (
            self.supabase.table("reviews")
            .insert(
                {
                    "product_id": str(product_id),
                    "user_id": str(user_id) if user_id else None,
                    "name": name.strip(),
                    "rating": int(rating),
                    "comment": comment.strip(),
                }
            )
            .execute()
        )
        if not result.data:
            raise Exception("Failed to create review")
        review = result.data[0]
        await self.recompute_rating(product_id)
        logger.info("Review %s added to product %s", review["id"], product_id)
        return review

    async def list_reviews(self, product_id: str) -> list[Review]:
        """Reviews of a product, newest first."""
        result = (
            self.supabase.table("reviews")
            .select("*")
            .eq("product_id", str(product_id))
            .order("created_at", desc=True)
            .execute()
        )
        return result.data or []

    async def delete_review(self, review_id: str, actor: UserContext) -> None:
        """Delete a review written by the caller, or any review for an admin.

        Raises:
            NotFoundError: If the review does not exist.
            AuthorizationError: If the caller is neither the author nor an admin.
        """
        result = (
            self.supabase.table("reviews")
            .select("*")
            .eq("id", str(review_id))
            .execute()
        )
        if not result.data:
            raise NotFoundError("Review not found")
        review = result.data[0]
        if not actor.is_admin and str(review.get("user_id")) != str(actor.user_id):
            raise AuthorizationError("Not authorized to delete this review")

        self.supabase.table("reviews").delete().eq("id", str(review_id)).execute()
        await self.recompute_rating(review["product_id"])
        logger.info("Review %s deleted by %s", review_id, actor.user_id)

    async def recompute_rating(self, product_id: str) -> None:
        """Store the average rating (one decimal) and review count on the product."""
        reviews = await self.list_reviews(product_id)
        count = len(reviews)
        if count:
            average = Decimal(sum(int(r["rating"]) for r in reviews)) / count
            rating = float(average.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
        else:
            rating = 0.0
        try:
            await self.products.update_product(product_id, {"rating": rating, "num_reviews": count})
        except NotFoundError:
            logger.warning("Product %s vanished before its rating could be updated", product_id)
