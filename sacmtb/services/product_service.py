"""Catalog store: product CRUD and stock accounting."""

import logging
from datetime import datetime, timezone
from typing import Any

from supabase import Client
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_random

from sacmtb.api.middleware.error_handler import NotFoundError, OutOfStockError
from sacmtb.core.supabase import get_supabase_client
from sacmtb.models.product import Product

logger = logging.getLogger(__name__)

# Conditional stock writes that lose a race are re-read and retried this often
STOCK_WRITE_ATTEMPTS = 5


class StockWriteConflict(Exception):
    """The stock column changed between read and conditional write."""


class ProductService:
    """Service for product operations."""

    def __init__(self, supabase_client: Client | None = None):
        """Initialize product service.

        Args:
            supabase_client: Optional Supabase client for testing.
        """
        self._supabase_client = supabase_client

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    async def find_product(self, product_id: str) -> Product | None:
        """Get a product by ID.

        Args:
            product_id: Product ID.

        Returns:
            Product or None if not found.
        """
        result = (
            self.supabase.table("products")
            .select("*")
            .eq("id", str(product_id))
            .execute()
        )
        if result.data:
            return result.data[0]
        return None

    async def get_product(self, product_id: str) -> Product:
        """Get a product by ID or raise NotFoundError."""
        product = await self.find_product(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        return product

    async def list_products(
        self,
        bike_type: str | None = None,
        featured: bool | None = None,
    ) -> list[Product]:
        """List products, newest first.

        Args:
            bike_type: Optional bicycle type filter.
            featured: Optional featured flag filter.

        Returns:
            list[Product]: Matching products.
        """
        query = self.supabase.table("products").select("*")
        if bike_type:
            query = query.eq("type", bike_type)
        if featured is not None:
            query = query.eq("is_featured", featured)
        result = query.order("created_at", desc=True).execute()
        return result.data or []

    async def create_product(self, data: dict[str, Any]) -> Product:
        """Create a new product.

        Args:
            data: Product columns.

        Returns:
            Product: Created product.
        """
        result = self.supabase.table("products").insert(data).execute()
        if not result.data:
            raise Exception("Failed to create product")
        product = result.data[0]
        logger.info("Created product %s", product["id"])
        return product

    async def update_product(self, product_id: str, data: dict[str, Any]) -> Product:
        """Apply a partial update to a product.

        Args:
            product_id: Product ID.
            data: Columns to change.

        Returns:
            Product: Updated product.

        Raises:
            NotFoundError: If the product does not exist.
        """
        if not data:
            return await self.get_product(product_id)

        data = {**data, "updated_at": datetime.now(timezone.utc).isoformat()}
        result = (
            self.supabase.table("products")
            .update(data)
            .eq("id", str(product_id))
            .execute()
        )
        if not result.data:
            raise NotFoundError("Product not found")
        return result.data[0]

    async def delete_product(self, product_id: str) -> None:
        """Delete a product.

        Raises:
            NotFoundError: If the product does not exist.
        """
        result = (
            self.supabase.table("products")
            .delete()
            .eq("id", str(product_id))
            .execute()
        )
        if not result.data:
            raise NotFoundError("Product not found")
        logger.info("Deleted product %s", product_id)

    @retry(
        retry=retry_if_exception_type(StockWriteConflict),
        stop=stop_after_attempt(STOCK_WRITE_ATTEMPTS),
        wait=wait_random(min=0.01, max=0.1),
        reraise=True,
    )
    async def decrement_stock(self, product_id: str, qty: int) -> Product:
        """Atomically take `qty` units out of stock.

        The write is conditional on the stock value just read, so two
        concurrent decrements can never both succeed against the same units.

        Args:
            product_id: Product ID.
            qty: Units to remove.

        Returns:
            Product: The product after the decrement.

        Raises:
            NotFoundError: If the product does not exist.
            OutOfStockError: If fewer than `qty` units are available.
            StockWriteConflict: If the row kept changing underneath.
        """
        product = await self.get_product(product_id)
        current = int(product.get("stock") or 0)
        if current < qty:
            raise OutOfStockError(
                product_name=product["name"],
                requested=qty,
                available=current,
                product_id=str(product_id),
            )

        result = (
            self.supabase.table("products")
            .update({"stock": current - qty})
            .eq("id", str(product_id))
            .eq("stock", current)
            .execute()
        )
        if not result.data:
            logger.debug("Stock write conflict on product %s, retrying", product_id)
            raise StockWriteConflict(product_id)
        return result.data[0]

    @retry(
        retry=retry_if_exception_type(StockWriteConflict),
        stop=stop_after_attempt(STOCK_WRITE_ATTEMPTS),
        wait=wait_random(min=0.01, max=0.1),
        reraise=True,
    )
    async def increment_stock(self, product_id: str, qty: int) -> Product:
        """Atomically return `qty` units to stock.

        Raises:
            NotFoundError: If the product does not exist.
            StockWriteConflict: If the row kept changing underneath.
        """
        product = await self.get_product(product_id)
        current = int(product.get("stock") or 0)
        result = (
            self.supabase.table("products")
            .update({"stock": current + qty})
            .eq("id", str(product_id))
            .eq("stock", current)
            .execute()
        )
        if not result.data:
            raise StockWriteConflict(product_id)
        return result.data[0]


def get_product_service() -> ProductService:
    """Dependency provider for ProductService."""
    return ProductService()
