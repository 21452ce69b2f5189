"""Unit tests for ProductService."""

from typing import Any
from unittest.mock import patch

import pytest

from sacmtb.api.middleware.error_handler import NotFoundError, OutOfStockError
from sacmtb.services.product_service import ProductService, StockWriteConflict


@pytest.fixture
def product_service(fake_db: Any) -> ProductService:
    """Create ProductService over the in-memory database."""
    return ProductService(fake_db)


class TestCatalog:
    """Tests for product CRUD."""

    @pytest.mark.asyncio
    async def test_list_filters_by_type_and_featured(
        self, product_service: ProductService, seed_product: Any
    ) -> None:
        """Test list filters and newest-first order."""
        seed_product(name="Old MTB", type="MTB", is_featured=True)
        seed_product(name="Road One", type="Road")
        seed_product(name="New MTB", type="MTB")

        mtb = await product_service.list_products(bike_type="MTB")
        featured = await product_service.list_products(featured=True)

        assert [p["name"] for p in mtb] == ["New MTB", "Old MTB"]
        assert [p["name"] for p in featured] == ["Old MTB"]

    @pytest.mark.asyncio
    async def test_get_missing_product(self, product_service: ProductService) -> None:
        """Test that an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await product_service.get_product("missing")

    @pytest.mark.asyncio
    async def test_update_sets_timestamp(self, product_service: ProductService, seed_product: Any) -> None:
        """Test that a partial update keeps other fields."""
        product = seed_product(price=1000.0)

        updated = await product_service.update_product(product["id"], {"price": 900.0})

        assert updated["price"] == 900.0
        assert updated["name"] == product["name"]
        assert updated["updated_at"] != product["updated_at"]

    @pytest.mark.asyncio
    async def test_delete_missing_product(self, product_service: ProductService) -> None:
        """Test deleting an unknown product."""
        with pytest.raises(NotFoundError):
            await product_service.delete_product("missing")


class TestStock:
    """Tests for conditional stock writes."""

    @pytest.mark.asyncio
    async def test_decrement(self, product_service: ProductService, seed_product: Any, fake_db: Any) -> None:
        """Test taking units out of stock."""
        product = seed_product(stock=5)

        await product_service.decrement_stock(product["id"], 2)

        assert fake_db.get("products", product["id"])["stock"] == 3

    @pytest.mark.asyncio
    async def test_decrement_below_zero_refused(
        self, product_service: ProductService, seed_product: Any, fake_db: Any
    ) -> None:
        """Test that stock never goes negative."""
        product = seed_product(stock=1)

        with pytest.raises(OutOfStockError) as exc_info:
            await product_service.decrement_stock(product["id"], 2)

        assert exc_info.value.available == 1
        assert fake_db.get("products", product["id"])["stock"] == 1

    @pytest.mark.asyncio
    async def test_increment(self, product_service: ProductService, seed_product: Any, fake_db: Any) -> None:
        """Test returning units to stock."""
        product = seed_product(stock=0)

        await product_service.increment_stock(product["id"], 3)

        assert fake_db.get("products", product["id"])["stock"] == 3

    @pytest.mark.asyncio
    async def test_decrement_retries_after_lost_race(
        self, product_service: ProductService, seed_product: Any, fake_db: Any
    ) -> None:
        """Test that a concurrent change between read and write is retried on fresh data."""
        product = seed_product(stock=5)
        original_get = product_service.get_product
        calls = []

        async def racing_get(product_id: str) -> dict:
            row = await original_get(product_id)
            calls.append(row["stock"])
            if len(calls) == 1:
                # Another buyer takes a unit after our read
                fake_db.get("products", product_id)["stock"] = 4
            return row

        with patch.object(product_service, "get_product", side_effect=racing_get):
            await product_service.decrement_stock(product["id"], 2)

        assert calls == [5, 4]
        assert fake_db.get("products", product["id"])["stock"] == 2

    @pytest.mark.asyncio
    async def test_persistent_conflict_gives_up(
        self, product_service: ProductService, seed_product: Any, fake_db: Any
    ) -> None:
        """Test that a row that keeps changing eventually surfaces the conflict."""
        product = seed_product(stock=5)
        original_get = product_service.get_product

        async def always_racing(product_id: str) -> dict:
            row = await original_get(product_id)
            fake_db.get("products", product_id)["stock"] = row["stock"] + 1
            return row

        with patch.object(product_service, "get_product", side_effect=always_racing):
            with pytest.raises(StockWriteConflict):
                await product_service.decrement_stock(product["id"], 1)
