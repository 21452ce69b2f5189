"""Review model type definitions for database operations."""

from typing import TypedDict


class Review(TypedDict):
    """Review table row representation."""

    id: str
    product_id: str
    user_id: str | None
    name: str
    rating: int
    comment: str
    created_at: str
