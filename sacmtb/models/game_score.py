"""Game score model type definitions for database operations."""

from typing import TypedDict


class GameScore(TypedDict):
    """game_scores table row. One row per (user_id, game_name)."""

    id: str
    user_id: str
    game_name: str
    level: int
    score: int
    high_score: int
    play_time: int
    created_at: str
    updated_at: str
