"""Game scores and leaderboards."""

import logging
from datetime import datetime, timezone
from typing import Any

from supabase import Client

from sacmtb.core.supabase import get_supabase_client
from sacmtb.models.game_score import GameScore

logger = logging.getLogger(__name__)

LEADERBOARD_SIZE = 10


class GameScoreService:
    """Service for game score operations."""

    def __init__(self, supabase_client: Client | None = None):
        self._supabase_client = supabase_client

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    async def update_score(
        self,
        user_id: str,
        game_name: str,
        score: int,
        level: int | None = None,
        play_time: int = 0,
    ) -> GameScore:
        """Record a play for the caller.

        The latest score replaces the previous one, play time accumulates and
        the high score only ever goes up.

        Args:
            user_id: Player ID.
            game_name: Game identifier.
            score: Score of this play.
            level: Level reached, if reported.
            play_time: Seconds played in this session.

        Returns:
            GameScore: The player's record for the game.
        """
        existing = (
            self.supabase.table("game_scores")
            .select("*")
            .eq("user_id", str(user_id))
            .eq("game_name", game_name)
            .execute()
        )

        if existing.data:
            record = existing.data[0]
            changes: dict[str, Any] = {
                "score": score,
                "play_time": int(record.get("play_time") or 0) + play_time,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }
            if level:
                changes["level"] = level
            if score > int(record.get("high_score") or 0):
                changes["high_score"] = score
            result = (
                self.supabase.table("game_scores")
                .update(changes)
                .eq("id", record["id"])
                .execute()
            )
        else:
            result = (
                self.supabase.table("game_scores")
                .insert(
                    {
                        "user_id": str(user_id),
                        "game_name": game_name,
                        "score": score,
                        "high_score": score,
                        "level": level or 1,
                        "play_time": play_time,
                    }
                )
                .execute()
            )

        if not result.data:
            raise Exception("Failed to save game score")
        return result.data[0]

    async def leaderboard(self, game_name: str) -> list[dict[str, Any]]:
        """Top records for a game by high score, with player names."""
        result = (
            self.supabase.table("game_scores")
            .select("*")
            .eq("game_name", game_name)
            .order("high_score", desc=True)
            .limit(LEADERBOARD_SIZE)
            .execute()
        )
        scores = result.data or []
        if not scores:
            return []

        user_ids = list({s["user_id"] for s in scores})
        users = (
            self.supabase.table("users")
            .select("id, name")
            .in_("id", user_ids)
            .execute()
        )
        names = {u["id"]: u.get("name") for u in users.data or []}
        return [{**s, "player_name": names.get(s["user_id"])} for s in scores]

    async def my_scores(self, user_id: str) -> list[GameScore]:
        """Every game record of the caller."""
        result = (
            self.supabase.table("game_scores")
            .select("*")
            .eq("user_id", str(user_id))
            .execute()
        )
        return result.data or []
