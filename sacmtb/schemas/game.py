"""Game score and leaderboard schemas."""

from datetime import datetime

from pydantic import Field

from sacmtb.schemas.common import CamelModel


class ScoreUpdateRequest(CamelModel):
    """Request schema for reporting a game result."""

    game_name: str = Field(..., min_length=1, max_length=100, description="Game identifier")
    score: int = Field(..., ge=0, description="Score of this play")
    level: int | None = Field(default=None, ge=1, description="Level reached")
    play_time: int = Field(default=0, ge=0, description="Seconds played in this session")


class GameScoreResponse(CamelModel):
    """A player's record for one game."""

    id: str
    user_id: str
    game_name: str
    level: int = 1
    score: int = 0
    high_score: int = 0
    play_time: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ScoreUpdateResponse(CamelModel):
    """Result of reporting a game result."""

    success: bool = True
    game_score: GameScoreResponse


class LeaderboardEntry(GameScoreResponse):
    """A leaderboard row with the player's display name."""

    player_name: str | None = None
