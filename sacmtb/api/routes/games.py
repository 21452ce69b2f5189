"""Mini-game score and leaderboard routes."""

from fastapi import APIRouter

from sacmtb.api.deps import CurrentUser
from sacmtb.schemas.game import GameScoreResponse, LeaderboardEntry, ScoreUpdateRequest, ScoreUpdateResponse
from sacmtb.services.game_score_service import GameScoreService

router = APIRouter(prefix="/games", tags=["games"])


@router.post("/update", response_model=ScoreUpdateResponse)
async def update_score(data: ScoreUpdateRequest, user: CurrentUser) -> ScoreUpdateResponse:
    """Record a play for the caller."""
    record = await GameScoreService().update_score(
        user_id=user.user_id,
        game_name=data.game_name,
        score=data.score,
        level=data.level,
        play_time=data.play_time,
    )
    return ScoreUpdateResponse(success=True, game_score=GameScoreResponse.model_validate(record))


@router.get("/leaderboard/{game_name}", response_model=list[LeaderboardEntry])
async def leaderboard(game_name: str) -> list[LeaderboardEntry]:
    """Top ten players of a game by high score."""
    return [LeaderboardEntry.model_validate(r) for r in await GameScoreService().leaderboard(game_name)]


@router.get("/my-scores", response_model=list[GameScoreResponse])
async def my_scores(user: CurrentUser) -> list[GameScoreResponse]:
    """The caller's records across games."""
    return [GameScoreResponse.model_validate(r) for r in await GameScoreService().my_scores(user.user_id)]
