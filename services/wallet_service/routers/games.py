"""Mini-game endpoints: play, daily status and leaderboards."""

from fastapi import APIRouter, Depends, Query, Request
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.rate_limit import game_limit
from libs.db.session import get_async_db
from services.wallet_service.models import GameKind
from services.wallet_service.policy import RewardPolicy, get_reward_policy
from services.wallet_service.routers.common import member_tier, rejection_to_http
from services.wallet_service.schemas import (
    DailyGameStatusResponse,
    GamePlayResponse,
    GameStatusResponse,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    PlayGameRequest,
    PlayGameResponse,
)
from services.wallet_service.services import game_gate, rewards_service
from services.wallet_service.services.outcomes import Rejection
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/games", tags=["games"])


@router.get("/daily-status", response_model=DailyGameStatusResponse)
async def get_daily_status(
    current_user: AuthUser = Depends(get_current_user),
    policy: RewardPolicy = Depends(get_reward_policy),
    db: AsyncSession = Depends(get_async_db),
):
    """Plays used today and, per game, whether the user can play right now."""
    daily = await game_gate.daily_status(db, current_user.user_id, policy)
    return DailyGameStatusResponse(
        date=daily.date,
        total_plays=daily.total_plays,
        max_plays=daily.max_plays,
        can_play_more=daily.can_play_more,
        games=[
            GameStatusResponse(
                game=s.game,
                state=s.state,
                plays_today=s.plays_today,
                wait_seconds=s.wait_seconds,
            )
            for s in daily.games.values()
        ],
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    game: GameKind = Query(GameKind.MATCH_THREE),
    limit: int = Query(10, ge=1, le=100),
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    entries = await rewards_service.leaderboard(db, game, limit=limit)
    return LeaderboardResponse(
        game=game,
        entries=[
            LeaderboardEntryResponse(
                rank=e.rank,
                user_id=e.user_id,
                total_score=e.total_score,
                best_score=e.best_score,
                total_reward=e.total_reward,
                plays=e.plays,
            )
            for e in entries
        ],
    )


@router.post("/{game}/play", response_model=PlayGameResponse)
@game_limit
async def play(
    request: Request,
    game: GameKind,
    body: PlayGameRequest = PlayGameRequest(),
    current_user: AuthUser = Depends(get_current_user),
    policy: RewardPolicy = Depends(get_reward_policy),
    db: AsyncSession = Depends(get_async_db),
):
    """Play one round and collect the reward.

    Refused plays (cooldown, daily limit, game in progress) return 429 with
    ``Retry-After``.
    """
    result = await rewards_service.play_game(
        db,
        user_id=current_user.user_id,
        game=game,
        policy=policy,
        tier=member_tier(current_user),
        score=body.score,
    )
    if isinstance(result, Rejection):
        raise rejection_to_http(result)
    return PlayGameResponse(
        play=GamePlayResponse.model_validate(result.play),
        base_amount=result.base_amount,
        reward=result.reward,
        outcome=result.outcome,
        balance=result.wallet.balance if result.wallet else 0,
        position=result.position,
        remaining_allowance=result.remaining_allowance,
    )
