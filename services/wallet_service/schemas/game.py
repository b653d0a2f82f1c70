"""Game request/response schemas."""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.wallet_service.models.enums import (
    GameKind,
    GamePlayStatus,
    GameState,
    RewardOutcome,
)


class PlayGameRequest(BaseModel):
    # match_three: points scored; quiz: correct answers. Ignored by chance games.
    score: Optional[int] = Field(None, ge=0)


class GamePlayResponse(BaseModel):
    id: uuid.UUID
    game: GameKind
    status: GamePlayStatus
    score: int
    reward: int
    outcome: Optional[RewardOutcome] = None
    started_at: datetime
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PlayGameResponse(BaseModel):
    play: GamePlayResponse
    base_amount: int
    reward: int
    outcome: RewardOutcome
    balance: int
    position: Optional[int] = None
    remaining_allowance: Optional[int] = None


class GameStatusResponse(BaseModel):
    game: GameKind
    state: GameState
    plays_today: int
    wait_seconds: int


class DailyGameStatusResponse(BaseModel):
    date: date
    total_plays: int
    max_plays: int
    can_play_more: bool
    games: list[GameStatusResponse]


class LeaderboardEntryResponse(BaseModel):
    rank: int
    user_id: str
    total_score: int
    best_score: int
    total_reward: int
    plays: int


class LeaderboardResponse(BaseModel):
    game: GameKind
    entries: list[LeaderboardEntryResponse]
