"""Reward policy table.

Base ranges, caps, cooldowns and membership benefits are configuration, not
code: the defaults below mirror the storefront's launch settings and can be
replaced wholesale by pointing ``REWARD_POLICY_FILE`` at a JSON document with
the same shape. All amounts are cents.
"""

import enum
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger
from pydantic import BaseModel, Field, model_validator
from services.wallet_service.models.enums import (
    BenefitKind,
    GameKind,
    MembershipTier,
    TaskType,
)

logger = get_logger(__name__)


class RewardKind(str, enum.Enum):
    RANGE = "range"  # uniform draw inside [min_reward, max_reward]
    TIERS = "tiers"  # highest score threshold reached
    CHOICES = "choices"  # one prize drawn from a fixed list
    PER_UNIT = "per_unit"  # unit_reward per scored unit


class CooldownScope(str, enum.Enum):
    GAME = "game"
    ANY = "any"


class LimitPeriod(str, enum.Enum):
    CALENDAR_DAY = "calendar_day"
    ROLLING_WEEK = "rolling_week"


class ScoreTier(BaseModel):
    min_score: int = Field(..., ge=0)
    reward: int = Field(..., gt=0)


class GameRule(BaseModel):
    reward_kind: RewardKind
    min_reward: int = Field(0, ge=0)
    max_reward: int = Field(0, ge=0)
    score_tiers: list[ScoreTier] = Field(default_factory=list)
    choices: list[int] = Field(default_factory=list)
    unit_reward: int = Field(0, ge=0)
    cooldown_seconds: int = Field(0, ge=0)
    cooldown_scope: CooldownScope = CooldownScope.GAME
    limit_period: Optional[LimitPeriod] = None
    members_only: bool = False

    @model_validator(mode="after")
    def check_reward_shape(self) -> "GameRule":
        if self.reward_kind == RewardKind.RANGE and self.min_reward > self.max_reward:
            raise ValueError("min_reward must not exceed max_reward")
        if self.reward_kind == RewardKind.CHOICES and not self.choices:
            raise ValueError("choices reward needs at least one prize")
        if self.reward_kind == RewardKind.TIERS and not self.score_tiers:
            raise ValueError("tiers reward needs at least one score tier")
        return self


class TierBenefits(BaseModel):
    multiplier: Decimal = Field(..., gt=0)
    checkin_bonus: int = Field(0, ge=0)
    wallet_usage: Decimal = Field(..., gt=0, le=1)


def _default_games() -> dict[GameKind, GameRule]:
    return {
        GameKind.FEED_PET: GameRule(
            reward_kind=RewardKind.RANGE,
            min_reward=50,
            max_reward=200,
            cooldown_seconds=60,
            cooldown_scope=CooldownScope.ANY,
        ),
        GameKind.MATCH_THREE: GameRule(
            reward_kind=RewardKind.TIERS,
            score_tiers=[
                ScoreTier(min_score=1000, reward=100),
                ScoreTier(min_score=2000, reward=300),
                ScoreTier(min_score=3000, reward=500),
                ScoreTier(min_score=5000, reward=1000),
            ],
            cooldown_seconds=60,
        ),
        GameKind.LUCKY_WHEEL: GameRule(
            reward_kind=RewardKind.CHOICES,
            choices=[100, 200, 300, 500, 1000, 2000, 5000],
            limit_period=LimitPeriod.ROLLING_WEEK,
        ),
        GameKind.QUIZ: GameRule(
            reward_kind=RewardKind.PER_UNIT,
            unit_reward=100,
            limit_period=LimitPeriod.CALENDAR_DAY,
        ),
    }


def _default_tiers() -> dict[MembershipTier, TierBenefits]:
    return {
        MembershipTier.SILVER: TierBenefits(
            multiplier=Decimal("1.2"), checkin_bonus=50, wallet_usage=Decimal("0.4")
        ),
        MembershipTier.GOLDEN: TierBenefits(
            multiplier=Decimal("1.5"), checkin_bonus=100, wallet_usage=Decimal("0.5")
        ),
        MembershipTier.DIAMOND: TierBenefits(
            multiplier=Decimal("2.0"), checkin_bonus=200, wallet_usage=Decimal("0.7")
        ),
    }


class RewardPolicy(BaseModel):
    daily_earning_cap: int = Field(5000, gt=0)
    max_games_per_day: int = Field(10, gt=0)
    games: dict[GameKind, GameRule] = Field(default_factory=_default_games)
    tiers: dict[MembershipTier, TierBenefits] = Field(default_factory=_default_tiers)
    non_member_wallet_usage: Decimal = Field(Decimal("0.3"), gt=0, le=1)

    checkin_base_reward: int = Field(100, gt=0)
    # consecutive day -> bonus paid on exactly that day of the streak
    checkin_streak_bonus: dict[int, int] = Field(
        default_factory=lambda: {7: 500, 30: 3000}
    )

    task_rewards: dict[TaskType, int] = Field(
        default_factory=lambda: {
            TaskType.REVIEW_ORDER: 300,
            TaskType.PHOTO_REVIEW: 500,
            TaskType.SHARE_PRODUCT: 50,
            TaskType.REFER_FRIEND: 2000,
        }
    )
    purchase_reward_percent: Decimal = Field(Decimal("1"), ge=0, le=100)

    benefit_costs: dict[BenefitKind, int] = Field(
        default_factory=lambda: {BenefitKind.FREE_DELIVERY: 1000}
    )
    members_only_benefits: set[BenefitKind] = Field(default_factory=set)

    def game_rule(self, game: GameKind) -> GameRule:
        try:
            return self.games[game]
        except KeyError:
            raise ValueError(f"No reward rule configured for game {game.value}")

    def multiplier(self, tier: Optional[MembershipTier]) -> Decimal:
        if tier is None or tier not in self.tiers:
            return Decimal("1")
        return self.tiers[tier].multiplier

    def checkin_bonus(self, tier: Optional[MembershipTier]) -> int:
        if tier is None or tier not in self.tiers:
            return 0
        return self.tiers[tier].checkin_bonus

    def wallet_usage(self, tier: Optional[MembershipTier]) -> Decimal:
        if tier is None or tier not in self.tiers:
            return self.non_member_wallet_usage
        return self.tiers[tier].wallet_usage


def load_reward_policy(path: Optional[str]) -> RewardPolicy:
    if not path:
        return RewardPolicy()
    policy = RewardPolicy.model_validate_json(Path(path).read_text(encoding="utf-8"))
    logger.info("Loaded reward policy from %s", path)
    return policy


@lru_cache
def get_reward_policy() -> RewardPolicy:
    """Return the process-wide reward policy. Also used as a FastAPI dependency."""
    return load_reward_policy(get_settings().REWARD_POLICY_FILE)
