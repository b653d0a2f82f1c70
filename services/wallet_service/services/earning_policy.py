"""Earning policy engine: turns a qualifying action into a reward amount.

Base amounts come from the injected ``RewardPolicy``; membership multipliers
are applied with half-up rounding to whole cents, and every credit passes the
daily earning cap under the wallet lock (no partial credit).
"""

import random
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from libs.common.datetime_utils import (
    seconds_until,
    start_of_local_day,
    start_of_next_local_day,
    utc_now,
)
from libs.common.logging import get_logger
from services.wallet_service.models import (
    MembershipTier,
    RejectionReason,
    TransactionType,
    Wallet,
)
from services.wallet_service.policy import GameRule, RewardKind, RewardPolicy
from services.wallet_service.services.outcomes import LedgerResult, Rejection
from services.wallet_service.services.wallet_ops import apply_delta, sum_earned_since
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

_rng = random.Random()


@dataclass(frozen=True)
class BaseReward:
    amount: int
    # index of the prize drawn for CHOICES rules (wheel position)
    position: Optional[int] = None


def pick_base_amount(
    rule: GameRule,
    *,
    score: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> BaseReward:
    """Draw the pre-multiplier reward for one play of a game."""
    rng = rng or _rng
    if rule.reward_kind == RewardKind.RANGE:
        return BaseReward(rng.randint(rule.min_reward, rule.max_reward))

    if rule.reward_kind == RewardKind.CHOICES:
        position = rng.randrange(len(rule.choices))
        return BaseReward(rule.choices[position], position=position)

    if rule.reward_kind == RewardKind.TIERS:
        reached = [t for t in rule.score_tiers if (score or 0) >= t.min_score]
        if not reached:
            return BaseReward(0)
        return BaseReward(max(reached, key=lambda t: t.min_score).reward)

    if rule.reward_kind == RewardKind.PER_UNIT:
        return BaseReward(rule.unit_reward * max(score or 0, 0))

    raise ValueError(f"Unknown reward kind: {rule.reward_kind}")


def compute_reward(
    tier: Optional[MembershipTier],
    base_amount: Union[int, Decimal],
    policy: RewardPolicy,
) -> int:
    """Scale a base amount by the tier multiplier, rounded half-up to cents."""
    scaled = Decimal(base_amount) * policy.multiplier(tier)
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def draw_reward(
    rule: GameRule,
    tier: Optional[MembershipTier],
    policy: RewardPolicy,
    *,
    score: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> int:
    base = pick_base_amount(rule, score=score, rng=rng)
    return compute_reward(tier, base.amount, policy)


def check_membership(
    members_only: bool, tier: Optional[MembershipTier], what: str
) -> Optional[Rejection]:
    if members_only and tier is None:
        return Rejection(
            reason=RejectionReason.MEMBERSHIP_REQUIRED,
            message=f"{what} is available to members only",
        )
    return None


async def check_daily_cap(
    db: AsyncSession,
    user_id: str,
    amount: int,
    policy: RewardPolicy,
    now: Optional[datetime] = None,
) -> Optional[Rejection]:
    """Allow (None) if ``earned_today + amount <= cap``, otherwise reject outright.

    Reaching the cap exactly is allowed; one cent over rejects the whole amount.
    """
    now = now or utc_now()
    earned_today = await sum_earned_since(db, user_id, start_of_local_day(now))
    cap = policy.daily_earning_cap
    if earned_today + amount <= cap:
        return None

    remaining = max(cap - earned_today, 0)
    return Rejection(
        reason=RejectionReason.DAILY_CAP_EXCEEDED,
        message=(
            f"Daily earning limit reached: {amount} would exceed the cap of {cap} "
            f"({remaining} left today)"
        ),
        retry_after_seconds=seconds_until(start_of_next_local_day(now), now),
        remaining_allowance=remaining,
    )


async def daily_allowance(
    db: AsyncSession,
    user_id: str,
    policy: RewardPolicy,
    now: Optional[datetime] = None,
) -> int:
    """Cents the user may still earn before today's cap."""
    now = now or utc_now()
    earned_today = await sum_earned_since(db, user_id, start_of_local_day(now))
    return max(policy.daily_earning_cap - earned_today, 0)


async def earn(
    db: AsyncSession,
    *,
    user_id: str,
    amount: int,
    source: str,
    policy: RewardPolicy,
    now: Optional[datetime] = None,
    metadata: Optional[dict] = None,
    description: Optional[str] = None,
    idempotency_key: Optional[str] = None,
) -> Union[LedgerResult, Rejection]:
    """Credit a reward, subject to the daily cap.

    The cap is evaluated inside ``apply_delta`` after the wallet row is
    locked, so two concurrent rewards cannot both squeeze under it.
    """

    async def cap_guard(session: AsyncSession, wallet: Wallet) -> Optional[Rejection]:
        return await check_daily_cap(session, user_id, amount, policy, now)

    result = await apply_delta(
        db,
        user_id=user_id,
        txn_type=TransactionType.EARN,
        amount=amount,
        source=source,
        metadata=metadata,
        description=description,
        idempotency_key=idempotency_key,
        guard=cap_guard,
    )
    if isinstance(result, LedgerResult) and not result.replayed:
        logger.info("Rewarded user %s with %d from %s", user_id, amount, source)
    return result
