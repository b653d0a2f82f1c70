"""Reward flows built on the gate, the earning policy and the ledger.

Games, daily check-ins, one-time tasks and purchase cashback all end in a
capped EARN; each flow owns its own dedupe record so a retried request never
pays twice.
"""

import random
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional, Union

from libs.common.datetime_utils import (
    local_date,
    seconds_until,
    start_of_next_local_day,
    utc_now,
)
from libs.common.logging import get_logger
from services.wallet_service.models import (
    DailyCheckIn,
    GameKind,
    GamePlay,
    GamePlayStatus,
    MembershipTier,
    RejectionReason,
    RewardOutcome,
    TaskType,
    UserTask,
    Wallet,
)
from services.wallet_service.policy import RewardKind, RewardPolicy
from services.wallet_service.services import game_gate
from services.wallet_service.services.earning_policy import (
    compute_reward,
    earn,
    pick_base_amount,
)
from services.wallet_service.services.outcomes import LedgerResult, Rejection
from services.wallet_service.services.wallet_ops import get_wallet
from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

# Games whose reward depends on the submitted score
SCORED_REWARD_KINDS = frozenset({RewardKind.TIERS, RewardKind.PER_UNIT})


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------


@dataclass
class GamePlayResult:
    play: GamePlay
    base_amount: int
    reward: int
    outcome: RewardOutcome
    wallet: Optional[Wallet]
    position: Optional[int] = None
    remaining_allowance: Optional[int] = None


async def play_game(
    db: AsyncSession,
    *,
    user_id: str,
    game: GameKind,
    policy: RewardPolicy,
    tier: Optional[MembershipTier] = None,
    score: Optional[int] = None,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> Union[GamePlayResult, Rejection]:
    """Admit, draw, credit and complete one play.

    A play that hits the daily cap still completes (and enters cooldown); it
    just pays nothing and reports ``daily_cap_exceeded``. A scored game whose
    score earns nothing is refused before admission and records no play.
    """
    rule = policy.game_rule(game)
    base = pick_base_amount(rule, score=score, rng=rng)
    if base.amount <= 0 and rule.reward_kind in SCORED_REWARD_KINDS:
        return Rejection(
            reason=RejectionReason.SCORE_TOO_LOW,
            message=f"Score {score or 0} does not earn a {game.value} reward",
        )

    admitted = await game_gate.admit(
        db, user_id=user_id, game=game, policy=policy, tier=tier, now=now
    )
    if isinstance(admitted, Rejection):
        return admitted
    play = admitted
    play_id = play.id

    amount = compute_reward(tier, base.amount, policy)
    metadata = {"play_id": str(play_id), "score": score, "base_amount": base.amount}
    if base.position is not None:
        metadata["position"] = base.position

    remaining = None
    transaction_id = None
    if amount <= 0:
        outcome = RewardOutcome.NO_REWARD
        credited = 0
    else:
        result = await earn(
            db,
            user_id=user_id,
            amount=amount,
            source=f"game:{game.value}",
            policy=policy,
            now=now,
            metadata=metadata,
            description=f"Reward from {game.value.replace('_', ' ')}",
            idempotency_key=f"game:{play_id}",
        )
        if isinstance(result, Rejection):
            outcome = RewardOutcome.DAILY_CAP_EXCEEDED
            credited = 0
            remaining = result.remaining_allowance
        else:
            outcome = RewardOutcome.CREDITED
            credited = amount
            transaction_id = result.transaction.id

    play = await game_gate.complete(
        db,
        play,
        score=score or 0,
        reward=credited,
        outcome=outcome,
        transaction_id=transaction_id,
        metadata=metadata,
        now=now,
    )
    wallet = await get_wallet(db, user_id)
    await db.commit()

    logger.info(
        "User %s finished %s: outcome=%s reward=%d",
        user_id,
        game.value,
        outcome.value,
        credited,
    )
    return GamePlayResult(
        play=play,
        base_amount=base.amount,
        reward=credited,
        outcome=outcome,
        wallet=wallet,
        position=base.position,
        remaining_allowance=remaining,
    )


@dataclass
class LeaderboardEntry:
    rank: int
    user_id: str
    total_score: int
    best_score: int
    total_reward: int
    plays: int


async def leaderboard(
    db: AsyncSession, game: GameKind, limit: int = 10
) -> list[LeaderboardEntry]:
    """Top players of a game by total score over completed plays."""
    total_score = func.sum(GamePlay.score).label("total_score")
    result = await db.execute(
        select(
            GamePlay.user_id,
            total_score,
            func.max(GamePlay.score).label("best_score"),
            func.sum(GamePlay.reward).label("total_reward"),
            func.count(GamePlay.id).label("plays"),
        )
        .where(
            GamePlay.game == game,
            GamePlay.status == GamePlayStatus.COMPLETED,
        )
        .group_by(GamePlay.user_id)
        .order_by(desc(total_score), GamePlay.user_id)
        .limit(limit)
    )
    return [
        LeaderboardEntry(
            rank=rank,
            user_id=row.user_id,
            total_score=int(row.total_score or 0),
            best_score=int(row.best_score or 0),
            total_reward=int(row.total_reward or 0),
            plays=row.plays,
        )
        for rank, row in enumerate(result.all(), start=1)
    ]


# ---------------------------------------------------------------------------
# Daily check-in
# ---------------------------------------------------------------------------


async def _discard(db: AsyncSession, model, row_id: uuid.UUID) -> None:
    """Remove a dedupe row whose reward was never paid, so the claim can be retried."""
    await db.rollback()
    await db.execute(delete(model).where(model.id == row_id))
    await db.commit()
    logger.info("Released unpaid %s %s", model.__tablename__, row_id)


@dataclass
class CheckInResult:
    checkin: DailyCheckIn
    wallet: Wallet
    streak_bonus: int


@dataclass
class CheckInStatus:
    checked_in_today: bool
    consecutive_days: int
    last_checkin_date: Optional[date]


async def _get_checkin(
    db: AsyncSession, user_id: str, day: date
) -> Optional[DailyCheckIn]:
    result = await db.execute(
        select(DailyCheckIn).where(
            DailyCheckIn.user_id == user_id, DailyCheckIn.checkin_date == day
        )
    )
    return result.scalar_one_or_none()


def _already_checked_in(now: datetime) -> Rejection:
    return Rejection(
        reason=RejectionReason.ALREADY_CHECKED_IN,
        message="Already checked in today",
        retry_after_seconds=seconds_until(start_of_next_local_day(now), now),
    )


async def check_in(
    db: AsyncSession,
    *,
    user_id: str,
    policy: RewardPolicy,
    tier: Optional[MembershipTier] = None,
    now: Optional[datetime] = None,
) -> Union[CheckInResult, Rejection]:
    """Record today's check-in and pay base + tier bonus + streak bonus.

    The streak continues only from yesterday's check-in. The check-in row is
    written first so its unique (user, date) key settles concurrent requests;
    it is removed again if the reward is refused.
    """
    now = now or utc_now()
    today = local_date(now)

    if await _get_checkin(db, user_id, today):
        return _already_checked_in(now)

    yesterday = await _get_checkin(db, user_id, today - timedelta(days=1))
    consecutive = yesterday.consecutive_days + 1 if yesterday else 1
    streak_bonus = policy.checkin_streak_bonus.get(consecutive, 0)
    reward = policy.checkin_base_reward + policy.checkin_bonus(tier) + streak_bonus

    checkin = DailyCheckIn(
        user_id=user_id,
        checkin_date=today,
        consecutive_days=consecutive,
        reward=reward,
    )
    db.add(checkin)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        return _already_checked_in(now)
    checkin_id = checkin.id

    try:
        result = await earn(
            db,
            user_id=user_id,
            amount=reward,
            source="checkin",
            policy=policy,
            now=now,
            metadata={"consecutive_days": consecutive, "streak_bonus": streak_bonus},
            description=f"Daily check-in (day {consecutive})",
            idempotency_key=f"checkin:{user_id}:{today.isoformat()}",
        )
    except Exception:
        await _discard(db, DailyCheckIn, checkin_id)
        raise
    if isinstance(result, Rejection):
        await _discard(db, DailyCheckIn, checkin_id)
        return result

    checkin.transaction_id = result.transaction.id
    await db.commit()
    await db.refresh(checkin)
    logger.info(
        "User %s checked in (day %d, reward %d)", user_id, consecutive, reward
    )
    return CheckInResult(checkin=checkin, wallet=result.wallet, streak_bonus=streak_bonus)


async def checkin_status(
    db: AsyncSession, user_id: str, now: Optional[datetime] = None
) -> CheckInStatus:
    now = now or utc_now()
    today = local_date(now)
    result = await db.execute(
        select(DailyCheckIn)
        .where(DailyCheckIn.user_id == user_id)
        .order_by(desc(DailyCheckIn.checkin_date))
        .limit(1)
    )
    last = result.scalar_one_or_none()
    if last is None:
        return CheckInStatus(False, 0, None)

    # A streak survives until the end of the day after the last check-in
    streak_alive = last.checkin_date >= today - timedelta(days=1)
    return CheckInStatus(
        checked_in_today=last.checkin_date == today,
        consecutive_days=last.consecutive_days if streak_alive else 0,
        last_checkin_date=last.checkin_date,
    )


# ---------------------------------------------------------------------------
# One-time tasks
# ---------------------------------------------------------------------------


@dataclass
class TaskResult:
    task: UserTask
    wallet: Wallet


@dataclass
class TaskStatus:
    task_type: TaskType
    reward: int
    completed: bool
    completed_at: Optional[datetime] = None


def _task_done(task_type: TaskType) -> Rejection:
    return Rejection(
        reason=RejectionReason.TASK_ALREADY_COMPLETED,
        message=f"Task {task_type.value} has already been completed",
    )


async def complete_task(
    db: AsyncSession,
    *,
    user_id: str,
    task_type: TaskType,
    policy: RewardPolicy,
    tier: Optional[MembershipTier] = None,
    now: Optional[datetime] = None,
) -> Union[TaskResult, Rejection]:
    if task_type not in policy.task_rewards:
        raise ValueError(f"No reward configured for task {task_type.value}")
    reward = compute_reward(tier, policy.task_rewards[task_type], policy)

    task = UserTask(user_id=user_id, task_type=task_type, reward=reward)
    db.add(task)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        return _task_done(task_type)
    task_id = task.id

    try:
        result = await earn(
            db,
            user_id=user_id,
            amount=reward,
            source=f"task:{task_type.value}",
            policy=policy,
            now=now,
            description=f"Task reward: {task_type.value.replace('_', ' ')}",
            idempotency_key=f"task:{user_id}:{task_type.value}",
        )
    except Exception:
        await _discard(db, UserTask, task_id)
        raise
    if isinstance(result, Rejection):
        await _discard(db, UserTask, task_id)
        return result

    task.transaction_id = result.transaction.id
    await db.commit()
    await db.refresh(task)
    logger.info("User %s completed task %s (+%d)", user_id, task_type.value, reward)
    return TaskResult(task=task, wallet=result.wallet)


async def task_status(
    db: AsyncSession,
    user_id: str,
    policy: RewardPolicy,
    tier: Optional[MembershipTier] = None,
) -> list[TaskStatus]:
    result = await db.execute(select(UserTask).where(UserTask.user_id == user_id))
    done = {task.task_type: task for task in result.scalars().all()}
    return [
        TaskStatus(
            task_type=task_type,
            reward=(
                done[task_type].reward
                if task_type in done
                else compute_reward(tier, base, policy)
            ),
            completed=task_type in done,
            completed_at=done[task_type].completed_at if task_type in done else None,
        )
        for task_type, base in policy.task_rewards.items()
    ]


# ---------------------------------------------------------------------------
# Purchase cashback
# ---------------------------------------------------------------------------


def purchase_reward_amount(
    order_total: int, policy: RewardPolicy, tier: Optional[MembershipTier] = None
) -> int:
    base = Decimal(order_total) * policy.purchase_reward_percent / Decimal(100)
    return compute_reward(tier, base, policy)


async def award_purchase(
    db: AsyncSession,
    *,
    user_id: str,
    order_id: Union[str, uuid.UUID],
    order_total: int,
    policy: RewardPolicy,
    tier: Optional[MembershipTier] = None,
    now: Optional[datetime] = None,
) -> Union[LedgerResult, Rejection, None]:
    """Credit cashback for a paid order. Returns None when the order earns nothing."""
    amount = purchase_reward_amount(order_total, policy, tier)
    if amount <= 0:
        return None
    return await earn(
        db,
        user_id=user_id,
        amount=amount,
        source="purchase",
        policy=policy,
        now=now,
        metadata={"order_id": str(order_id), "order_total": order_total},
        description=f"Cashback for order {order_id}",
        idempotency_key=f"purchase:{user_id}:{order_id}",
    )
