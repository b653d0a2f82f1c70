"""Game session gate.

Each (user, game) pair moves ``idle -> playing -> cooldown -> idle``. The
state is not stored; it is derived from ``GamePlay`` rows:

- a PLAYING row started less than ``GAME_PLAY_TIMEOUT_SECONDS`` ago means the
  game is in progress; older PLAYING rows are abandoned and count as finished
- a finished play inside the rule's cooldown (or period limit) means cooldown
- anything else is idle

Admissions row-lock the user's wallet so two tabs cannot both start a game.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional, Union

from libs.common.config import get_settings
from libs.common.datetime_utils import (
    local_date,
    seconds_until,
    start_of_local_day,
    start_of_next_local_day,
    utc_now,
)
from libs.common.logging import get_logger
from services.wallet_service.models import (
    GameKind,
    GamePlay,
    GamePlayStatus,
    GameState,
    MembershipTier,
    RejectionReason,
    RewardOutcome,
)
from services.wallet_service.policy import (
    CooldownScope,
    GameRule,
    LimitPeriod,
    RewardPolicy,
)
from services.wallet_service.services.earning_policy import check_membership
from services.wallet_service.services.outcomes import Rejection
from services.wallet_service.services.wallet_ops import lock_wallet
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

ROLLING_WEEK = timedelta(days=7)


@dataclass(frozen=True)
class GateStatus:
    game: GameKind
    state: GameState
    plays_today: int
    wait_seconds: int = 0


@dataclass
class DailyGameStatus:
    date: date
    total_plays: int
    max_plays: int
    games: dict[GameKind, GateStatus] = field(default_factory=dict)

    @property
    def can_play_more(self) -> bool:
        return self.total_plays < self.max_plays


def _play_timeout() -> timedelta:
    return timedelta(seconds=get_settings().GAME_PLAY_TIMEOUT_SECONDS)


def _is_active(play: GamePlay, now: datetime) -> bool:
    return (
        play.status == GamePlayStatus.PLAYING
        and play.started_at > now - _play_timeout()
    )


async def _recent_plays(
    db: AsyncSession, user_id: str, policy: RewardPolicy, now: datetime
) -> list[GamePlay]:
    """Plays old enough to still affect any gate decision, newest first."""
    longest_cooldown = max(
        (rule.cooldown_seconds for rule in policy.games.values()), default=0
    )
    since = min(
        start_of_local_day(now),
        now - ROLLING_WEEK,
        now - timedelta(seconds=longest_cooldown) - _play_timeout(),
    )
    result = await db.execute(
        select(GamePlay)
        .where(GamePlay.user_id == user_id, GamePlay.started_at >= since)
        .order_by(GamePlay.started_at.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


def _plays_today(plays: list[GamePlay], now: datetime) -> list[GamePlay]:
    day_start = start_of_local_day(now)
    return [p for p in plays if p.started_at >= day_start]


def _in_progress_wait(
    plays: list[GamePlay], game: GameKind, rule: GameRule, now: datetime
) -> int:
    for play in plays:
        if not _is_active(play, now):
            continue
        if play.game == game or rule.cooldown_scope == CooldownScope.ANY:
            return max(seconds_until(play.started_at + _play_timeout(), now), 1)
    return 0


def _period_wait(
    plays: list[GamePlay], game: GameKind, rule: GameRule, now: datetime
) -> int:
    if rule.limit_period is None:
        return 0
    same_game = [p for p in plays if p.game == game]
    if rule.limit_period == LimitPeriod.CALENDAR_DAY:
        if _plays_today(same_game, now):
            return seconds_until(start_of_next_local_day(now), now)
        return 0
    if rule.limit_period == LimitPeriod.ROLLING_WEEK:
        recent = [p for p in same_game if p.started_at > now - ROLLING_WEEK]
        if recent:
            return seconds_until(recent[0].started_at + ROLLING_WEEK, now)
        return 0
    raise ValueError(f"Unknown limit period: {rule.limit_period}")


def _cooldown_wait(
    plays: list[GamePlay], game: GameKind, rule: GameRule, now: datetime
) -> int:
    if not rule.cooldown_seconds:
        return 0
    finished = [
        p
        for p in plays
        if not _is_active(p, now)
        and (p.game == game or rule.cooldown_scope == CooldownScope.ANY)
    ]
    if not finished:
        return 0
    last = max(finished, key=lambda p: p.finished_at)
    return seconds_until(
        last.finished_at + timedelta(seconds=rule.cooldown_seconds), now
    )


def _evaluate(
    plays: list[GamePlay],
    game: GameKind,
    rule: GameRule,
    policy: RewardPolicy,
    now: datetime,
) -> Optional[Rejection]:
    wait = _in_progress_wait(plays, game, rule, now)
    if wait:
        return Rejection(
            reason=RejectionReason.PLAY_IN_PROGRESS,
            message="A game is already in progress",
            retry_after_seconds=wait,
        )

    if len(_plays_today(plays, now)) >= policy.max_games_per_day:
        return Rejection(
            reason=RejectionReason.DAILY_PLAY_LIMIT,
            message=f"Daily limit of {policy.max_games_per_day} games reached",
            retry_after_seconds=seconds_until(start_of_next_local_day(now), now),
        )

    wait = _period_wait(plays, game, rule, now)
    if wait:
        return Rejection(
            reason=RejectionReason.COOLDOWN_ACTIVE,
            message=f"{game.value} has already been played this period",
            retry_after_seconds=wait,
        )

    wait = _cooldown_wait(plays, game, rule, now)
    if wait:
        return Rejection(
            reason=RejectionReason.COOLDOWN_ACTIVE,
            message=f"Please wait {wait} seconds before playing again",
            retry_after_seconds=wait,
        )
    return None


def _status_for(
    plays: list[GamePlay],
    game: GameKind,
    rule: GameRule,
    now: datetime,
) -> GateStatus:
    plays_today = len([p for p in _plays_today(plays, now) if p.game == game])
    if any(p.game == game and _is_active(p, now) for p in plays):
        return GateStatus(
            game=game,
            state=GameState.PLAYING,
            plays_today=plays_today,
            wait_seconds=_in_progress_wait(plays, game, rule, now),
        )
    wait = max(_period_wait(plays, game, rule, now), _cooldown_wait(plays, game, rule, now))
    state = GameState.COOLDOWN if wait else GameState.IDLE
    return GateStatus(game=game, state=state, plays_today=plays_today, wait_seconds=wait)


async def get_state(
    db: AsyncSession,
    user_id: str,
    game: GameKind,
    policy: RewardPolicy,
    now: Optional[datetime] = None,
) -> GameState:
    now = now or utc_now()
    plays = await _recent_plays(db, user_id, policy, now)
    return _status_for(plays, game, policy.game_rule(game), now).state


async def admit(
    db: AsyncSession,
    *,
    user_id: str,
    game: GameKind,
    policy: RewardPolicy,
    tier: Optional[MembershipTier] = None,
    now: Optional[datetime] = None,
) -> Union[GamePlay, Rejection]:
    """Start a play (``idle -> playing``) or explain why the user must wait."""
    now = now or utc_now()
    rule = policy.game_rule(game)

    rejection = check_membership(rule.members_only, tier, game.value)
    if rejection:
        return rejection

    # Serialises concurrent admissions for the same user
    await lock_wallet(db, user_id)

    plays = await _recent_plays(db, user_id, policy, now)
    rejection = _evaluate(plays, game, rule, policy, now)
    if rejection:
        await db.rollback()
        logger.info(
            "Game %s refused for user %s: %s (retry in %ss)",
            game.value,
            user_id,
            rejection.reason.value,
            rejection.retry_after_seconds,
        )
        return rejection

    play = GamePlay(
        user_id=user_id,
        game=game,
        status=GamePlayStatus.PLAYING,
        started_at=now,
        score=0,
        reward=0,
    )
    db.add(play)
    await db.commit()
    logger.info("User %s started %s (play %s)", user_id, game.value, play.id)
    return play


async def complete(
    db: AsyncSession,
    play: GamePlay,
    *,
    score: int = 0,
    reward: int = 0,
    outcome: RewardOutcome = RewardOutcome.NO_REWARD,
    transaction_id=None,
    metadata: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> GamePlay:
    """Finish a play (``playing -> cooldown``) whatever the reward outcome was."""
    # The ledger may have rolled back (and expired) the session in between
    await db.refresh(play)
    play.status = GamePlayStatus.COMPLETED
    play.completed_at = now or utc_now()
    play.score = score
    play.reward = reward
    play.outcome = outcome
    play.transaction_id = transaction_id
    play.play_metadata = metadata
    await db.commit()
    return play


async def daily_status(
    db: AsyncSession,
    user_id: str,
    policy: RewardPolicy,
    now: Optional[datetime] = None,
) -> DailyGameStatus:
    now = now or utc_now()
    plays = await _recent_plays(db, user_id, policy, now)
    return DailyGameStatus(
        date=local_date(now),
        total_plays=len(_plays_today(plays, now)),
        max_plays=policy.max_games_per_day,
        games={
            game: _status_for(plays, game, rule, now)
            for game, rule in policy.games.items()
        },
    )


async def reset_plays(
    db: AsyncSession, user_id: str, game: Optional[GameKind] = None
) -> int:
    """Delete a user's play history (admin). Returns the number of rows removed."""
    stmt = delete(GamePlay).where(GamePlay.user_id == user_id)
    if game:
        stmt = stmt.where(GamePlay.game == game)
    result = await db.execute(stmt)
    await db.commit()
    logger.info(
        "Reset %d game plays for user %s (game=%s)",
        result.rowcount,
        user_id,
        game.value if game else "all",
    )
    return result.rowcount
