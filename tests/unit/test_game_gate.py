"""Unit tests for the game session gate (admission, cooldowns, limits).

Times are injected: NOW is noon in the business timezone (Asia/Hong_Kong).
"""

from datetime import datetime, timedelta, timezone

import pytest
from services.wallet_service.models import (
    GameKind,
    GamePlay,
    GamePlayStatus,
    GameState,
    MembershipTier,
    RejectionReason,
    RewardOutcome,
)
from services.wallet_service.policy import RewardPolicy
from services.wallet_service.services import game_gate
from services.wallet_service.services.outcomes import Rejection
from sqlalchemy import func, select
from tests.factories import GamePlayFactory, unique_user_id

NOW = datetime(2026, 3, 10, 4, 0, tzinfo=timezone.utc)  # 12:00 in Hong Kong
NEXT_LOCAL_MIDNIGHT = datetime(2026, 3, 10, 16, 0, tzinfo=timezone.utc)


async def _seed(db, **overrides):
    play = GamePlayFactory.create(**overrides)
    db.add(play)
    await db.commit()
    return play


async def _count_plays(db, user_id) -> int:
    result = await db.execute(
        select(func.count()).select_from(GamePlay).where(GamePlay.user_id == user_id)
    )
    return result.scalar()


# ---------------------------------------------------------------------------
# Admission and in-progress plays
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_admit_starts_play(db_session, reward_policy):
    user_id = unique_user_id()

    play = await game_gate.admit(
        db_session,
        user_id=user_id,
        game=GameKind.MATCH_THREE,
        policy=reward_policy,
        now=NOW,
    )

    assert isinstance(play, GamePlay)
    assert play.status == GamePlayStatus.PLAYING
    assert play.started_at == NOW
    state = await game_gate.get_state(
        db_session, user_id, GameKind.MATCH_THREE, reward_policy, now=NOW
    )
    assert state == GameState.PLAYING


@pytest.mark.asyncio
@pytest.mark.unit
async def test_second_admission_while_playing_rejected(db_session, reward_policy):
    user_id = unique_user_id()
    await game_gate.admit(
        db_session,
        user_id=user_id,
        game=GameKind.MATCH_THREE,
        policy=reward_policy,
        now=NOW,
    )

    result = await game_gate.admit(
        db_session,
        user_id=user_id,
        game=GameKind.MATCH_THREE,
        policy=reward_policy,
        now=NOW + timedelta(seconds=10),
    )

    assert isinstance(result, Rejection)
    assert result.reason == RejectionReason.PLAY_IN_PROGRESS
    assert result.retry_after_seconds == 290
    assert await _count_plays(db_session, user_id) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_abandoned_play_counts_as_finished(db_session, reward_policy):
    user_id = unique_user_id()
    await _seed(
        db_session,
        user_id=user_id,
        game=GameKind.MATCH_THREE,
        status=GamePlayStatus.PLAYING,
        started_at=NOW - timedelta(seconds=400),
        completed_at=None,
        outcome=None,
        reward=0,
    )

    state = await game_gate.get_state(
        db_session, user_id, GameKind.MATCH_THREE, reward_policy, now=NOW
    )
    result = await game_gate.admit(
        db_session,
        user_id=user_id,
        game=GameKind.MATCH_THREE,
        policy=reward_policy,
        now=NOW,
    )

    assert state == GameState.IDLE
    assert isinstance(result, GamePlay)


# ---------------------------------------------------------------------------
# Cooldowns
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cooldown_after_completion(db_session, reward_policy):
    user_id = unique_user_id()
    play = await game_gate.admit(
        db_session,
        user_id=user_id,
        game=GameKind.MATCH_THREE,
        policy=reward_policy,
        now=NOW,
    )
    await game_gate.complete(
        db_session,
        play,
        score=1500,
        reward=100,
        outcome=RewardOutcome.CREDITED,
        now=NOW + timedelta(seconds=20),
    )

    state = await game_gate.get_state(
        db_session,
        user_id,
        GameKind.MATCH_THREE,
        reward_policy,
        now=NOW + timedelta(seconds=50),
    )
    rejected = await game_gate.admit(
        db_session,
        user_id=user_id,
        game=GameKind.MATCH_THREE,
        policy=reward_policy,
        now=NOW + timedelta(seconds=50),
    )
    admitted = await game_gate.admit(
        db_session,
        user_id=user_id,
        game=GameKind.MATCH_THREE,
        policy=reward_policy,
        now=NOW + timedelta(seconds=80),
    )

    assert state == GameState.COOLDOWN
    assert rejected.reason == RejectionReason.COOLDOWN_ACTIVE
    assert rejected.retry_after_seconds == 30
    assert isinstance(admitted, GamePlay)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_any_scope_cooldown_spans_games(db_session, reward_policy):
    user_id = unique_user_id()
    await _seed(
        db_session,
        user_id=user_id,
        game=GameKind.QUIZ,
        started_at=NOW - timedelta(seconds=40),
        completed_at=NOW - timedelta(seconds=30),
    )

    feed = await game_gate.admit(
        db_session,
        user_id=user_id,
        game=GameKind.FEED_PET,
        policy=reward_policy,
        now=NOW,
    )
    match = await game_gate.admit(
        db_session,
        user_id=user_id,
        game=GameKind.MATCH_THREE,
        policy=reward_policy,
        now=NOW,
    )

    assert isinstance(feed, Rejection)
    assert feed.reason == RejectionReason.COOLDOWN_ACTIVE
    assert feed.retry_after_seconds == 30
    assert isinstance(match, GamePlay)


# ---------------------------------------------------------------------------
# Period limits
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_quiz_once_per_calendar_day(db_session, reward_policy):
    user_id = unique_user_id()
    await _seed(
        db_session,
        user_id=user_id,
        game=GameKind.QUIZ,
        started_at=NOW - timedelta(hours=3),
    )

    today = await game_gate.admit(
        db_session, user_id=user_id, game=GameKind.QUIZ, policy=reward_policy, now=NOW
    )
    tomorrow = await game_gate.admit(
        db_session,
        user_id=user_id,
        game=GameKind.QUIZ,
        policy=reward_policy,
        now=NEXT_LOCAL_MIDNIGHT + timedelta(minutes=1),
    )

    assert today.reason == RejectionReason.COOLDOWN_ACTIVE
    assert today.retry_after_seconds == 12 * 3600
    assert isinstance(tomorrow, GamePlay)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_lucky_wheel_once_per_rolling_week(db_session, reward_policy):
    user_id = unique_user_id()
    spun_at = NOW - timedelta(days=3)
    await _seed(
        db_session, user_id=user_id, game=GameKind.LUCKY_WHEEL, started_at=spun_at
    )

    too_soon = await game_gate.admit(
        db_session,
        user_id=user_id,
        game=GameKind.LUCKY_WHEEL,
        policy=reward_policy,
        now=NOW,
    )
    week_later = await game_gate.admit(
        db_session,
        user_id=user_id,
        game=GameKind.LUCKY_WHEEL,
        policy=reward_policy,
        now=spun_at + timedelta(days=7, seconds=1),
    )

    assert too_soon.reason == RejectionReason.COOLDOWN_ACTIVE
    assert too_soon.retry_after_seconds == 4 * 24 * 3600
    assert isinstance(week_later, GamePlay)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_daily_play_limit(db_session, reward_policy):
    user_id = unique_user_id()
    for i in range(reward_policy.max_games_per_day):
        await _seed(
            db_session,
            user_id=user_id,
            game=GameKind.MATCH_THREE,
            started_at=NOW - timedelta(minutes=10 * (i + 1)),
        )

    result = await game_gate.admit(
        db_session,
        user_id=user_id,
        game=GameKind.FEED_PET,
        policy=reward_policy,
        now=NOW,
    )

    assert result.reason == RejectionReason.DAILY_PLAY_LIMIT
    assert result.retry_after_seconds == 12 * 3600


@pytest.mark.asyncio
@pytest.mark.unit
async def test_members_only_game(db_session):
    policy = RewardPolicy()
    policy.games[GameKind.LUCKY_WHEEL].members_only = True
    user_id = unique_user_id()

    guest = await game_gate.admit(
        db_session, user_id=user_id, game=GameKind.LUCKY_WHEEL, policy=policy, now=NOW
    )
    member = await game_gate.admit(
        db_session,
        user_id=user_id,
        game=GameKind.LUCKY_WHEEL,
        policy=policy,
        tier=MembershipTier.SILVER,
        now=NOW,
    )

    assert guest.reason == RejectionReason.MEMBERSHIP_REQUIRED
    assert isinstance(member, GamePlay)


# ---------------------------------------------------------------------------
# Status and reset
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_daily_status(db_session, reward_policy):
    user_id = unique_user_id()
    await _seed(
        db_session,
        user_id=user_id,
        game=GameKind.QUIZ,
        started_at=NOW - timedelta(hours=1),
    )
    await _seed(
        db_session,
        user_id=user_id,
        game=GameKind.MATCH_THREE,
        started_at=NOW - timedelta(seconds=30),
    )
    # Yesterday (local) does not count
    await _seed(
        db_session,
        user_id=user_id,
        game=GameKind.MATCH_THREE,
        started_at=NOW - timedelta(hours=13),
    )

    status = await game_gate.daily_status(db_session, user_id, reward_policy, now=NOW)

    assert status.total_plays == 2
    assert status.max_plays == 10
    assert status.can_play_more
    assert status.games[GameKind.QUIZ].state == GameState.COOLDOWN
    assert status.games[GameKind.QUIZ].plays_today == 1
    assert status.games[GameKind.MATCH_THREE].state == GameState.COOLDOWN
    assert status.games[GameKind.MATCH_THREE].wait_seconds == 30
    assert status.games[GameKind.LUCKY_WHEEL].state == GameState.IDLE


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reset_plays_clears_history(db_session, reward_policy):
    user_id = unique_user_id()
    await _seed(db_session, user_id=user_id, game=GameKind.QUIZ, started_at=NOW)
    await _seed(
        db_session,
        user_id=user_id,
        game=GameKind.LUCKY_WHEEL,
        started_at=NOW - timedelta(days=1),
    )

    deleted = await game_gate.reset_plays(db_session, user_id, GameKind.QUIZ)
    quiz = await game_gate.admit(
        db_session,
        user_id=user_id,
        game=GameKind.QUIZ,
        policy=reward_policy,
        now=NOW + timedelta(minutes=5),
    )

    assert deleted == 1
    assert isinstance(quiz, GamePlay)
    assert await _count_plays(db_session, user_id) == 2
