"""Admin wallet management endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.datetime_utils import start_of_local_day, utc_now
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.wallet_service.models import (
    GameKind,
    GamePlay,
    Redemption,
    TransactionType,
    Wallet,
    WalletTransaction,
)
from services.wallet_service.routers.common import rejection_to_http
from services.wallet_service.schemas import (
    AdjustBalanceRequest,
    AdjustBalanceResponse,
    AdminStatsResponse,
    AdminWalletListResponse,
    ReconciliationResponse,
    ResetGamesResponse,
    TransactionResponse,
    WalletResponse,
)
from services.wallet_service.services import game_gate
from services.wallet_service.services.outcomes import Rejection
from services.wallet_service.services.wallet_ops import (
    ADMIN_SOURCE_PREFIX,
    apply_delta,
    get_wallet_by_user_id,
    reconcile_wallet,
)
from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/admin/wallet", tags=["admin-wallet"])


# ---------------------------------------------------------------------------
# Wallet management
# ---------------------------------------------------------------------------


@router.get("/wallets", response_model=AdminWalletListResponse)
async def list_wallets(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    search: Optional[str] = None,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List all wallets (paginated, searchable by user id)."""
    query = select(Wallet)
    count_query = select(func.count()).select_from(Wallet)

    if search:
        query = query.where(Wallet.user_id.ilike(f"%{search}%"))
        count_query = count_query.where(Wallet.user_id.ilike(f"%{search}%"))

    total = (await db.execute(count_query)).scalar() or 0
    result = await db.execute(
        query.order_by(desc(Wallet.created_at)).offset(skip).limit(limit)
    )
    wallets = result.scalars().all()
    return AdminWalletListResponse(
        wallets=[WalletResponse.model_validate(w) for w in wallets],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/wallets/{user_id}", response_model=WalletResponse)
async def get_wallet_detail(
    user_id: str,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await get_wallet_by_user_id(db, user_id)


@router.post("/wallets/{user_id}/adjust", response_model=AdjustBalanceResponse)
async def adjust_balance(
    user_id: str,
    body: AdjustBalanceRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Manual credit/debit adjustment. Admin credits do not count toward reward caps."""
    if body.amount == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Amount cannot be zero",
        )

    txn_type = TransactionType.EARN if body.amount > 0 else TransactionType.SPEND
    result = await apply_delta(
        db,
        user_id=user_id,
        txn_type=txn_type,
        amount=abs(body.amount),
        source=f"{ADMIN_SOURCE_PREFIX}:adjustment",
        metadata={"reason": body.reason, "admin_id": admin.user_id},
        description=f"Adjustment by admin: {body.reason}",
        idempotency_key=body.idempotency_key,
    )
    if isinstance(result, Rejection):
        raise rejection_to_http(result)

    logger.info(
        "Admin %s adjusted wallet of %s by %d: %s",
        admin.user_id,
        user_id,
        body.amount,
        body.reason,
    )
    return AdjustBalanceResponse(
        wallet=WalletResponse.model_validate(result.wallet),
        transaction=TransactionResponse.model_validate(result.transaction),
    )


@router.get("/wallets/{user_id}/reconcile", response_model=ReconciliationResponse)
async def reconcile(
    user_id: str,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Replay the user's ledger and compare it with the stored balances."""
    report = await reconcile_wallet(db, user_id)
    return ReconciliationResponse(
        user_id=report.user_id,
        consistent=report.consistent,
        balance=report.balance,
        frozen_balance=report.frozen_balance,
        ledger_balance=report.ledger_balance,
        ledger_frozen_balance=report.ledger_frozen_balance,
        earned_minus_spent=report.earned_minus_spent,
        transaction_count=report.transaction_count,
        broken_links=report.broken_links,
    )


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------


@router.delete("/games/{user_id}", response_model=ResetGamesResponse)
async def reset_games(
    user_id: str,
    game: Optional[GameKind] = None,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Clear a user's play history so limits and cooldowns start over."""
    deleted = await game_gate.reset_plays(db, user_id, game)
    logger.info("Admin %s reset games for %s", admin.user_id, user_id)
    return ResetGamesResponse(user_id=user_id, game=game, deleted=deleted)


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


@router.get("/stats", response_model=AdminStatsResponse)
async def get_stats(
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """System-wide wallet statistics."""
    day_start = start_of_local_day(utc_now())

    totals = (
        await db.execute(
            select(
                func.count(Wallet.id),
                func.coalesce(func.sum(Wallet.balance), 0),
                func.coalesce(func.sum(Wallet.frozen_balance), 0),
                func.coalesce(func.sum(Wallet.total_earned), 0),
                func.coalesce(func.sum(Wallet.total_spent), 0),
            )
        )
    ).one()

    earned_today = (
        await db.execute(
            select(func.coalesce(func.sum(WalletTransaction.amount), 0)).where(
                WalletTransaction.transaction_type == TransactionType.EARN,
                WalletTransaction.created_at >= day_start,
            )
        )
    ).scalar() or 0
    plays_today = (
        await db.execute(
            select(func.count())
            .select_from(GamePlay)
            .where(GamePlay.started_at >= day_start)
        )
    ).scalar() or 0
    redemptions_today = (
        await db.execute(
            select(func.count())
            .select_from(Redemption)
            .where(Redemption.created_at >= day_start)
        )
    ).scalar() or 0

    return AdminStatsResponse(
        total_wallets=totals[0],
        total_balance=totals[1],
        total_frozen=totals[2],
        total_earned=totals[3],
        total_spent=totals[4],
        earned_today=earned_today,
        plays_today=plays_today,
        redemptions_today=redemptions_today,
    )
