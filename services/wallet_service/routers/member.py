"""Member-facing wallet endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.rate_limit import redeem_limit
from libs.db.session import get_async_db
from services.wallet_service.models import TransactionType, WalletTransaction
from services.wallet_service.policy import RewardPolicy, get_reward_policy
from services.wallet_service.routers.common import member_tier, rejection_to_http
from services.wallet_service.schemas import (
    CheckInResponse,
    CheckInStatusResponse,
    CompleteTaskRequest,
    CompleteTaskResponse,
    MyWalletResponse,
    RedeemForOrderRequest,
    RedeemRequest,
    RedeemResponse,
    RedemptionListResponse,
    RedemptionResponse,
    TaskResponse,
    TaskStatusResponse,
    TransactionListResponse,
    TransactionResponse,
    WalletLimits,
    WalletResponse,
)
from services.wallet_service.services import redemption_service, rewards_service
from services.wallet_service.services.earning_policy import daily_allowance
from services.wallet_service.services.outcomes import Rejection
from services.wallet_service.services.wallet_ops import (
    get_or_create_wallet,
    list_transactions,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/wallet", tags=["wallet"])


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------


@router.get("/me", response_model=MyWalletResponse)
async def get_my_wallet(
    current_user: AuthUser = Depends(get_current_user),
    policy: RewardPolicy = Depends(get_reward_policy),
    db: AsyncSession = Depends(get_async_db),
):
    """Get current user's wallet plus today's earning and usage limits.

    A first visit creates the empty wallet.
    """
    wallet = await get_or_create_wallet(db, current_user.user_id)
    remaining = await daily_allowance(db, current_user.user_id, policy)
    usage = policy.wallet_usage(member_tier(current_user))
    return MyWalletResponse(
        **WalletResponse.model_validate(wallet).model_dump(),
        limits=WalletLimits(
            daily_earning_remaining=remaining,
            max_daily_earning=policy.daily_earning_cap,
            max_wallet_usage_percent=int(usage * 100),
        ),
    )


@router.post(
    "/create", response_model=WalletResponse, status_code=status.HTTP_201_CREATED
)
async def create_my_wallet(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Create wallet for current user. Returns the existing wallet if there is one."""
    return await get_or_create_wallet(db, current_user.user_id)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@router.get("/transactions", response_model=TransactionListResponse)
async def get_my_transactions(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    transaction_type: Optional[TransactionType] = None,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Transaction history, newest first."""
    transactions, total = await list_transactions(
        db, current_user.user_id, skip=skip, limit=limit, txn_type=transaction_type
    )
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
async def get_my_transaction(
    transaction_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(
        select(WalletTransaction).where(
            WalletTransaction.id == transaction_id,
            WalletTransaction.user_id == current_user.user_id,
        )
    )
    txn = result.scalar_one_or_none()
    if not txn:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found"
        )
    return txn


# ---------------------------------------------------------------------------
# Redemptions
# ---------------------------------------------------------------------------


def _resolve_cost(body: RedeemRequest, policy: RewardPolicy) -> int:
    cost = body.cost or redemption_service.benefit_cost(body.benefit_kind, policy)
    if not cost:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"cost is required for {body.benefit_kind.value}",
        )
    return cost


def _redeem_response(result) -> RedeemResponse:
    if isinstance(result, Rejection):
        raise rejection_to_http(result)
    return RedeemResponse(
        redemption=RedemptionResponse.model_validate(result.redemption),
        balance=result.wallet.balance,
        duplicate=result.duplicate,
    )


@router.post("/redeem", response_model=RedeemResponse)
@redeem_limit
async def redeem(
    request: Request,
    body: RedeemRequest,
    current_user: AuthUser = Depends(get_current_user),
    policy: RewardPolicy = Depends(get_reward_policy),
    db: AsyncSession = Depends(get_async_db),
):
    """Spend wallet balance on a benefit. Safe to retry with the same request_id."""
    result = await redemption_service.redeem(
        db,
        user_id=current_user.user_id,
        benefit_kind=body.benefit_kind,
        cost=_resolve_cost(body, policy),
        request_id=body.request_id,
        reference_id=body.reference_id,
        policy=policy,
        tier=member_tier(current_user),
    )
    return _redeem_response(result)


@router.post("/redeem/order", response_model=RedeemResponse)
@redeem_limit
async def redeem_for_order(
    request: Request,
    body: RedeemForOrderRequest,
    current_user: AuthUser = Depends(get_current_user),
    policy: RewardPolicy = Depends(get_reward_policy),
    db: AsyncSession = Depends(get_async_db),
):
    """Pay part of an order from the wallet, up to the membership usage limit."""
    result = await redemption_service.redeem_for_order(
        db,
        user_id=current_user.user_id,
        benefit_kind=body.benefit_kind,
        cost=_resolve_cost(body, policy),
        request_id=body.request_id,
        order_total=body.order_total,
        reference_id=body.reference_id,
        policy=policy,
        tier=member_tier(current_user),
    )
    return _redeem_response(result)


@router.get("/redemptions", response_model=RedemptionListResponse)
async def get_my_redemptions(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    redemptions, total = await redemption_service.list_redemptions(
        db, current_user.user_id, skip=skip, limit=limit
    )
    return RedemptionListResponse(
        redemptions=[RedemptionResponse.model_validate(r) for r in redemptions],
        total=total,
        skip=skip,
        limit=limit,
    )


# ---------------------------------------------------------------------------
# Check-in & tasks
# ---------------------------------------------------------------------------


@router.post("/check-in", response_model=CheckInResponse)
async def daily_check_in(
    current_user: AuthUser = Depends(get_current_user),
    policy: RewardPolicy = Depends(get_reward_policy),
    db: AsyncSession = Depends(get_async_db),
):
    """Claim today's check-in reward."""
    result = await rewards_service.check_in(
        db,
        user_id=current_user.user_id,
        policy=policy,
        tier=member_tier(current_user),
    )
    if isinstance(result, Rejection):
        raise rejection_to_http(result)
    return CheckInResponse(
        checkin_date=result.checkin.checkin_date,
        consecutive_days=result.checkin.consecutive_days,
        reward=result.checkin.reward,
        streak_bonus=result.streak_bonus,
        balance=result.wallet.balance,
    )


@router.get("/check-in/status", response_model=CheckInStatusResponse)
async def get_check_in_status(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    status_ = await rewards_service.checkin_status(db, current_user.user_id)
    return CheckInStatusResponse(
        checked_in_today=status_.checked_in_today,
        consecutive_days=status_.consecutive_days,
        last_checkin_date=status_.last_checkin_date,
    )


@router.post("/tasks/complete", response_model=CompleteTaskResponse)
async def complete_task(
    body: CompleteTaskRequest,
    current_user: AuthUser = Depends(get_current_user),
    policy: RewardPolicy = Depends(get_reward_policy),
    db: AsyncSession = Depends(get_async_db),
):
    """Claim the one-time reward for a task."""
    result = await rewards_service.complete_task(
        db,
        user_id=current_user.user_id,
        task_type=body.task_type,
        policy=policy,
        tier=member_tier(current_user),
    )
    if isinstance(result, Rejection):
        raise rejection_to_http(result)
    return CompleteTaskResponse(
        task=TaskResponse.model_validate(result.task), balance=result.wallet.balance
    )


@router.get("/tasks/status", response_model=list[TaskStatusResponse])
async def get_task_status(
    current_user: AuthUser = Depends(get_current_user),
    policy: RewardPolicy = Depends(get_reward_policy),
    db: AsyncSession = Depends(get_async_db),
):
    return await rewards_service.task_status(
        db, current_user.user_id, policy, tier=member_tier(current_user)
    )
