"""Internal service-to-service wallet endpoints.

These endpoints are called by other storefront services (orders, payments)
via service-role JWT, not by frontend clients directly.
"""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_service_role
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.wallet_service.models import MembershipTier, TransactionType
from services.wallet_service.policy import RewardPolicy, get_reward_policy
from services.wallet_service.routers.common import rejection_to_http
from services.wallet_service.schemas import (
    BalanceResponse,
    LedgerRequest,
    LedgerResponse,
    PurchaseRewardRequest,
    PurchaseRewardResponse,
    TransactionResponse,
)
from services.wallet_service.services import rewards_service
from services.wallet_service.services.earning_policy import earn
from services.wallet_service.services.outcomes import Rejection
from services.wallet_service.services.wallet_ops import (
    apply_delta,
    get_wallet_by_user_id,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/internal/wallet", tags=["internal-wallet"])


def _ledger_response(result) -> LedgerResponse:
    if isinstance(result, Rejection):
        raise rejection_to_http(result)
    return LedgerResponse(
        transaction=TransactionResponse.model_validate(result.transaction),
        balance=result.wallet.balance,
        frozen_balance=result.wallet.frozen_balance,
        replayed=result.replayed,
    )


async def _apply(
    db: AsyncSession, body: LedgerRequest, txn_type: TransactionType
) -> LedgerResponse:
    result = await apply_delta(
        db,
        user_id=body.user_id,
        txn_type=txn_type,
        amount=body.amount,
        source=body.source,
        metadata=body.metadata,
        description=body.description,
        idempotency_key=body.idempotency_key,
    )
    return _ledger_response(result)


@router.post("/earn", response_model=LedgerResponse)
async def internal_earn(
    body: LedgerRequest,
    _service: AuthUser = Depends(require_service_role),
    policy: RewardPolicy = Depends(get_reward_policy),
    db: AsyncSession = Depends(get_async_db),
):
    """Credit a reward earned elsewhere. Subject to the daily earning cap."""
    result = await earn(
        db,
        user_id=body.user_id,
        amount=body.amount,
        source=body.source,
        policy=policy,
        metadata=body.metadata,
        description=body.description,
        idempotency_key=body.idempotency_key,
    )
    return _ledger_response(result)


@router.post("/spend", response_model=LedgerResponse)
async def internal_spend(
    body: LedgerRequest,
    _service: AuthUser = Depends(require_service_role),
    db: AsyncSession = Depends(get_async_db),
):
    """Debit spendable balance for a purchase."""
    return await _apply(db, body, TransactionType.SPEND)


@router.post("/refund", response_model=LedgerResponse)
async def internal_refund(
    body: LedgerRequest,
    _service: AuthUser = Depends(require_service_role),
    db: AsyncSession = Depends(get_async_db),
):
    """Return a previous spend to the wallet."""
    return await _apply(db, body, TransactionType.REFUND)


@router.post("/freeze", response_model=LedgerResponse)
async def internal_freeze(
    body: LedgerRequest,
    _service: AuthUser = Depends(require_service_role),
    db: AsyncSession = Depends(get_async_db),
):
    """Hold funds for a pending order."""
    return await _apply(db, body, TransactionType.FREEZE)


@router.post("/unfreeze", response_model=LedgerResponse)
async def internal_unfreeze(
    body: LedgerRequest,
    _service: AuthUser = Depends(require_service_role),
    db: AsyncSession = Depends(get_async_db),
):
    """Release a hold."""
    return await _apply(db, body, TransactionType.UNFREEZE)


@router.post("/purchase-reward", response_model=PurchaseRewardResponse)
async def internal_purchase_reward(
    body: PurchaseRewardRequest,
    _service: AuthUser = Depends(require_service_role),
    policy: RewardPolicy = Depends(get_reward_policy),
    db: AsyncSession = Depends(get_async_db),
):
    """Credit cashback for a paid order. Idempotent per order id."""
    result = await rewards_service.award_purchase(
        db,
        user_id=body.user_id,
        order_id=body.order_id,
        order_total=body.order_total,
        policy=policy,
        tier=MembershipTier.parse(body.membership_tier),
    )
    if result is None:
        return PurchaseRewardResponse(rewarded=False)
    if isinstance(result, Rejection):
        raise rejection_to_http(result)
    return PurchaseRewardResponse(
        rewarded=True,
        amount=result.transaction.amount,
        transaction_id=result.transaction.id,
        balance=result.wallet.balance,
    )


@router.get("/balance/{user_id}", response_model=BalanceResponse)
async def internal_get_balance(
    user_id: str,
    _service: AuthUser = Depends(require_service_role),
    db: AsyncSession = Depends(get_async_db),
):
    wallet = await get_wallet_by_user_id(db, user_id)
    return BalanceResponse(
        user_id=wallet.user_id,
        balance=wallet.balance,
        frozen_balance=wallet.frozen_balance,
        spendable_balance=wallet.spendable_balance,
    )
