"""Redemption engine: spend wallet balance on a benefit, exactly once per request."""

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import Optional, Union

from libs.common.logging import get_logger
from services.wallet_service.models import (
    BenefitKind,
    MembershipTier,
    Redemption,
    RejectionReason,
    TransactionType,
    Wallet,
)
from services.wallet_service.policy import RewardPolicy
from services.wallet_service.services.earning_policy import check_membership
from services.wallet_service.services.outcomes import Rejection
from services.wallet_service.services.wallet_ops import apply_delta, get_wallet
from sqlalchemy import desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass
class RedemptionResult:
    redemption: Redemption
    wallet: Wallet
    duplicate: bool = False


def redemption_key(user_id: str, request_id: str) -> str:
    return f"redeem:{user_id}:{request_id}"


def benefit_cost(kind: BenefitKind, policy: RewardPolicy) -> Optional[int]:
    """Fixed price of a benefit, or None when the caller prices it (discounts, coupons)."""
    return policy.benefit_costs.get(kind)


def max_wallet_usage(
    order_total: int,
    policy: RewardPolicy,
    tier: Optional[MembershipTier] = None,
) -> int:
    """Largest share of an order that may be paid from the wallet, in cents."""
    share = Decimal(order_total) * policy.wallet_usage(tier)
    return int(share.quantize(Decimal("1"), rounding=ROUND_DOWN))


async def _find_redemption(
    db: AsyncSession, user_id: str, request_id: str
) -> Optional[Redemption]:
    result = await db.execute(
        select(Redemption).where(
            Redemption.user_id == user_id, Redemption.request_id == request_id
        )
    )
    return result.scalar_one_or_none()


async def _duplicate(db: AsyncSession, redemption: Redemption) -> RedemptionResult:
    wallet = await get_wallet(db, redemption.user_id)
    await db.commit()
    logger.info(
        "Duplicate redemption request %s for user %s",
        redemption.request_id,
        redemption.user_id,
    )
    return RedemptionResult(redemption=redemption, wallet=wallet, duplicate=True)


async def redeem(
    db: AsyncSession,
    *,
    user_id: str,
    benefit_kind: BenefitKind,
    cost: int,
    request_id: str,
    policy: RewardPolicy,
    reference_id: Optional[str] = None,
    tier: Optional[MembershipTier] = None,
) -> Union[RedemptionResult, Rejection]:
    """SPEND ``cost`` for a benefit and record the redemption.

    The SPEND is keyed on the request id, so a retried submission returns the
    first result and the wallet is debited once. Issuing the benefit itself
    (voucher, free-delivery flag) is left to the caller.
    """
    existing = await _find_redemption(db, user_id, request_id)
    if existing:
        return await _duplicate(db, existing)

    rejection = check_membership(
        benefit_kind in policy.members_only_benefits, tier, benefit_kind.value
    )
    if rejection:
        return rejection

    result = await apply_delta(
        db,
        user_id=user_id,
        txn_type=TransactionType.SPEND,
        amount=cost,
        source=f"redeem:{benefit_kind.value}",
        metadata={"request_id": request_id, "reference_id": reference_id},
        description=f"Redeemed {benefit_kind.value.replace('_', ' ')}",
        idempotency_key=redemption_key(user_id, request_id),
    )
    if isinstance(result, Rejection):
        return result

    if result.replayed:
        # SPEND landed but the redemption row was written by a concurrent request
        existing = await _find_redemption(db, user_id, request_id)
        if existing:
            return await _duplicate(db, existing)

    redemption = Redemption(
        user_id=user_id,
        request_id=request_id,
        benefit_kind=benefit_kind,
        cost=cost,
        reference_id=reference_id,
        transaction_id=result.transaction.id,
    )
    db.add(redemption)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await _find_redemption(db, user_id, request_id)
        return await _duplicate(db, existing)

    wallet = await get_wallet(db, user_id)
    await db.commit()
    logger.info(
        "User %s redeemed %s for %d (request %s)",
        user_id,
        benefit_kind.value,
        cost,
        request_id,
    )
    return RedemptionResult(redemption=redemption, wallet=wallet)


async def redeem_for_order(
    db: AsyncSession,
    *,
    user_id: str,
    benefit_kind: BenefitKind,
    cost: int,
    request_id: str,
    order_total: int,
    policy: RewardPolicy,
    reference_id: Optional[str] = None,
    tier: Optional[MembershipTier] = None,
) -> Union[RedemptionResult, Rejection]:
    """Redeem against an order, limited to the tier's share of the order total."""
    existing = await _find_redemption(db, user_id, request_id)
    if existing:
        return await _duplicate(db, existing)

    limit = max_wallet_usage(order_total, policy, tier)
    if cost > limit:
        return Rejection(
            reason=RejectionReason.USAGE_CAP_EXCEEDED,
            message=(
                f"At most {limit} of this order may be paid from the wallet "
                f"(requested {cost})"
            ),
            remaining_allowance=limit,
        )
    return await redeem(
        db,
        user_id=user_id,
        benefit_kind=benefit_kind,
        cost=cost,
        request_id=request_id,
        policy=policy,
        reference_id=reference_id,
        tier=tier,
    )


async def list_redemptions(
    db: AsyncSession, user_id: str, *, skip: int = 0, limit: int = 50
) -> tuple[list[Redemption], int]:
    total = (
        await db.execute(
            select(func.count())
            .select_from(Redemption)
            .where(Redemption.user_id == user_id)
        )
    ).scalar() or 0
    result = await db.execute(
        select(Redemption)
        .where(Redemption.user_id == user_id)
        .order_by(desc(Redemption.created_at))
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all()), total
