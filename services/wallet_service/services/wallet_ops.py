"""Core wallet operations: the single atomic mutation path for every balance change."""

from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional, Union

from fastapi import HTTPException, status
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.wallet_service.models import (
    RejectionReason,
    TransactionType,
    Wallet,
    WalletTransaction,
)
from services.wallet_service.services.outcomes import (
    ConcurrentModificationError,
    LedgerResult,
    Rejection,
)
from sqlalchemy import desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

logger = get_logger(__name__)

# Sources written by admins; they never count toward reward caps
ADMIN_SOURCE_PREFIX = "admin"

# Runs under the wallet lock before the mutation; a Rejection aborts it
LedgerGuard = Callable[[AsyncSession, Wallet], Awaitable[Optional[Rejection]]]


# ---------------------------------------------------------------------------
# Wallet lookup / creation
# ---------------------------------------------------------------------------


async def _select_wallet(db: AsyncSession, user_id: str) -> Optional[Wallet]:
    result = await db.execute(
        select(Wallet)
        .where(Wallet.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def lock_wallet(db: AsyncSession, user_id: str) -> Wallet:
    """SELECT FOR UPDATE the user's wallet, creating it inside the same transaction."""
    result = await db.execute(
        select(Wallet)
        .where(Wallet.user_id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    wallet = result.scalar_one_or_none()
    if wallet is None:
        wallet = Wallet(
            user_id=user_id,
            balance=0,
            frozen_balance=0,
            total_earned=0,
            total_spent=0,
        )
        db.add(wallet)
        await db.flush()
    return wallet


async def get_or_create_wallet(db: AsyncSession, user_id: str) -> Wallet:
    """Return the user's wallet, creating an empty one on first use.

    Idempotent: a concurrent creation loses on the unique user_id and
    re-reads the winner's row.
    """
    wallet = await _select_wallet(db, user_id)
    if wallet:
        await db.commit()
        return wallet

    wallet = Wallet(
        user_id=user_id,
        balance=0,
        frozen_balance=0,
        total_earned=0,
        total_spent=0,
    )
    db.add(wallet)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        wallet = await _select_wallet(db, user_id)
        await db.commit()
        return wallet

    logger.info("Created wallet %s for user %s", wallet.id, user_id)
    return wallet


async def get_wallet(db: AsyncSession, user_id: str) -> Optional[Wallet]:
    return await _select_wallet(db, user_id)


async def get_wallet_by_user_id(db: AsyncSession, user_id: str) -> Wallet:
    """Get wallet by user ID. Raises 404 if not found."""
    wallet = await _select_wallet(db, user_id)
    if not wallet:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Wallet not found",
        )
    return wallet


# ---------------------------------------------------------------------------
# apply_delta (atomic)
# ---------------------------------------------------------------------------


def _check_precondition(
    wallet: Wallet, txn_type: TransactionType, amount: int
) -> Optional[Rejection]:
    if txn_type in (TransactionType.SPEND, TransactionType.FREEZE):
        if wallet.spendable_balance < amount:
            return Rejection(
                reason=RejectionReason.INSUFFICIENT_BALANCE,
                message=(
                    f"Insufficient balance: need {amount}, "
                    f"spendable {wallet.spendable_balance}"
                ),
            )
    return None


def _mutate(wallet: Wallet, txn_type: TransactionType, amount: int) -> None:
    if txn_type == TransactionType.EARN:
        wallet.balance += amount
        wallet.total_earned += amount
    elif txn_type == TransactionType.SPEND:
        wallet.balance -= amount
        wallet.total_spent += amount
    elif txn_type == TransactionType.REFUND:
        wallet.balance += amount
        wallet.total_spent = max(0, wallet.total_spent - amount)
    elif txn_type == TransactionType.FREEZE:
        wallet.frozen_balance += amount
    elif txn_type == TransactionType.UNFREEZE:
        wallet.frozen_balance = max(0, wallet.frozen_balance - amount)
    else:
        raise ValueError(f"Unsupported transaction type: {txn_type}")


async def _find_by_idempotency_key(
    db: AsyncSession, idempotency_key: str
) -> Optional[WalletTransaction]:
    result = await db.execute(
        select(WalletTransaction).where(
            WalletTransaction.idempotency_key == idempotency_key
        )
    )
    return result.scalar_one_or_none()


async def _replay(
    db: AsyncSession,
    existing: WalletTransaction,
    *,
    user_id: str,
    txn_type: TransactionType,
    amount: int,
) -> Union[LedgerResult, Rejection]:
    """Answer a repeated key with the original entry, if it describes the same event.

    A key reused for another user, type or amount is refused rather than
    replayed.
    """
    if (
        existing.user_id != user_id
        or existing.transaction_type != txn_type
        or existing.amount != amount
    ):
        key = existing.idempotency_key
        await db.rollback()
        logger.warning(
            "Idempotency key %s reused by user %s for %s %d",
            key,
            user_id,
            txn_type.value,
            amount,
        )
        return Rejection(
            reason=RejectionReason.IDEMPOTENCY_CONFLICT,
            message=f"Idempotency key {key} was already used for a different operation",
        )

    wallet = await _select_wallet(db, existing.user_id)
    await db.commit()
    logger.info(
        "Idempotent replay for key=%s → txn=%s", existing.idempotency_key, existing.id
    )
    return LedgerResult(wallet=wallet, transaction=existing, replayed=True)


async def _apply_delta_once(
    db: AsyncSession,
    *,
    user_id: str,
    txn_type: TransactionType,
    amount: int,
    source: str,
    metadata: Optional[dict],
    description: Optional[str],
    idempotency_key: Optional[str],
    guard: Optional[LedgerGuard],
) -> Union[LedgerResult, Rejection]:
    # 1. Idempotency check
    if idempotency_key:
        existing = await _find_by_idempotency_key(db, idempotency_key)
        if existing:
            return await _replay(
                db, existing, user_id=user_id, txn_type=txn_type, amount=amount
            )

    # 2. Lock (or create) the wallet row
    wallet = await lock_wallet(db, user_id)

    # 3. Validate; nothing has been written yet, so a rejection just rolls back
    rejection = await guard(db, wallet) if guard else None
    rejection = rejection or _check_precondition(wallet, txn_type, amount)
    if rejection:
        await db.rollback()
        logger.info(
            "Rejected %s of %d for user %s: %s",
            txn_type.value,
            amount,
            user_id,
            rejection.reason.value,
        )
        return rejection

    # 4. Snapshot, mutate, append
    balance_before = wallet.balance
    frozen_before = wallet.frozen_balance
    # The row version read under the lock orders this wallet's entries
    sequence = wallet.version
    _mutate(wallet, txn_type, amount)
    # Always dirty the row so the version advances even when balances do not
    wallet.updated_at = utc_now()

    txn = WalletTransaction(
        wallet_id=wallet.id,
        sequence=sequence,
        user_id=user_id,
        transaction_type=txn_type,
        source=source,
        amount=amount,
        balance_before=balance_before,
        balance_after=wallet.balance,
        frozen_before=frozen_before,
        frozen_after=wallet.frozen_balance,
        description=description,
        idempotency_key=idempotency_key,
        txn_metadata=metadata,
    )
    db.add(txn)

    # 5. Commit wallet + transaction as one unit
    await db.commit()

    logger.info(
        "%s %d on wallet %s (source=%s), balance %d→%d, frozen %d→%d",
        txn_type.value,
        amount,
        wallet.id,
        source,
        balance_before,
        wallet.balance,
        frozen_before,
        wallet.frozen_balance,
    )
    return LedgerResult(wallet=wallet, transaction=txn)


async def apply_delta(
    db: AsyncSession,
    *,
    user_id: str,
    txn_type: TransactionType,
    amount: int,
    source: str,
    metadata: Optional[dict] = None,
    description: Optional[str] = None,
    idempotency_key: Optional[str] = None,
    guard: Optional[LedgerGuard] = None,
) -> Union[LedgerResult, Rejection]:
    """Apply one balance-affecting event to a user's wallet.

    1. Return the original transaction if ``idempotency_key`` was seen before
    2. SELECT FOR UPDATE the wallet row (created lazily)
    3. Run ``guard`` and the type precondition; reject without writing
    4. Write the new balances and one transaction with before/after snapshots
    5. Commit atomically

    Lost-update conflicts (version mismatch, creation race) are retried up
    to ``LEDGER_MAX_RETRIES`` times before ``ConcurrentModificationError``.
    """
    if amount <= 0:
        raise ValueError("amount must be a positive number of cents")

    attempts = get_settings().LEDGER_MAX_RETRIES + 1
    for attempt in range(1, attempts + 1):
        try:
            return await _apply_delta_once(
                db,
                user_id=user_id,
                txn_type=txn_type,
                amount=amount,
                source=source,
                metadata=metadata,
                description=description,
                idempotency_key=idempotency_key,
                guard=guard,
            )
        except (StaleDataError, IntegrityError) as exc:
            await db.rollback()
            if idempotency_key:
                # A concurrent request with the same key may have won the race
                existing = await _find_by_idempotency_key(db, idempotency_key)
                if existing:
                    return await _replay(
                        db,
                        existing,
                        user_id=user_id,
                        txn_type=txn_type,
                        amount=amount,
                    )
            logger.warning(
                "Ledger conflict for user %s (attempt %d/%d): %s",
                user_id,
                attempt,
                attempts,
                exc.__class__.__name__,
            )

    raise ConcurrentModificationError(user_id, attempts)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def list_transactions(
    db: AsyncSession,
    user_id: str,
    *,
    skip: int = 0,
    limit: int = 50,
    txn_type: Optional[TransactionType] = None,
) -> tuple[list[WalletTransaction], int]:
    """Newest-first page of a user's transactions plus the total count."""
    base = select(WalletTransaction).where(WalletTransaction.user_id == user_id)
    count_base = (
        select(func.count())
        .select_from(WalletTransaction)
        .where(WalletTransaction.user_id == user_id)
    )
    if txn_type:
        base = base.where(WalletTransaction.transaction_type == txn_type)
        count_base = count_base.where(WalletTransaction.transaction_type == txn_type)

    total = (await db.execute(count_base)).scalar() or 0
    result = await db.execute(
        base.order_by(
            desc(WalletTransaction.created_at), desc(WalletTransaction.sequence)
        )
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def sum_earned_since(db: AsyncSession, user_id: str, since: datetime) -> int:
    """Reward earnings (EARN, excluding admin credits) recorded at or after ``since``."""
    result = await db.execute(
        select(func.coalesce(func.sum(WalletTransaction.amount), 0)).where(
            WalletTransaction.user_id == user_id,
            WalletTransaction.transaction_type == TransactionType.EARN,
            WalletTransaction.created_at >= since,
            ~WalletTransaction.source.startswith(ADMIN_SOURCE_PREFIX),
        )
    )
    return int(result.scalar() or 0)


@dataclass
class ReconciliationReport:
    user_id: str
    balance: int
    frozen_balance: int
    ledger_balance: int
    ledger_frozen_balance: int
    earned_minus_spent: int
    transaction_count: int
    broken_links: int

    @property
    def consistent(self) -> bool:
        return (
            self.balance == self.ledger_balance
            and self.frozen_balance == self.ledger_frozen_balance
            and self.broken_links == 0
        )


async def reconcile_wallet(db: AsyncSession, user_id: str) -> ReconciliationReport:
    """Replay the log and compare it with the stored wallet.

    ``broken_links`` counts entries whose ``balance_before`` does not match the
    previous entry's ``balance_after``.
    """
    wallet = await get_wallet_by_user_id(db, user_id)
    result = await db.execute(
        select(WalletTransaction)
        .where(WalletTransaction.user_id == user_id)
        .order_by(WalletTransaction.sequence)
    )
    transactions = list(result.scalars().all())

    ledger_balance = 0
    ledger_frozen = 0
    broken_links = 0
    previous: Optional[WalletTransaction] = None
    for txn in transactions:
        if previous is not None and (
            txn.balance_before != previous.balance_after
            or txn.frozen_before != previous.frozen_after
        ):
            broken_links += 1
        ledger_balance += txn.signed_amount
        ledger_frozen = txn.frozen_after
        previous = txn

    report = ReconciliationReport(
        user_id=user_id,
        balance=wallet.balance,
        frozen_balance=wallet.frozen_balance,
        ledger_balance=ledger_balance,
        ledger_frozen_balance=ledger_frozen,
        earned_minus_spent=wallet.total_earned - wallet.total_spent,
        transaction_count=len(transactions),
        broken_links=broken_links,
    )
    if not report.consistent:
        logger.error(
            "Wallet %s failed reconciliation: balance=%d ledger=%d frozen=%d/%d links=%d",
            wallet.id,
            report.balance,
            report.ledger_balance,
            report.frozen_balance,
            report.ledger_frozen_balance,
            report.broken_links,
        )
    return report
