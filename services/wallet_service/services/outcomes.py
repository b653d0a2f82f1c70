"""Result types shared by the ledger, earning, gate and redemption services.

Business outcomes (insufficient balance, cap reached, cooldown) are values,
not exceptions: operations return either their success type or a
``Rejection``. Only infrastructure problems raise.
"""

from dataclasses import dataclass
from typing import Optional

from services.wallet_service.models import (
    RejectionReason,
    Wallet,
    WalletTransaction,
)


@dataclass(frozen=True)
class Rejection:
    reason: RejectionReason
    message: str
    retry_after_seconds: Optional[int] = None
    remaining_allowance: Optional[int] = None


@dataclass
class LedgerResult:
    wallet: Wallet
    transaction: WalletTransaction
    replayed: bool = False


class ConcurrentModificationError(Exception):
    """A wallet kept changing underneath us after all retries were used."""

    def __init__(self, user_id: str, attempts: int):
        self.user_id = user_id
        self.attempts = attempts
        super().__init__(
            f"Wallet for user {user_id} was modified concurrently "
            f"({attempts} attempts)"
        )
