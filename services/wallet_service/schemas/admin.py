"""Admin-specific schemas."""

from typing import Optional

from pydantic import BaseModel, Field
from services.wallet_service.models.enums import GameKind
from services.wallet_service.schemas.transaction import TransactionResponse
from services.wallet_service.schemas.wallet import WalletResponse


class AdminWalletListResponse(BaseModel):
    wallets: list[WalletResponse]
    total: int
    skip: int
    limit: int


class AdjustBalanceRequest(BaseModel):
    amount: int = Field(..., description="Positive to credit, negative to debit")
    reason: str = Field(..., min_length=5)
    idempotency_key: Optional[str] = Field(None, max_length=128)


class AdjustBalanceResponse(BaseModel):
    wallet: WalletResponse
    transaction: TransactionResponse


class ReconciliationResponse(BaseModel):
    user_id: str
    consistent: bool
    balance: int
    frozen_balance: int
    ledger_balance: int
    ledger_frozen_balance: int
    earned_minus_spent: int
    transaction_count: int
    broken_links: int


class ResetGamesResponse(BaseModel):
    user_id: str
    game: Optional[GameKind] = None
    deleted: int


class AdminStatsResponse(BaseModel):
    total_wallets: int
    total_balance: int
    total_frozen: int
    total_earned: int
    total_spent: int
    earned_today: int
    plays_today: int
    redemptions_today: int
