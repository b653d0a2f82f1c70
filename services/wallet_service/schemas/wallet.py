"""Wallet request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class WalletResponse(BaseModel):
    id: uuid.UUID
    user_id: str
    balance: int
    frozen_balance: int
    spendable_balance: int
    total_earned: int
    total_spent: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BalanceResponse(BaseModel):
    user_id: str
    balance: int
    frozen_balance: int
    spendable_balance: int


class RejectionDetail(BaseModel):
    """Body of ``detail`` for every refused business operation."""

    code: str
    message: str
    retry_after_seconds: Optional[int] = None
    remaining_allowance: Optional[int] = None


class WalletLimits(BaseModel):
    daily_earning_remaining: int
    max_daily_earning: int
    # Largest share of an order the wallet may pay, for the caller's tier
    max_wallet_usage_percent: int


class MyWalletResponse(WalletResponse):
    limits: WalletLimits
