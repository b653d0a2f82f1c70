"""Transaction request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.wallet_service.models.enums import TransactionType


class TransactionResponse(BaseModel):
    id: uuid.UUID
    wallet_id: uuid.UUID
    user_id: str
    transaction_type: TransactionType
    source: str
    amount: int
    balance_before: int
    balance_after: int
    frozen_before: int
    frozen_after: int
    description: Optional[str] = None
    idempotency_key: Optional[str] = None
    metadata: Optional[dict] = Field(None, validation_alias="txn_metadata")
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class TransactionListResponse(BaseModel):
    transactions: list[TransactionResponse]
    total: int
    skip: int
    limit: int


class LedgerRequest(BaseModel):
    """Balance change requested by another service (orders, refunds, holds)."""

    user_id: str
    amount: int = Field(..., gt=0, description="Amount in cents")
    source: str = Field(..., min_length=1, max_length=64)
    idempotency_key: Optional[str] = Field(None, max_length=128)
    description: Optional[str] = None
    metadata: Optional[dict] = None


class LedgerResponse(BaseModel):
    transaction: TransactionResponse
    balance: int
    frozen_balance: int
    replayed: bool = False


class PurchaseRewardRequest(BaseModel):
    user_id: str
    order_id: str
    order_total: int = Field(..., gt=0, description="Paid order total in cents")
    membership_tier: Optional[str] = None


class PurchaseRewardResponse(BaseModel):
    rewarded: bool
    amount: int = 0
    transaction_id: Optional[uuid.UUID] = None
    balance: Optional[int] = None
