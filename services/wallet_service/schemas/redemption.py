"""Redemption request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.wallet_service.models.enums import BenefitKind


class RedeemRequest(BaseModel):
    request_id: str = Field(..., min_length=1, max_length=128)
    benefit_kind: BenefitKind
    # Required for benefits without a fixed price
    cost: Optional[int] = Field(None, gt=0, description="Amount in cents")
    reference_id: Optional[str] = None


class RedeemForOrderRequest(RedeemRequest):
    order_total: int = Field(..., gt=0, description="Order total in cents")


class RedemptionResponse(BaseModel):
    id: uuid.UUID
    request_id: str
    benefit_kind: BenefitKind
    cost: int
    reference_id: Optional[str] = None
    transaction_id: uuid.UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RedeemResponse(BaseModel):
    redemption: RedemptionResponse
    balance: int
    duplicate: bool = False


class RedemptionListResponse(BaseModel):
    redemptions: list[RedemptionResponse]
    total: int
    skip: int
    limit: int
