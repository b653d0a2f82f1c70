"""WalletTransaction model: immutable, append-only ledger."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import JSONType, UTCDateTime
from services.wallet_service.models.enums import TransactionType, enum_values
from sqlalchemy import CheckConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class WalletTransaction(Base):
    """One row per balance-affecting event. Never updated or deleted."""

    __tablename__ = "wallet_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    wallet_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("wallets.id"), nullable=False, index=True
    )
    # Per-wallet position in the log; the wallet row version at write time
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(
        SAEnum(
            TransactionType,
            name="transaction_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    source: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_before: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    frozen_before: Mapped[int] = mapped_column(Integer, nullable=False)
    frozen_after: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    idempotency_key: Mapped[Optional[str]] = mapped_column(
        String, unique=True, nullable=True
    )
    # Opaque to the ledger; interpreted only by whoever wrote it
    txn_metadata: Mapped[Optional[dict]] = mapped_column(
        "txn_metadata", JSONType, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transaction_amount_positive"),
        Index("ix_wallet_transactions_user_created", "user_id", "created_at"),
        UniqueConstraint(
            "wallet_id", "sequence", name="uq_transaction_wallet_sequence"
        ),
    )

    @property
    def signed_amount(self) -> int:
        """Effect of this entry on ``balance``."""
        if self.transaction_type == TransactionType.SPEND:
            return -self.amount
        if self.transaction_type in (TransactionType.EARN, TransactionType.REFUND):
            return self.amount
        return 0

    def __repr__(self) -> str:
        return (
            f"<WalletTransaction {self.id} {self.transaction_type.value} {self.amount}>"
        )
