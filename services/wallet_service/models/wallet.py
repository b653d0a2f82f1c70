"""Wallet model: one store-credit account per user."""

import uuid
from datetime import datetime

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import UTCDateTime
from sqlalchemy import CheckConstraint, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Wallet(Base):
    """Store-credit wallet. Created lazily, never deleted.

    Amounts are integer cents. ``frozen_balance`` is held inside ``balance``
    and is not spendable.
    """

    __tablename__ = "wallets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(
        String, unique=True, index=True, nullable=False
    )
    balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    frozen_balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_earned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_spent: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_wallet_balance_non_negative"),
        CheckConstraint(
            "frozen_balance >= 0", name="ck_wallet_frozen_balance_non_negative"
        ),
    )
    # Every UPDATE is conditional on the version read; a lost update raises
    # StaleDataError instead of silently overwriting.
    __mapper_args__ = {"version_id_col": version}

    @property
    def spendable_balance(self) -> int:
        return self.balance - self.frozen_balance

    def __repr__(self) -> str:
        return f"<Wallet {self.id} user_id={self.user_id} balance={self.balance}>"
