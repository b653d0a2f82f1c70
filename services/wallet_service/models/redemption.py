"""Redemption model: a completed spend of wallet balance against a benefit."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import UTCDateTime
from services.wallet_service.models.enums import BenefitKind, enum_values
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Redemption(Base):
    """Keyed by the client's request id so retried submissions are deduplicated.

    Only successful redemptions are stored; a rejected request may be retried
    with the same id once the wallet can cover it.
    """

    __tablename__ = "redemptions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    request_id: Mapped[str] = mapped_column(String, nullable=False)
    benefit_kind: Mapped[BenefitKind] = mapped_column(
        SAEnum(
            BenefitKind,
            name="benefit_kind_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    cost: Mapped[int] = mapped_column(Integer, nullable=False)
    reference_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    transaction_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "request_id", name="uq_redemption_request"),
    )

    def __repr__(self) -> str:
        return f"<Redemption {self.benefit_kind.value} {self.cost} user_id={self.user_id}>"
