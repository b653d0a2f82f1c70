"""GamePlay model: one row per admitted play, used by the session gate."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import JSONType, UTCDateTime
from services.wallet_service.models.enums import (
    GameKind,
    GamePlayStatus,
    RewardOutcome,
    enum_values,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class GamePlay(Base):
    __tablename__ = "game_plays"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    game: Mapped[GameKind] = mapped_column(
        SAEnum(
            GameKind,
            name="game_kind_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    status: Mapped[GamePlayStatus] = mapped_column(
        SAEnum(
            GamePlayStatus,
            name="game_play_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=GamePlayStatus.PLAYING,
        nullable=False,
    )
    started_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime, nullable=True
    )
    score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reward: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    outcome: Mapped[Optional[RewardOutcome]] = mapped_column(
        SAEnum(
            RewardOutcome,
            name="reward_outcome_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=True,
    )
    transaction_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    play_metadata: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    __table_args__ = (
        Index("ix_game_plays_user_started", "user_id", "started_at"),
        Index("ix_game_plays_user_game_started", "user_id", "game", "started_at"),
    )

    @property
    def finished_at(self) -> datetime:
        return self.completed_at or self.started_at

    def __repr__(self) -> str:
        return f"<GamePlay {self.game.value} user_id={self.user_id} {self.status.value}>"
