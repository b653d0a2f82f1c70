"""Daily check-in and one-time task records."""

import uuid
from datetime import date, datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import UTCDateTime
from services.wallet_service.models.enums import TaskType, enum_values
from sqlalchemy import Date
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class DailyCheckIn(Base):
    """One row per user per local calendar day."""

    __tablename__ = "daily_checkins"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    checkin_date: Mapped[date] = mapped_column(Date, nullable=False)
    consecutive_days: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    reward: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "checkin_date", name="uq_checkin_user_date"),
    )


class UserTask(Base):
    """A completed one-time task. At most one row per (user, task)."""

    __tablename__ = "user_tasks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    task_type: Mapped[TaskType] = mapped_column(
        SAEnum(
            TaskType,
            name="task_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    reward: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    completed_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "task_type", name="uq_user_task"),
    )
