"""Check-in and task schemas."""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from services.wallet_service.models.enums import TaskType


class CheckInResponse(BaseModel):
    checkin_date: date
    consecutive_days: int
    reward: int
    streak_bonus: int
    balance: int


class CheckInStatusResponse(BaseModel):
    checked_in_today: bool
    consecutive_days: int
    last_checkin_date: Optional[date] = None


class CompleteTaskRequest(BaseModel):
    task_type: TaskType


class TaskResponse(BaseModel):
    id: uuid.UUID
    task_type: TaskType
    reward: int
    transaction_id: Optional[uuid.UUID] = None
    completed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CompleteTaskResponse(BaseModel):
    task: TaskResponse
    balance: int


class TaskStatusResponse(BaseModel):
    task_type: TaskType
    reward: int
    completed: bool
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
