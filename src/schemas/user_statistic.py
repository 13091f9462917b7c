import datetime as dt
from decimal import Decimal
from typing import Dict, Optional
from pydantic import BaseModel

from src.schemas.base import CamelModel


class BucketStat(BaseModel):
    """Счетчики по теме или типу вопроса"""
    correct: int
    total: int


class UserStatisticResponse(CamelModel):
    """Агрегированная статистика пользователя"""
    user_id: int
    solved_tasks: int
    total_task_attempts: int
    solved_sheets: int
    total_sheet_attempts: int
    success_rate: Decimal
    average_score: Decimal
    total_time_spent: int
    tasks_by_difficulty: Dict[str, int]
    tasks_by_topic: Dict[str, BucketStat]
    tasks_by_type: Dict[str, BucketStat]
    recent_activity: int
    last_activity_at: Optional[dt.datetime] = None
    created_at: dt.datetime
    updated_at: dt.datetime


class UserProgressResponse(CamelModel):
    """Активность за один день"""
    date: dt.date
    tasks_completed: int
    sheets_completed: int
    time_spent: int
    accuracy: Decimal
