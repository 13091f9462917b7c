from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID
from pydantic import Field, model_validator

from src.schemas.base import CamelModel
from src.services.aggregation import TaskEvent, SheetEvent


class TaskSubmissionCreate(CamelModel):
    """Schema for a single task answer"""
    task_id: Optional[UUID] = None
    sheet_id: Optional[UUID] = None
    is_correct: bool
    score: Decimal = Field(..., ge=0, le=100)
    time_spent: int = Field(..., ge=0)  # секунды
    user_answer: Optional[str] = None
    user_solution: Optional[str] = None
    difficulty: Optional[Literal["easy", "medium", "hard"]] = None
    topic: Optional[str] = Field(None, max_length=255)
    question_type: Optional[str] = Field(None, max_length=50)

    @model_validator(mode="after")
    def check_target(self):
        if self.task_id is None and self.sheet_id is None:
            raise ValueError("Either taskId or sheetId must be provided")
        return self

    def to_event(self) -> TaskEvent:
        return TaskEvent(
            is_correct=self.is_correct,
            score=self.score,
            time_spent=self.time_spent,
            difficulty=self.difficulty,
            topic=self.topic,
            question_type=self.question_type,
        )


class TaskSubmissionResponse(CamelModel):
    id: UUID
    task_id: Optional[UUID] = None
    sheet_id: Optional[UUID] = None
    is_correct: bool
    score: Decimal
    time_spent: int
    submitted_at: datetime


class SheetSubmissionCreate(CamelModel):
    """Schema for a completed sheet with aggregate counts"""
    sheet_id: UUID
    total_tasks: int = Field(..., ge=1)
    correct_tasks: int = Field(..., ge=0)
    total_time_spent: int = Field(..., ge=0)
    average_time_per_task: Optional[Decimal] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_counts(self):
        if self.correct_tasks > self.total_tasks:
            raise ValueError("correctTasks cannot exceed totalTasks")
        return self

    def to_event(self) -> SheetEvent:
        return SheetEvent(
            total_tasks=self.total_tasks,
            correct_tasks=self.correct_tasks,
            total_time_spent=self.total_time_spent,
        )


class SheetSubmissionResponse(CamelModel):
    id: UUID
    sheet_id: UUID
    total_tasks: int
    correct_tasks: int
    accuracy: Decimal
    total_time_spent: int
    average_time_per_task: Decimal
    submitted_at: datetime
