from datetime import date, datetime
from typing import Callable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from src.core import get_settings
from src.core.exceptions import ValidationFailed, StorageFailure
from src.models.submission import TaskSubmission, SheetSubmission
from src.schemas.submission import TaskSubmissionCreate, SheetSubmissionCreate
from src.services.aggregation import (
    StatisticsSnapshot,
    DayProgress,
    DayContribution,
    SuccessRateMode,
    apply_task_event,
    apply_sheet_event,
    apply_to_day,
    average_time_per_task,
)
from src.services.user_statistic_service import UserStatisticService
from src.services.user_progress_service import UserProgressService
from src.logs import debug_logger

settings = get_settings()


def validate_task_submission(data: TaskSubmissionCreate) -> None:
    """Проверки, которые не должны зависеть от того, откуда пришли данные"""
    if data.task_id is None and data.sheet_id is None:
        raise ValidationFailed("taskId", "either taskId or sheetId must be provided")
    if data.score < 0 or data.score > 100:
        raise ValidationFailed("score", "must be between 0 and 100")
    if data.time_spent < 0:
        raise ValidationFailed("timeSpent", "must not be negative")


def validate_sheet_submission(data: SheetSubmissionCreate) -> None:
    if data.total_tasks <= 0:
        raise ValidationFailed("totalTasks", "must be greater than 0")
    if data.correct_tasks < 0:
        raise ValidationFailed("correctTasks", "must not be negative")
    if data.correct_tasks > data.total_tasks:
        raise ValidationFailed("correctTasks", "cannot exceed totalTasks")
    if data.total_time_spent < 0:
        raise ValidationFailed("totalTimeSpent", "must not be negative")


class SubmissionService:
    """
    Запись результатов задач и листов.

    Each call is one transaction: the submission row, the aggregate row and
    today's progress row are either all committed or all rolled back.
    """

    @staticmethod
    async def record_task_result(
        db: AsyncSession,
        user_id: int,
        data: TaskSubmissionCreate,
        mode: Optional[str] = None,
        today: Optional[date] = None
    ) -> TaskSubmission:
        """
        Записать ответ на задачу и обновить статистику

        Raises:
            ValidationFailed: некорректные данные, транзакция не открывалась
            StorageFailure: транзакция откатилась, можно повторить
        """
        validate_task_submission(data)
        event = data.to_event()
        rate_mode = SuccessRateMode(mode or settings.SUCCESS_RATE_MODE)
        now = datetime.utcnow()

        try:
            submission = TaskSubmission(
                user_id=user_id,
                task_id=data.task_id,
                sheet_id=data.sheet_id,
                is_correct=data.is_correct,
                score=data.score,
                time_spent=data.time_spent,
                user_answer=data.user_answer,
                user_solution=data.user_solution,
                difficulty=data.difficulty,
                topic=data.topic,
                question_type=data.question_type,
                submitted_at=now,
            )
            db.add(submission)
            await db.flush()

            snapshot = await SubmissionService._apply_to_statistics(
                db, user_id, lambda prev: apply_task_event(prev, event, now=now, mode=rate_mode)
            )
            await SubmissionService._apply_to_day(
                db, user_id, today or date.today(), DayContribution.for_task(event)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            debug_logger.error(f"Не удалось записать ответ на задачу для пользователя {user_id}")
            raise StorageFailure("Failed to submit task", e) from e

        debug_logger.debug(
            f"Ответ на задачу записан: user={user_id}, correct={data.is_correct}, "
            f"attempts={snapshot.total_task_attempts}, success_rate={snapshot.success_rate}"
        )
        return submission

    @staticmethod
    async def record_sheet_result(
        db: AsyncSession,
        user_id: int,
        data: SheetSubmissionCreate,
        today: Optional[date] = None
    ) -> SheetSubmission:
        """
        Записать результат листа и обновить статистику.

        Повторная отправка того же листа считается новой попыткой.
        """
        validate_sheet_submission(data)
        event = data.to_event()
        accuracy = event.accuracy
        avg_time = data.average_time_per_task
        if not avg_time:
            # 0 и отсутствие значения пересчитываются из общего времени
            avg_time = average_time_per_task(data.total_time_spent, data.total_tasks)
        now = datetime.utcnow()

        try:
            submission = SheetSubmission(
                user_id=user_id,
                sheet_id=data.sheet_id,
                total_tasks=data.total_tasks,
                correct_tasks=data.correct_tasks,
                accuracy=accuracy,
                total_time_spent=data.total_time_spent,
                average_time_per_task=avg_time,
                submitted_at=now,
            )
            db.add(submission)
            await db.flush()

            snapshot = await SubmissionService._apply_to_statistics(
                db,
                user_id,
                lambda prev: apply_sheet_event(
                    prev, event, now=now, solved_threshold=settings.SHEET_SOLVED_THRESHOLD
                ),
            )
            await SubmissionService._apply_to_day(
                db, user_id, today or date.today(), DayContribution.for_sheet(event)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            debug_logger.error(f"Не удалось записать результат листа для пользователя {user_id}")
            raise StorageFailure("Failed to submit sheet", e) from e

        debug_logger.debug(
            f"Результат листа записан: user={user_id}, accuracy={accuracy}, "
            f"sheets={snapshot.total_sheet_attempts}, success_rate={snapshot.success_rate}"
        )
        return submission

    @staticmethod
    async def _apply_to_statistics(
        db: AsyncSession,
        user_id: int,
        transition: Callable[[StatisticsSnapshot], StatisticsSnapshot]
    ) -> StatisticsSnapshot:
        """Read-modify-write of the aggregate under a row lock"""
        current = await UserStatisticService.get_by_user_id(db, user_id, for_update=True)

        if current is None:
            # Первое событие пользователя: считаем от нулевой статистики и вставляем
            snapshot = transition(StatisticsSnapshot())
            inserted = await UserStatisticService.insert_if_absent(db, user_id, snapshot)
            if inserted is not None:
                return snapshot
            # строку только что создал параллельный запрос
            current = await UserStatisticService.get_by_user_id(db, user_id, for_update=True)

        snapshot = transition(StatisticsSnapshot.from_model(current))
        await UserStatisticService.update_from_snapshot(db, user_id, snapshot)
        return snapshot

    @staticmethod
    async def _apply_to_day(
        db: AsyncSession,
        user_id: int,
        day: date,
        contribution: DayContribution
    ) -> DayProgress:
        progress = await UserProgressService.get_or_create_for_update(db, user_id, day)
        day_progress = apply_to_day(DayProgress.from_model(progress), contribution, day)
        await UserProgressService.update_from_day(db, progress.id, day_progress)
        debug_logger.log_data(f"Прогресс user={user_id} за {day}", day_progress.as_values())
        return day_progress
