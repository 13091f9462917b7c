from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.database import get_async_session
from src.api.dependencies.auth import get_current_active_user
from src.api.dependencies.rate_limit import RateLimit
from src.api.errors import to_http_exception
from src.core.exceptions import StatisticsError
from src.models.user import User
from src.schemas.submission import (
    TaskSubmissionCreate,
    TaskSubmissionResponse,
    SheetSubmissionCreate,
    SheetSubmissionResponse,
)
from src.services.submission_service import SubmissionService
from src.logs import api_logger

router = APIRouter(prefix="/submissions", tags=["submissions"])

submission_limit = RateLimit("submissions", limit=60, window_seconds=60)


@router.post(
    "/task",
    response_model=TaskSubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(submission_limit)],
)
async def submit_task(
    submission: TaskSubmissionCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_active_user),
):
    """Записать ответ на задачу и обновить статистику пользователя"""
    try:
        result = await SubmissionService.record_task_result(db, current_user.id, submission)
    except StatisticsError as e:
        raise to_http_exception(e) from e

    api_logger.info(f"Task submission {result.id} recorded for user {current_user.id}")
    return result


@router.post(
    "/sheet",
    response_model=SheetSubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(submission_limit)],
)
async def submit_sheet(
    submission: SheetSubmissionCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_active_user),
):
    """Записать результат листа и обновить статистику пользователя"""
    try:
        result = await SubmissionService.record_sheet_result(db, current_user.id, submission)
    except StatisticsError as e:
        raise to_http_exception(e) from e

    api_logger.info(f"Sheet submission {result.id} recorded for user {current_user.id}")
    return result
