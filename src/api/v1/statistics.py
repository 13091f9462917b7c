from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.database import get_async_session
from src.api.dependencies.auth import get_current_active_user
from src.api.errors import to_http_exception
from src.core import get_settings
from src.core.exceptions import StatisticsError
from src.models.user import User
from src.schemas.user_statistic import UserStatisticResponse, UserProgressResponse
from src.services.user_statistic_service import UserStatisticService
from src.services.user_progress_service import UserProgressService

settings = get_settings()

router = APIRouter(prefix="/statistics", tags=["statistics"])


@router.get("", response_model=UserStatisticResponse)
async def get_statistics(
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_active_user),
):
    """
    Статистика текущего пользователя.

    Создается при первом обращении; ответ всегда 200.
    """
    try:
        stats, _ = await UserStatisticService.ensure_initialized(db, current_user.id)
    except StatisticsError as e:
        raise to_http_exception(e) from e
    return stats


@router.get("/progress", response_model=List[UserProgressResponse])
async def get_progress(
    days: int = Query(settings.PROGRESS_DEFAULT_DAYS, ge=1, le=settings.PROGRESS_MAX_DAYS),
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_active_user),
):
    """Дневная активность за последние `days` дней, по возрастанию даты"""
    try:
        return await UserProgressService.get_recent(db, current_user.id, days)
    except StatisticsError as e:
        raise to_http_exception(e) from e
