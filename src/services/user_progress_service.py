from typing import List, Optional
from datetime import date, timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_
from sqlalchemy.dialects.postgresql import insert

from src.core import get_settings
from src.core.exceptions import ValidationFailed
from src.models.user_progress import UserProgress
from src.services.aggregation import DayProgress

settings = get_settings()


class UserProgressService:
    """Сервис для дневной статистики пользователя (одна строка на день)"""

    @staticmethod
    async def get_or_create_for_update(db: AsyncSession, user_id: int, day: date) -> UserProgress:
        """
        Строка за день, заблокированная до конца транзакции.

        Пустая строка вставляется с ON CONFLICT DO NOTHING, поэтому два
        параллельных первых события за день не конфликтуют по уникальному ключу.
        """
        stmt = (
            insert(UserProgress)
            .values(user_id=user_id, date=day)
            .on_conflict_do_nothing(index_elements=[UserProgress.user_id, UserProgress.date])
        )
        await db.execute(stmt)

        query = (
            select(UserProgress)
            .where(and_(UserProgress.user_id == user_id, UserProgress.date == day))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalars().one()

    @staticmethod
    async def update_from_day(db: AsyncSession, progress_id: int, day_progress: DayProgress) -> None:
        stmt = update(UserProgress).where(UserProgress.id == progress_id).values(**day_progress.as_values())
        await db.execute(stmt)

    @staticmethod
    async def get_range(db: AsyncSession, user_id: int, date_from: date) -> List[UserProgress]:
        query = select(UserProgress).where(
            and_(UserProgress.user_id == user_id, UserProgress.date >= date_from)
        ).order_by(UserProgress.date)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def get_recent(
        db: AsyncSession,
        user_id: int,
        days: int = settings.PROGRESS_DEFAULT_DAYS,
        today: Optional[date] = None
    ) -> List[UserProgress]:
        """Дни с today - days по сегодня, по возрастанию даты"""
        if days < 1 or days > settings.PROGRESS_MAX_DAYS:
            raise ValidationFailed("days", f"must be between 1 and {settings.PROGRESS_MAX_DAYS}")
        today = today or date.today()
        return await UserProgressService.get_range(db, user_id, today - timedelta(days=days))
