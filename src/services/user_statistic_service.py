from typing import Optional, Tuple
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError

from src.core.exceptions import UserNotFound, StorageFailure
from src.models.user_statistic import UserStatistic
from src.services.aggregation import StatisticsSnapshot
from src.services.user_service import UserService
from src.logs import debug_logger


class UserStatisticService:
    """Сервис для работы с агрегированной статистикой пользователя"""

    @staticmethod
    async def get_by_user_id(
        db: AsyncSession,
        user_id: int,
        for_update: bool = False
    ) -> Optional[UserStatistic]:
        """Получить статистику пользователя; for_update блокирует строку до конца транзакции"""
        query = select(UserStatistic).where(UserStatistic.user_id == user_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def insert_if_absent(
        db: AsyncSession,
        user_id: int,
        snapshot: StatisticsSnapshot
    ) -> Optional[UserStatistic]:
        """
        INSERT ... ON CONFLICT (user_id) DO NOTHING.

        Returns the inserted row, or None when another transaction already
        created the row for this user.
        """
        stmt = (
            insert(UserStatistic)
            .values(user_id=user_id, **snapshot.as_values())
            .on_conflict_do_nothing(index_elements=[UserStatistic.user_id])
            .returning(UserStatistic)
        )
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def update_from_snapshot(
        db: AsyncSession,
        user_id: int,
        snapshot: StatisticsSnapshot
    ) -> None:
        stmt = update(UserStatistic).where(UserStatistic.user_id == user_id).values(
            **snapshot.as_values(),
            updated_at=datetime.utcnow()
        )
        await db.execute(stmt)

    @staticmethod
    async def ensure_initialized(db: AsyncSession, user_id: int) -> Tuple[UserStatistic, bool]:
        """
        Получить статистику пользователя, создав ее при первом обращении.

        Safe for concurrent first requests: the default row is inserted with
        ON CONFLICT DO NOTHING and, if that insert lost the race, the row
        created by the winner is re-read.

        Returns:
            (statistics row, True if this call created it)

        Raises:
            UserNotFound: the user id no longer maps to an account
            ProfileNotFound: the profile row is missing and could not be created
            StorageFailure: the initialization could not be committed
        """
        try:
            stat = await UserStatisticService.get_by_user_id(db, user_id)
            if stat:
                return stat, False

            # Проверяем пользователя до вставки, иначе нарушим внешний ключ
            user = await UserService.get_by_id(db, user_id)
            if not user:
                raise UserNotFound(user_id)

            await UserService.ensure_profile(db, user)
            await UserService.ensure_settings(db, user_id)

            stat = await UserStatisticService.insert_if_absent(db, user_id, StatisticsSnapshot())
            created = stat is not None
            if not created:
                stat = await UserStatisticService.get_by_user_id(db, user_id)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            debug_logger.error(f"Не удалось инициализировать статистику пользователя {user_id}")
            raise StorageFailure("Failed to initialize user statistics", e) from e

        if created:
            debug_logger.debug(f"Создана статистика по умолчанию для пользователя {user_id}")
        else:
            debug_logger.debug(f"Статистика пользователя {user_id} создана параллельным запросом")
        return stat, created
