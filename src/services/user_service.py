from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert

from src.core.exceptions import ProfileNotFound
from src.models.user import User
from src.models.profile import Profile, UserSettings
from src.logs import debug_logger


class UserService:
    """Доступ к учетной записи и зависимым строкам (профиль, настройки)"""

    @staticmethod
    async def get_by_id(
        db: AsyncSession,
        user_id: int
    ) -> Optional[User]:
        """Get user by id"""
        query = select(User).where(User.id == user_id)
        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def get_profile(db: AsyncSession, user_id: int) -> Optional[Profile]:
        query = select(Profile).where(Profile.id == user_id)
        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def get_settings(db: AsyncSession, user_id: int) -> Optional[UserSettings]:
        query = select(UserSettings).where(UserSettings.user_id == user_id)
        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def ensure_profile(db: AsyncSession, user: User) -> Profile:
        """
        Создать профиль по умолчанию, если его нет.

        Вставка с ON CONFLICT DO NOTHING безопасна при параллельных запросах;
        затем строка перечитывается.

        Raises:
            ProfileNotFound: если профиль не удалось ни найти, ни создать
        """
        profile = await UserService.get_profile(db, user.id)
        if profile:
            return profile

        stmt = insert(Profile).values(
            id=user.id,
            first_name=user.username or "",
            last_name="",
            avatar_url=None,
            preferences={},
            is_admin=False,
        ).on_conflict_do_nothing(index_elements=[Profile.id])
        await db.execute(stmt)

        profile = await UserService.get_profile(db, user.id)
        if not profile:
            raise ProfileNotFound(user.id)
        debug_logger.debug(f"Создан профиль по умолчанию для пользователя {user.id}")
        return profile

    @staticmethod
    async def ensure_settings(db: AsyncSession, user_id: int) -> UserSettings:
        """Создать настройки по умолчанию, если их нет"""
        settings = await UserService.get_settings(db, user_id)
        if settings:
            return settings

        stmt = insert(UserSettings).values(
            user_id=user_id,
            theme="light",
            language="en",
            notifications_enabled=True,
            preferences={},
        ).on_conflict_do_nothing(index_elements=[UserSettings.user_id])
        await db.execute(stmt)
        debug_logger.debug(f"Созданы настройки по умолчанию для пользователя {user_id}")
        return await UserService.get_settings(db, user_id)
