from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine, AsyncSession
from sqlalchemy.pool import NullPool
from typing import AsyncGenerator

from src.core import get_settings
from src.logs import debug_logger

settings = get_settings()

# NullPool: соединение не переживает запрос, блокировки строк снимаются вместе с транзакцией
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    poolclass=NullPool,
)

async_session_factory = async_sessionmaker(
    engine,
    autoflush=False,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Сессия на запрос.

    Services commit their own units of work; whatever is still pending when
    the handler returns is committed here, and rolled back if it raised.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            debug_logger.debug(f"Session rolled back: {type(e).__name__}")
            raise


async def init_db():
    async with engine.begin() as conn:
        from src.db.models import Base
        # Таблицы, которых еще нет (локальный запуск без Alembic)
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    await engine.dispose()
