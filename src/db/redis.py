from typing import Optional

import redis.asyncio as redis

from src.core import get_settings
from src.logs import debug_logger

settings = get_settings()

_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """Ленивый singleton клиента Redis"""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=2,
            socket_connect_timeout=2,
            retry_on_timeout=True,
        )
        debug_logger.info(f"Redis client created for {settings.REDIS_URL}")
    return _redis_client


async def close_redis_client() -> None:
    """Закрыть соединение при остановке приложения"""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
