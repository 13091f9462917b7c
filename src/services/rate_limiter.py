import math
import time
import uuid
from dataclasses import dataclass
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.logs import debug_logger


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at_ms: int
    retry_after: Optional[int] = None


@dataclass
class RateLimitStatus:
    remaining: int
    reset_at_ms: int


class RateLimiter:
    """
    Скользящее окно на sorted set в Redis.

    Each request is a member scored by its timestamp in milliseconds under
    ``rate-limit:{bucket}:{subject}``. Expired members are trimmed, the rest
    counted and the current request added in one MULTI/EXEC pipeline.
    When Redis is unavailable requests are allowed.
    """

    def __init__(self, redis: Redis):
        self.redis = redis

    @staticmethod
    def key(subject_id, bucket: str) -> str:
        return f"rate-limit:{bucket}:{subject_id}"

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)

    async def check(self, subject_id, bucket: str, limit: int = 10, window_seconds: int = 60) -> RateLimitResult:
        key = self.key(subject_id, bucket)
        now = self._now_ms()
        window_ms = window_seconds * 1000
        reset_at = now + window_ms
        member = f"{now}-{uuid.uuid4().hex}"

        try:
            pipe = self.redis.pipeline(transaction=True)
            pipe.zremrangebyscore(key, 0, now - window_ms)
            pipe.zcard(key)
            pipe.zadd(key, {member: now})
            pipe.expire(key, window_seconds)
            results = await pipe.execute()

            count = int(results[1] or 0)
            if count < limit:
                return RateLimitResult(
                    allowed=True,
                    remaining=max(0, limit - count - 1),
                    reset_at_ms=reset_at,
                )

            oldest = await self.redis.zrange(key, 0, 0, withscores=True)
            oldest_ts = int(oldest[0][1]) if oldest else now
            retry_after = max(1, math.ceil((oldest_ts + window_ms - now) / 1000))

            # отклоненный запрос не должен занимать место в окне
            await self.redis.zrem(key, member)
            debug_logger.debug(f"Лимит превышен: {key}, повтор через {retry_after}с")
            return RateLimitResult(allowed=False, remaining=0, reset_at_ms=reset_at, retry_after=retry_after)
        except (RedisError, OSError) as e:
            debug_logger.warning(f"Rate limit check failed for {key}, allowing request: {e}")
            return RateLimitResult(allowed=True, remaining=max(0, limit - 1), reset_at_ms=reset_at)

    async def status(self, subject_id, bucket: str, limit: int = 10, window_seconds: int = 60) -> RateLimitStatus:
        """Текущее состояние окна без учета нового запроса"""
        key = self.key(subject_id, bucket)
        now = self._now_ms()
        window_ms = window_seconds * 1000

        try:
            await self.redis.zremrangebyscore(key, 0, now - window_ms)
            count = await self.redis.zcard(key)
        except (RedisError, OSError) as e:
            debug_logger.warning(f"Rate limit status failed for {key}: {e}")
            count = 0
        return RateLimitStatus(remaining=max(0, limit - int(count)), reset_at_ms=now + window_ms)

    async def reset(self, subject_id, bucket: str) -> None:
        await self.redis.delete(self.key(subject_id, bucket))
