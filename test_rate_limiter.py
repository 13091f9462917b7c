from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import HTTPException, Response
from redis.exceptions import ConnectionError as RedisConnectionError

from src.api.dependencies.rate_limit import RateLimit
from src.models.user import User
from src.services.rate_limiter import RateLimiter, RateLimitResult, RateLimitStatus

NOW = 1_760_000_000_000


def make_redis(execute_result=None):
    redis = MagicMock()
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=execute_result)
    redis.pipeline.return_value = pipe
    redis.zrange = AsyncMock(return_value=[])
    redis.zrem = AsyncMock()
    redis.zremrangebyscore = AsyncMock()
    redis.zcard = AsyncMock(return_value=0)
    redis.delete = AsyncMock()
    return redis, pipe


class TestRateLimiter:
    """Скользящее окно на sorted set"""

    def test_key_format(self):
        assert RateLimiter.key(7, "submissions") == "rate-limit:submissions:7"

    @pytest.mark.asyncio
    async def test_allowed_under_limit(self):
        redis, pipe = make_redis([0, 3, 1, True])
        limiter = RateLimiter(redis)

        with patch.object(RateLimiter, '_now_ms', return_value=NOW):
            result = await limiter.check(7, "submissions", limit=10, window_seconds=60)

        assert result == RateLimitResult(allowed=True, remaining=6, reset_at_ms=NOW + 60_000)
        redis.pipeline.assert_called_once_with(transaction=True)
        pipe.zremrangebyscore.assert_called_once_with("rate-limit:submissions:7", 0, NOW - 60_000)
        pipe.zcard.assert_called_once_with("rate-limit:submissions:7")
        pipe.expire.assert_called_once_with("rate-limit:submissions:7", 60)
        member_map = pipe.zadd.call_args.args[1]
        assert list(member_map.values()) == [NOW]
        redis.zrem.assert_not_called()

    @pytest.mark.asyncio
    async def test_last_allowed_request_has_zero_remaining(self):
        redis, _ = make_redis([0, 9, 1, True])

        with patch.object(RateLimiter, '_now_ms', return_value=NOW):
            result = await RateLimiter(redis).check(1, "b", limit=10)

        assert result.allowed is True
        assert result.remaining == 0

    @pytest.mark.asyncio
    async def test_denied_removes_own_member_and_sets_retry_after(self):
        redis, pipe = make_redis([0, 10, 1, True])
        redis.zrange.return_value = [("oldest", float(NOW - 30_000))]

        with patch.object(RateLimiter, '_now_ms', return_value=NOW):
            result = await RateLimiter(redis).check(7, "submissions", limit=10, window_seconds=60)

        assert result.allowed is False
        assert result.remaining == 0
        assert result.retry_after == 30

        added_member = next(iter(pipe.zadd.call_args.args[1]))
        redis.zrem.assert_awaited_once_with("rate-limit:submissions:7", added_member)

    @pytest.mark.asyncio
    async def test_retry_after_is_at_least_one_second(self):
        redis, _ = make_redis([0, 5, 1, True])
        redis.zrange.return_value = [("oldest", float(NOW - 59_999))]

        with patch.object(RateLimiter, '_now_ms', return_value=NOW):
            result = await RateLimiter(redis).check(7, "b", limit=5, window_seconds=60)

        assert result.retry_after == 1

    @pytest.mark.asyncio
    async def test_fails_open_when_redis_unavailable(self):
        redis, pipe = make_redis()
        pipe.execute.side_effect = RedisConnectionError("connection refused")

        with patch.object(RateLimiter, '_now_ms', return_value=NOW):
            result = await RateLimiter(redis).check(7, "b", limit=10)

        assert result.allowed is True
        assert result.remaining == 9

    @pytest.mark.asyncio
    async def test_status_does_not_add_member(self):
        redis, _ = make_redis()
        redis.zcard.return_value = 4

        with patch.object(RateLimiter, '_now_ms', return_value=NOW):
            result = await RateLimiter(redis).status(7, "b", limit=10, window_seconds=60)

        assert result == RateLimitStatus(remaining=6, reset_at_ms=NOW + 60_000)
        redis.pipeline.assert_not_called()

    @pytest.mark.asyncio
    async def test_reset_deletes_key(self):
        redis, _ = make_redis()
        await RateLimiter(redis).reset(7, "b")
        redis.delete.assert_awaited_once_with("rate-limit:b:7")


class TestRateLimitDependency:

    def setup_method(self):
        self.user = User(id=3, email="a@example.com", username="a", is_active=True)
        self.limiter = MagicMock(spec=RateLimiter)

    @pytest.mark.asyncio
    async def test_sets_headers_when_allowed(self):
        self.limiter.check = AsyncMock(return_value=RateLimitResult(True, 4, NOW))
        response = Response()

        dependency = RateLimit("export", limit=5, window_seconds=30)
        result = await dependency(response, current_user=self.user, limiter=self.limiter)

        assert result.allowed is True
        self.limiter.check.assert_awaited_once_with(3, "export", 5, 30)
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "4"
        assert response.headers["X-RateLimit-Reset"].startswith("2025-10-09T")

    @pytest.mark.asyncio
    async def test_raises_429_when_denied(self):
        self.limiter.check = AsyncMock(return_value=RateLimitResult(False, 0, NOW, retry_after=12))

        with pytest.raises(HTTPException) as exc_info:
            await RateLimit("export", limit=5)(Response(), current_user=self.user, limiter=self.limiter)

        assert exc_info.value.status_code == 429
        assert exc_info.value.headers["Retry-After"] == "12"
        assert exc_info.value.headers["X-RateLimit-Remaining"] == "0"
        assert exc_info.value.detail["retryAfter"] == 12
