from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Response, status

from src.api.dependencies.auth import get_current_active_user
from src.core import get_settings
from src.db.redis import get_redis_client
from src.models.user import User
from src.services.rate_limiter import RateLimiter, RateLimitResult

settings = get_settings()


def get_rate_limiter() -> RateLimiter:
    return RateLimiter(get_redis_client())


class RateLimit:
    """
    Dependency that gates an endpoint per user.

    Usage:
        @router.post("/export", dependencies=[Depends(RateLimit("export", limit=5))])
    """

    def __init__(self, bucket: str, limit: Optional[int] = None, window_seconds: Optional[int] = None):
        self.bucket = bucket
        self.limit = limit or settings.RATE_LIMIT_DEFAULT_LIMIT
        self.window_seconds = window_seconds or settings.RATE_LIMIT_DEFAULT_WINDOW

    def headers(self, result: RateLimitResult) -> dict:
        reset = datetime.fromtimestamp(result.reset_at_ms / 1000, tz=timezone.utc)
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": reset.isoformat(),
        }

    async def __call__(
        self,
        response: Response,
        current_user: User = Depends(get_current_active_user),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> RateLimitResult:
        result = await limiter.check(current_user.id, self.bucket, self.limit, self.window_seconds)
        headers = self.headers(result)

        if not result.allowed:
            retry_after = result.retry_after or self.window_seconds
            headers["Retry-After"] = str(retry_after)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "message": "Rate limit exceeded. Please try again later.",
                    "retryAfter": retry_after,
                },
                headers=headers,
            )

        response.headers.update(headers)
        return result
