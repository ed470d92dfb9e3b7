"""
Fixed-window rate limiter for inbound API requests.
"""

from typing import Dict, Any, Optional
import redis.asyncio as redis
from fastapi import Request

from shared.logging import get_logger


class FixedWindowRateLimiter:
    """Per-client request counter over a fixed window, stored in Redis.

    The first request of a window creates the counter and sets its expiry, so
    the window restarts once the key ages out. When Redis is unreachable the
    limiter fails open.
    """

    def __init__(self, redis_url: str, limit: int = 100, window_seconds: int = 900):
        self.redis_url = redis_url
        self.limit = limit
        self.window_seconds = window_seconds
        self.logger = get_logger("newsletter.rate_limiter")
        self._redis: Optional[redis.Redis] = None

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url)
        return self._redis

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    def _make_key(self, client_id: str) -> str:
        return f"rate_limit:api:{client_id}"

    def _fail_open(self, error: str) -> Dict[str, Any]:
        return {
            "allowed": True,
            "current_count": 0,
            "limit": self.limit,
            "remaining": self.limit,
            "reset_in_seconds": self.window_seconds,
            "error": error,
        }

    async def check_rate_limit(self, client_id: str) -> Dict[str, Any]:
        """Count one request for ``client_id`` and report whether it is allowed."""
        key = self._make_key(client_id)

        try:
            redis_client = await self._get_redis()
            current_count = int(await redis_client.incr(key))
            if current_count == 1:
                await redis_client.expire(key, self.window_seconds)

            ttl = await redis_client.ttl(key)
            if not isinstance(ttl, int) or ttl < 0:
                ttl = self.window_seconds
        except Exception as e:
            self.logger.error("Rate limit check error", error=str(e))
            return self._fail_open(str(e))

        if current_count > self.limit:
            self.logger.warning(
                "Rate limit exceeded",
                client_id=client_id,
                current_count=current_count,
                limit=self.limit
            )
            return {
                "allowed": False,
                "current_count": current_count,
                "limit": self.limit,
                "remaining": 0,
                "reset_in_seconds": ttl,
                "retry_after": ttl,
            }

        return {
            "allowed": True,
            "current_count": current_count,
            "limit": self.limit,
            "remaining": max(0, self.limit - current_count),
            "reset_in_seconds": ttl,
        }


class RateLimitMiddleware:
    """Applies the limiter to API paths."""

    def __init__(self, rate_limiter: FixedWindowRateLimiter, path_prefix: str = "/api/"):
        self.rate_limiter = rate_limiter
        self.path_prefix = path_prefix
        self.logger = get_logger("newsletter.rate_limit_middleware")

    def applies_to(self, request: Request) -> bool:
        return request.url.path.startswith(self.path_prefix)

    async def check_request(self, request: Request) -> Dict[str, Any]:
        """Check rate limit for request."""
        client_id = self._get_client_id(request)
        return await self.rate_limiter.check_rate_limit(client_id)

    def _get_client_id(self, request: Request) -> str:
        """Extract client ID from request."""
        forwarded_for = request.headers.get('X-Forwarded-For')
        if isinstance(forwarded_for, str) and forwarded_for:
            return forwarded_for.split(',')[0].strip()

        real_ip = request.headers.get('X-Real-IP')
        if isinstance(real_ip, str) and real_ip:
            return real_ip

        return request.client.host if request.client else 'unknown'
