"""
API rate limiting.

Redis-backed sliding window keyed on client IP, applied to every path under
the API prefix: RATE_LIMIT_MAX requests per RATE_LIMIT_WINDOW_MINUTES. When
Redis is unreachable the request is let through and the failure is logged.
"""
import logging
import time
import uuid
from typing import Optional, Tuple

import redis
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from hostpanel.config import settings

logger = logging.getLogger("hostpanel.rate_limit")

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


class RateLimiter:
    """Sliding window counter on a Redis sorted set."""

    def __init__(self, redis_url: Optional[str] = None, client: Optional[redis.Redis] = None):
        self._redis_url = redis_url or settings.REDIS_URL
        self._redis: Optional[redis.Redis] = client

    @property
    def r(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.Redis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
        return self._redis

    def is_allowed(
        self,
        key: str,
        max_requests: int,
        window_seconds: int,
    ) -> Tuple[bool, int, int]:
        """Return (allowed, remaining, retry_after_seconds)."""
        try:
            now = time.time()
            member = f"{now}:{uuid.uuid4().hex[:8]}"
            pipe = self.r.pipeline(transaction=True)
            pipe.zremrangebyscore(key, 0, now - window_seconds)
            pipe.zcard(key)
            pipe.zadd(key, {member: now})
            pipe.expire(key, window_seconds + 10)
            results = pipe.execute()
            current_count = results[1]

            if current_count >= max_requests:
                self.r.zrem(key, member)
                oldest = self.r.zrange(key, 0, 0, withscores=True)
                retry_after = int(window_seconds - (now - oldest[0][1])) if oldest else window_seconds
                return False, 0, max(retry_after, 1)

            return True, max(max_requests - current_count - 1, 0), 0

        except redis.RedisError as e:
            logger.warning("Rate limiter Redis error: %s, allowing request", e)
            return True, max_requests, 0


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        limiter: Optional[RateLimiter] = None,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ):
        super().__init__(app)
        self.limiter = limiter or RateLimiter()
        self.max_requests = max_requests or settings.RATE_LIMIT_MAX
        self.window_seconds = window_seconds or settings.RATE_LIMIT_WINDOW_MINUTES * 60

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(settings.API_PREFIX):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        allowed, remaining, retry_after = self.limiter.is_allowed(
            f"rl:ip:{client_ip}", self.max_requests, self.window_seconds,
        )
        if not allowed:
            logger.info("Rate limit hit for %s on %s", client_ip, request.url.path)
            return JSONResponse(
                status_code=429,
                content={"error": RATE_LIMIT_MESSAGE},
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(self.max_requests),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response
