"""Rate limiting — fixed window counters per client IP.

Learn: Each client IP gets N requests per window. The login endpoint has
its own, much smaller bucket to slow down password guessing. Counter
state lives on a limiter instance handed to the middleware, never in
module globals, so tests and multiple apps in one process stay isolated.

Two backends:
- FixedWindowRateLimiter: in-process dict, stale windows evicted lazily
- RedisRateLimiter: INCR + EXPIRE, shared across workers
"""

import time
from dataclasses import dataclass
from typing import Callable, Protocol

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from backoffice.errors import RateLimitError, error_response

logger = structlog.get_logger()

LOGIN_PATH = "/api/auth/login"


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int


class RateLimiter(Protocol):
    async def hit(self, key: str, limit: int) -> RateLimitDecision: ...


class FixedWindowRateLimiter:
    """In-process counters: key -> (window start, count)."""

    def __init__(self, window_seconds: int, clock: Callable[[], float] = time.monotonic):
        self.window_seconds = window_seconds
        self.clock = clock
        self._windows: dict[str, tuple[float, int]] = {}
        self._last_sweep = clock()

    def _sweep(self, now: float) -> None:
        """Drop counters whose window has ended. Runs at most once per window."""
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        stale = [k for k, (start, _) in self._windows.items() if now - start >= self.window_seconds]
        for key in stale:
            del self._windows[key]

    async def hit(self, key: str, limit: int) -> RateLimitDecision:
        now = self.clock()
        self._sweep(now)
        start, count = self._windows.get(key, (now, 0))
        if now - start >= self.window_seconds:
            start, count = now, 0
        count += 1
        self._windows[key] = (start, count)
        retry_after = max(1, int(start + self.window_seconds - now))
        return RateLimitDecision(count <= limit, limit, max(0, limit - count), retry_after)

    def __len__(self) -> int:
        return len(self._windows)


class RedisRateLimiter:
    """Shared counters in Redis. Falls open when Redis is unreachable."""

    def __init__(self, redis: aioredis.Redis, window_seconds: int, prefix: str = "backoffice:rl"):
        self.redis = redis
        self.window_seconds = window_seconds
        self.prefix = prefix

    async def hit(self, key: str, limit: int) -> RateLimitDecision:
        window = int(time.time() // self.window_seconds)
        redis_key = f"{self.prefix}:{key}:{window}"
        try:
            count = await self.redis.incr(redis_key)
            if count == 1:
                await self.redis.expire(redis_key, self.window_seconds * 2)
        except RedisError as e:
            logger.warning("rate_limit.redis_error", error=str(e))
            return RateLimitDecision(True, limit, limit, 0)
        retry_after = max(1, (window + 1) * self.window_seconds - int(time.time()))
        return RateLimitDecision(count <= limit, limit, max(0, limit - count), retry_after)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Enforce per-IP limits; over the limit answers 429 with Retry-After."""

    def __init__(
        self,
        app,
        limiter: RateLimiter,
        default_limit: int = 100,
        login_limit: int = 10,
        enabled: bool = True,
    ):
        super().__init__(app)
        self.limiter = limiter
        self.default_limit = default_limit
        self.login_limit = login_limit
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next) -> Response:
        if not self.enabled or request.method == "OPTIONS":
            return await call_next(request)

        ip = client_ip(request)
        if request.url.path.startswith(LOGIN_PATH):
            decision = await self.limiter.hit(f"login:{ip}", self.login_limit)
        else:
            decision = await self.limiter.hit(f"api:{ip}", self.default_limit)

        if not decision.allowed:
            logger.info("rate_limit.exceeded", ip=ip, path=request.url.path)
            exc = RateLimitError()
            return error_response(
                exc.status_code,
                exc.message,
                headers={
                    "Retry-After": str(decision.retry_after),
                    "X-RateLimit-Limit": str(decision.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response
