"""Rate limiting middleware for the trade and sell endpoints.

Fixed-window counter in Redis:
  - Key pattern: "ratelimit:{client_ip}:trades"
  - INCR on every POST under /api/v1/trades, EXPIRE on the first hit
  - Over RATE_LIMIT_PER_MINUTE: 429 with RateLimitError (9001) and Retry-After

The client IP comes from X-Forwarded-For when behind a reverse proxy.
If Redis is unreachable requests are let through and a warning is logged.
"""

import logging
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from config.settings import settings
from src.pm_common.errors import RateLimitError
from src.pm_common.redis_client import get_redis
from src.pm_common.response import error_response

logger = logging.getLogger(__name__)

LIMITED_PREFIX = "/api/v1/trades"
WINDOW_SECONDS = 60


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        redis_getter: Callable[[], Awaitable[aioredis.Redis]] | None = None,
        limit: int | None = None,
    ) -> None:
        super().__init__(app)
        self._redis_getter = redis_getter
        self._limit = limit if limit is not None else settings.RATE_LIMIT_PER_MINUTE

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method != "POST" or not request.url.path.startswith(LIMITED_PREFIX):
            return await call_next(request)

        key = f"ratelimit:{client_ip(request)}:trades"
        try:
            redis = await (self._redis_getter or get_redis)()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, WINDOW_SECONDS)
            retry_after = await redis.ttl(key) if count > self._limit else 0
        except RedisError as exc:
            logger.warning("Rate limiter unavailable, allowing request: %s", exc)
            return await call_next(request)

        if count > self._limit:
            err = RateLimitError()
            return JSONResponse(
                status_code=err.http_status,
                content=error_response(err.code, err.message).model_dump(),
                headers={"Retry-After": str(retry_after if retry_after > 0 else WINDOW_SECONDS)},
            )
        return await call_next(request)
