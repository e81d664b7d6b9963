"""Rate limiting dependency for the /api routers.

A dependency rather than middleware: it is attached to the /api routers
only, so /health, /ready, /metrics and / are never limited and the
orchestrator's probes keep working while a client is throttled.

Keyed by client IP.  Behind a proxy every request appears to come from the
proxy, so run uvicorn with --proxy-headers (and --forwarded-allow-ips)
there; request.client then carries the forwarded address.

X-RateLimit-* headers go on every limited response, successful or not, so
clients can see their remaining quota and back off before hitting 429.
"""

from __future__ import annotations

import logging

from fastapi import Request, Response

from app.api.errors import AppError
from app.core.config import SETTINGS
from app.core.metrics import RATE_LIMIT_HITS
from app.db.redis import redis_pool
from app.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimiter,
    RateLimitResult,
    RedisRateLimiter,
)

logger = logging.getLogger(__name__)

_rate_limiter: RateLimiter
if redis_pool is not None:
    _rate_limiter = RedisRateLimiter(redis_pool)
else:
    _rate_limiter = InMemoryRateLimiter()


_DEFAULT_CONFIG = RateLimitConfig.per_window(
    SETTINGS.rate_limit_max_requests, SETTINGS.rate_limit_window_seconds
)


def require_rate_limit(config: RateLimitConfig = _DEFAULT_CONFIG):
    """Dependency factory: enforce a token-bucket limit per client IP.

    Usage::

        router = APIRouter(dependencies=[Depends(require_rate_limit())])
    """

    async def _check(request: Request, response: Response) -> None:
        key = _build_key(request)
        result: RateLimitResult = await _rate_limiter.check(key, config)

        headers = {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
        }

        if not result.allowed:
            RATE_LIMIT_HITS.inc()
            logger.warning("Rate limit exceeded key=%s path=%s", key, request.url.path)
            raise AppError(
                429,
                "Too many requests from this IP, please try again later",
                headers={
                    # Whole seconds, rounded up.
                    "Retry-After": str(int(result.retry_after) + 1),
                    **headers,
                },
            )

        response.headers.update(headers)

    return _check


def _build_key(request: Request) -> str:
    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"
