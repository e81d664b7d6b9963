"""Redis connection management.

Redis holds the rate-limit buckets when the services run as several
replicas: every replica must see the same counts, or each one would grant
its own full quota.  Credentials and verification records never go here;
they live in the SQL database.

Mirrors engine.py: when REDIS_URL is configured we create a connection
pool at import time; when it's None (local dev, tests) redis_pool is None
and consumers fall back to in-memory implementations.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


async def ping_redis() -> str:
    """ok | degraded | not_configured, for the health endpoints."""
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except Exception:
        logger.warning("Redis ping failed", exc_info=True)
        return "degraded"
    return "ok"


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis, mirrors lifespan_db()."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured; rate limits are per process")
        yield
        return

    # Start even if Redis is down; the health endpoints report it degraded.
    if await ping_redis() == "ok":
        logger.info("Redis connected")
    else:
        logger.error("Redis unreachable on startup")

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
