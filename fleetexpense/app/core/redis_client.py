"""
Shared Redis connection.

Only the token blacklist lives in Redis; trip and truck data never do.
"""

import logging

import redis.asyncio as redis
from fleetexpense.app.core.config import settings

logger = logging.getLogger(__name__)

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """FastAPI dependency; overridden with an in-memory fake in tests."""
    return redis_client


async def close_redis() -> None:
    """Release the connection pool on shutdown."""
    try:
        await redis_client.aclose()
    except redis.RedisError:
        logger.warning("Error while closing Redis connection pool", exc_info=True)
