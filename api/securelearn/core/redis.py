# ruff: noqa: PLW0603
"""Redis connection management.

Redis is optional: it backs submission locks and rate limits for
assessments. The API keeps working without it.
"""

import redis.asyncio as redis

from securelearn.config import get_settings
from securelearn.core.logging import get_logger


logger = get_logger(__name__)

_redis_client: redis.Redis | None = None


async def init_redis() -> redis.Redis:
    """Create the Redis client and verify the connection."""
    global _redis_client

    settings = get_settings()

    _redis_client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        health_check_interval=settings.redis_health_check_interval,
        decode_responses=True,
    )

    try:
        await _redis_client.ping()
        logger.info("redis_connected", url=settings.redis_url)
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        _redis_client = None
        raise

    return _redis_client


async def shutdown_redis() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        logger.info("redis_disconnected")
        _redis_client = None


def get_redis() -> redis.Redis | None:
    """Get Redis client instance (None when Redis is unavailable)."""
    return _redis_client


def submission_lock_key(user_id: str, section_id: str) -> str:
    """Key of the advisory lock held while an assessment is scored."""
    return f"assessment:lock:{user_id}:{section_id}"


def submission_rate_key(user_id: str) -> str:
    """Key of the hourly submission counter for a user."""
    return f"assessment:rate:{user_id}:hour"
