"""Redis connection utilities.

Provides helper functions for creating Redis connections with configuration
from settings.
"""

import redis.asyncio as redis

from app.config.settings import Settings


def get_redis_client(settings: Settings) -> redis.Redis:
    """
    Create a Redis client with settings from config.

    The client connects lazily on first command.

    Returns:
        redis.Redis: Configured Redis client with decode_responses=True

    Example:
        >>> redis_client = get_redis_client(settings)
        >>> await redis_client.get("wallet:1")
        >>> await redis_client.aclose()
    """
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        db=settings.redis_db,
        decode_responses=True,
    )


def get_redis_url_masked(settings: Settings) -> str:
    """
    Build Redis URL with masked password for safe logging.

    Returns:
        str: Redis connection URL with masked password
    """
    auth = ":***@" if settings.redis_password else ""
    return f"redis://{auth}{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
