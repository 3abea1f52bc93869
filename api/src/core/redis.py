"""Redis client for the role cache and unread notification counters.

Redis is optional. When it cannot be reached ``connect_redis`` returns None,
the caches are built without a client and every read goes to Cassandra.
"""

import redis.asyncio as redis
from redis.exceptions import RedisError

from src.config import Settings, get_settings
from src.core.logging import get_logger


logger = get_logger(__name__)


def build_redis_client(settings: Settings) -> redis.Redis:
    """Pooled client with string responses, nothing is sent yet."""
    return redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        health_check_interval=settings.redis_health_check_interval,
        retry_on_timeout=True,
        decode_responses=True,
    )


async def connect_redis(settings: Settings | None = None) -> redis.Redis | None:
    """Return a client that answered PING, or None when Redis is down."""
    settings = settings or get_settings()
    client = build_redis_client(settings)

    try:
        await client.ping()
    except RedisError as e:
        logger.warning(
            "redis_unavailable",
            error=str(e),
            message="Running without Redis - role and unread caches disabled",
        )
        await client.aclose()
        return None

    pool_kwargs = client.connection_pool.connection_kwargs
    logger.info(
        "redis_connected",
        host=pool_kwargs.get("host"),
        db=pool_kwargs.get("db"),
    )
    return client


async def close_redis(client: redis.Redis | None) -> None:
    if client is None:
        return
    await client.aclose()
    logger.info("redis_disconnected")
