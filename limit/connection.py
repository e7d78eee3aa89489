"""
Redis client factory and liveness probe.

Each call to ``create_connection`` builds a new client. Limiters that
build their own client own it; no connection is cached at module level.
"""

from __future__ import annotations

from typing import Optional

import redis

from limit.config import RedisSettings
from limit.errors import StoreConnectionError
from limit.logging_config import get_logger

logger = get_logger(__name__)


def create_connection(settings: Optional[RedisSettings] = None) -> redis.Redis:
    """
    Create a Redis client.

    Args:
        settings: Connection settings (defaults to ``RedisSettings.from_env()``)

    Returns:
        A ``redis.Redis`` client; no network traffic happens until first use
    """
    settings = settings or RedisSettings.from_env()
    if settings.url:
        # Values embedded in the URL win over these keyword arguments.
        options = {"socket_timeout": settings.socket_timeout}
        if settings.password:
            options["password"] = settings.password
        if settings.db:
            options["db"] = settings.db
        return redis.Redis.from_url(settings.url, **options)
    return redis.Redis(
        host=settings.host,
        port=settings.port,
        password=settings.password,
        db=settings.db,
        socket_timeout=settings.socket_timeout,
    )


def verify_connection(client: redis.Redis, address: str = "") -> None:
    """
    Probe the store with PING.

    Raises:
        StoreConnectionError: if the store does not answer
    """
    try:
        ok = client.ping()
    except redis.RedisError as exc:
        logger.error("redis_connect_failed", address=address, error=str(exc))
        raise StoreConnectionError(f"Error connecting to Redis at {address or 'default'}: {exc}") from exc

    if not ok:
        logger.error("redis_connect_failed", address=address, error="PING returned false")
        raise StoreConnectionError(f"Redis at {address or 'default'} did not answer PING")

    logger.info("redis_connected", address=address)
