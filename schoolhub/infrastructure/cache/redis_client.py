# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Redis client lifecycle for the read cache.

This module owns the process-wide Redis connection pool. Components never
create connections themselves: they receive a RedisClient (usually wrapped in
a CacheStore) at construction time, and process startup/shutdown calls
init_redis()/close_redis().

All keys are namespaced with the configured cache prefix: <prefix>:<key>.

Example:
    from schoolhub.infrastructure.cache import init_redis, get_redis

    # Initialize at startup
    await init_redis(settings)

    # Hand the client to the cache store
    store = CacheStore(get_redis())
"""

from typing import TYPE_CHECKING, Optional

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError as BaseRedisError

from schoolhub.utils.logging import get_logger

if TYPE_CHECKING:
    from schoolhub.core.config.settings import Settings

logger = get_logger(__name__)

# Module-level state
_redis_client: Optional["RedisClient"] = None


class RedisError(Exception):
    """Exception raised for Redis lifecycle failures.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying Redis error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the Redis error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class RedisClient:
    """Async Redis connection holder with key namespacing.

    Attributes:
        prefix: Namespace prepended to every key.

    Example:
        client = RedisClient(settings)
        await client.connect()
        redis = client.connection()
        await redis.get(client.key("school:123"))
        await client.close()
    """

    def __init__(self, settings: "Settings", redis: Optional[Redis] = None) -> None:
        """Initialize the Redis client.

        Args:
            settings: Application settings containing Redis configuration.
            redis: Optional pre-built connection, used for tests or DI.
        """
        self._settings = settings
        self._pool: Optional[ConnectionPool] = None
        self._redis: Optional[Redis] = redis
        self.prefix = settings.cache_prefix

    async def connect(self) -> None:
        """Create the connection pool and verify the server answers.

        Raises:
            RedisError: If connection fails.
        """
        try:
            if self._redis is None:
                redis_settings = self._settings.redis
                self._pool = ConnectionPool.from_url(
                    redis_settings.url,
                    max_connections=redis_settings.max_connections,
                    socket_timeout=redis_settings.socket_timeout,
                    socket_connect_timeout=redis_settings.socket_connect_timeout,
                    decode_responses=True,
                )
                self._redis = Redis(connection_pool=self._pool)

            await self._redis.ping()
        except BaseRedisError as e:
            raise RedisError("Failed to connect to Redis", e) from e

        logger.info("redis_ready", prefix=self.prefix)

    async def close(self) -> None:
        """Close the Redis connection pool."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None

    @property
    def is_connected(self) -> bool:
        """Check whether a connection has been established."""
        return self._redis is not None

    def connection(self) -> Redis:
        """Return the underlying connection.

        Returns:
            The Redis client instance.

        Raises:
            RedisError: If not connected.
        """
        if self._redis is None:
            raise RedisError("Redis client not connected. Call connect() first.")
        return self._redis

    def key(self, key: str) -> str:
        """Build a namespaced key.

        Args:
            key: The original key.

        Returns:
            Key prefixed with <prefix>:
        """
        return f"{self.prefix}:{key}"

    async def ping(self) -> bool:
        """Check if Redis is reachable.

        Returns:
            True if Redis responds to ping, False otherwise.
        """
        try:
            redis = self.connection()
            await redis.ping()
            return True
        except (RedisError, BaseRedisError, OSError):
            return False


# ========== Module-level functions ==========


async def init_redis(settings: "Settings") -> RedisClient:
    """Initialize the global Redis client.

    This should be called once at application startup. The client is
    registered even when the first connection attempt fails, so the cache
    can run degraded instead of blocking startup.

    Args:
        settings: Application settings containing Redis configuration.

    Returns:
        The process-wide RedisClient.

    Raises:
        RedisError: If connection fails.
    """
    global _redis_client

    _redis_client = RedisClient(settings)
    await _redis_client.connect()
    return _redis_client


async def close_redis() -> None:
    """Close the global Redis client.

    This should be called at application shutdown.
    """
    global _redis_client

    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None


def get_redis() -> RedisClient:
    """Get the global Redis client.

    Returns:
        The RedisClient instance.

    Raises:
        RedisError: If Redis has not been initialized.
    """
    if _redis_client is None:
        raise RedisError("Redis not initialized. Call init_redis() first.")
    return _redis_client
