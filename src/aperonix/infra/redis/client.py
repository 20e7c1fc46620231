"""Redis client for aperonix.

This module provides an optional async Redis client wrapper used as
a durable key-value store for conversation snapshots. If Redis is not
configured or unreachable, operations fail gracefully and report it.
"""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from aperonix.config import RedisSettings
from aperonix.errors import StorageUnavailable
from aperonix.logging import get_logger
from aperonix.utils.lazy_import import lazy_import

if TYPE_CHECKING:
    from redis.asyncio import Redis

__all__ = [
    "RedisClient",
]

logger = get_logger(__name__)

get_async_redis = lazy_import("redis.asyncio", "Redis")


class RedisClient:
    """Async Redis client wrapper (optional).

    Example:
        client = RedisClient(settings)
        if await client.connect():
            await client.set_many({"a": "1", "b": "2"})
            values = await client.get_many(["a", "b"])
        await client.disconnect()
    """

    def __init__(self, settings: RedisSettings, redis: "Redis | None" = None) -> None:
        """Initialize client with settings.

        Args:
            settings: Redis connection settings
            redis: Pre-built connection (tests, shared pools)
        """
        self._settings = settings
        self._redis = redis
        self._connected = redis is not None

    @property
    def is_enabled(self) -> bool:
        """Check if Redis is enabled in configuration."""
        return self._settings.enabled and self._settings.url is not None

    @property
    def is_connected(self) -> bool:
        """Check if connected to Redis."""
        return self._connected

    async def connect(self) -> bool:
        """Initialize connection to Redis.

        Returns:
            True if connected successfully, False otherwise
        """
        if self._redis is not None:
            return self._connected

        if not self.is_enabled:
            logger.info("redis_disabled", reason="not configured")
            return False

        try:
            Redis = get_async_redis()  # noqa: N806
            self._redis = Redis.from_url(  # type: ignore[attr-defined]
                self._settings.url,
                decode_responses=True,
            )
            await self._redis.ping()
            self._connected = True
            logger.info("connected_to_redis")
            return True
        except Exception as e:
            logger.warning(
                "redis_connection_failed",
                error=str(e),
                reason="Redis unavailable, conversations will not be persisted",
            )
            self._redis = None
            self._connected = False
            return False

    async def disconnect(self) -> None:
        """Close connection to Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self._connected = False
            logger.info("disconnected_from_redis")

    async def get_many(self, keys: Sequence[str]) -> list[str | None]:
        """Get several values in one round trip.

        Args:
            keys: Keys to read

        Returns:
            Values in key order; None for missing keys or when not connected

        Raises:
            StorageUnavailable: If connected but the read failed
        """
        if not self._connected or not self._redis:
            return [None] * len(keys)
        try:
            return list(await self._redis.mget(list(keys)))
        except Exception as e:
            logger.warning("redis_get_error", keys=list(keys), error=str(e))
            raise StorageUnavailable(str(e) or type(e).__name__) from e

    async def set_many(
        self,
        values: Mapping[str, str],
        delete: Sequence[str] = (),
    ) -> bool:
        """Write and delete keys in a single MULTI/EXEC transaction.

        Args:
            values: Keys to set
            delete: Keys to remove in the same transaction

        Returns:
            True if the transaction committed, False otherwise
        """
        if not self._connected or not self._redis:
            return False
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.mset(dict(values))
                if delete:
                    pipe.delete(*delete)
                await pipe.execute()
            return True
        except Exception as e:
            logger.warning("redis_set_error", keys=list(values), error=str(e))
            return False

    async def __aenter__(self) -> "RedisClient":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.disconnect()
