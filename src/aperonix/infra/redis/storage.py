"""Redis snapshot storage for aperonix.

The three records (chats, active id, theme) live under separate keys,
mirroring the browser's localStorage layout, and are always written
together in one transaction.
"""

from typing import Any, Self

from aperonix.config import RedisSettings, StorageSettings
from aperonix.errors import StorageUnavailable
from aperonix.infra.redis.client import RedisClient
from aperonix.interfaces.storage import SnapshotStorageInterface
from aperonix.logging import get_logger
from aperonix.models.state import StoreSnapshot

__all__ = [
    "RedisSnapshotStorage",
]

logger = get_logger(__name__)


class RedisSnapshotStorage(SnapshotStorageInterface):
    """Snapshot storage backed by Redis."""

    config_class = StorageSettings

    def __init__(self, client: RedisClient, key_prefix: str = "aperonix-") -> None:
        """Initialize storage.

        Args:
            client: Redis client wrapper (connected lazily on first load)
            key_prefix: Prefix of the record keys
        """
        self._client = client
        self._prefix = key_prefix

    @classmethod
    async def from_config(cls, config: StorageSettings) -> Self:
        """Factory method for Aperonix instantiation."""
        client = RedisClient(RedisSettings())
        await client.connect()
        return cls(client, key_prefix=config.key_prefix)

    @classmethod
    async def from_dict(cls, config: dict[str, Any]) -> Self:
        """Factory method for custom config dict (``url``, ``key_prefix``)."""
        client = RedisClient(RedisSettings(url=config.get("url")))
        await client.connect()
        return cls(client, key_prefix=config.get("key_prefix", "aperonix-"))

    @property
    def keys(self) -> tuple[str, str, str]:
        """Keys of the chats, active id and theme records."""
        return (f"{self._prefix}chats", f"{self._prefix}active", f"{self._prefix}theme")

    async def load(self) -> StoreSnapshot:
        """Load the snapshot from the three records.

        Raises:
            StorageUnavailable: If Redis is configured but could not be read
        """
        if not self._client.is_connected and not await self._client.connect():
            if self._client.is_enabled:
                raise StorageUnavailable("Redis is configured but unreachable")
        chats, active, theme = await self._client.get_many(self.keys)
        return StoreSnapshot.from_records(chats=chats, active_chat_id=active, theme=theme)

    async def save(self, snapshot: StoreSnapshot) -> bool:
        """Write all records in one transaction."""
        chats_key, active_key, theme_key = self.keys
        values = {chats_key: snapshot.chats_record(), theme_key: snapshot.theme}
        delete: list[str] = []
        if snapshot.active_chat_id:
            values[active_key] = snapshot.active_chat_id
        else:
            delete.append(active_key)

        saved = await self._client.set_many(values, delete=delete)
        if not saved:
            logger.warning("snapshot_save_failed", backend="redis")
        return saved

    async def close(self) -> None:
        """Disconnect from Redis."""
        await self._client.disconnect()
