"""In-memory storage for aperonix.

Keeps the serialized records in a dict, exactly as a key-value store
would. Used for ephemeral sessions and tests.
"""

from typing import Any, Self

from aperonix.interfaces.storage import SnapshotStorageInterface
from aperonix.models.state import StoreSnapshot

__all__ = [
    "InMemoryStorage",
]


class InMemoryStorage(SnapshotStorageInterface):
    """Snapshot storage that lives as long as the process."""

    config_class = None

    def __init__(
        self,
        records: dict[str, str] | None = None,
        key_prefix: str = "aperonix-",
    ) -> None:
        """Initialize storage.

        Args:
            records: Pre-existing raw records, keyed like localStorage
            key_prefix: Prefix of the record keys
        """
        self.records: dict[str, str] = dict(records or {})
        self._prefix = key_prefix
        self.save_count = 0

    @classmethod
    async def from_dict(cls, config: dict[str, Any]) -> Self:
        """Factory method for custom config dict."""
        return cls(
            records=config.get("records"),
            key_prefix=config.get("key_prefix", "aperonix-"),
        )

    @property
    def chats_key(self) -> str:
        return f"{self._prefix}chats"

    @property
    def active_key(self) -> str:
        return f"{self._prefix}active"

    @property
    def theme_key(self) -> str:
        return f"{self._prefix}theme"

    async def load(self) -> StoreSnapshot:
        """Load the snapshot from the raw records."""
        return StoreSnapshot.from_records(
            chats=self.records.get(self.chats_key),
            active_chat_id=self.records.get(self.active_key),
            theme=self.records.get(self.theme_key),
        )

    async def save(self, snapshot: StoreSnapshot) -> bool:
        """Replace all records with ``snapshot``."""
        records = {
            self.chats_key: snapshot.chats_record(),
            self.theme_key: snapshot.theme,
        }
        if snapshot.active_chat_id:
            records[self.active_key] = snapshot.active_chat_id
        self.records = records
        self.save_count += 1
        return True

    async def close(self) -> None:
        """Close resources (no-op for memory storage)."""
        pass
