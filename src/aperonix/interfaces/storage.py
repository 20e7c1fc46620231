"""Storage interface for aperonix.

This module defines the Protocol for durable snapshot persistence
of the conversation store.
"""

from typing import ClassVar, Protocol, runtime_checkable

from aperonix.models.state import StoreSnapshot

__all__ = [
    "SnapshotStorageInterface",
]


@runtime_checkable
class SnapshotStorageInterface(Protocol):
    """Contract for full-snapshot persistence.

    There is no incremental persistence: every save replaces the whole
    stored state, and must be atomic with respect to the snapshot it is
    given. Loaders must never raise on absent or malformed data; a
    backend that holds state it cannot currently read raises
    StorageUnavailable instead of reporting an empty store.
    """

    config_class: ClassVar[type | None] = None

    async def load(self) -> StoreSnapshot:
        """Load the persisted snapshot.

        Returns:
            The stored snapshot, or an empty one if nothing usable is stored

        Raises:
            StorageUnavailable: If the backend could not be read
        """
        ...

    async def save(self, snapshot: StoreSnapshot) -> bool:
        """Replace the persisted state with ``snapshot``.

        Args:
            snapshot: Full store snapshot

        Returns:
            True if the snapshot was written
        """
        ...

    async def close(self) -> None:
        """Release any held resources."""
        ...
