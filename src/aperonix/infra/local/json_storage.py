"""JSON file storage for aperonix.

This module persists the conversation store as one JSON document.
Writes go to a temporary file that atomically replaces the previous
document, so a crash never leaves a half-written state behind.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Self

from aperonix.config import StorageSettings
from aperonix.interfaces.storage import SnapshotStorageInterface
from aperonix.logging import get_logger
from aperonix.models.state import StoreSnapshot

__all__ = [
    "JSONFileStorage",
]

logger = get_logger(__name__)


class JSONFileStorage(SnapshotStorageInterface):
    """Snapshot storage backed by a local JSON file.

    The document holds the same three records the browser keeps in
    localStorage: ``chats``, ``activeChatId`` and ``theme``.

    Example:
        storage = JSONFileStorage(Path("~/.aperonix/state.json"))
        snapshot = await storage.load()
        await storage.save(snapshot)
    """

    config_class = StorageSettings

    def __init__(self, path: Path | str) -> None:
        """Initialize storage.

        Args:
            path: Location of the JSON document (``~`` is expanded)
        """
        self._path = Path(path).expanduser()
        self._lock = asyncio.Lock()

    @classmethod
    async def from_config(cls, config: StorageSettings) -> Self:
        """Factory method for Aperonix instantiation."""
        return cls(config.path)

    @classmethod
    async def from_dict(cls, config: dict[str, Any]) -> Self:
        """Factory method for custom config dict."""
        return cls(StorageSettings(**config).path)

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> StoreSnapshot:
        """Load the snapshot, falling back to empty defaults."""
        async with self._lock:
            raw = await asyncio.to_thread(self._read)

        if raw is None:
            return StoreSnapshot.empty()

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("snapshot_load_failed", path=str(self._path), error=str(e))
            return StoreSnapshot.empty()

        if not isinstance(document, dict):
            logger.warning("snapshot_load_failed", path=str(self._path), error="not an object")
            return StoreSnapshot.empty()

        return StoreSnapshot.from_records(
            chats=document.get("chats"),
            active_chat_id=document.get("activeChatId"),
            theme=document.get("theme"),
        )

    async def save(self, snapshot: StoreSnapshot) -> bool:
        """Atomically replace the JSON document with ``snapshot``."""
        payload = json.dumps(
            snapshot.model_dump(mode="json", by_alias=True),
            ensure_ascii=False,
            indent=2,
        )
        async with self._lock:
            try:
                await asyncio.to_thread(self._write, payload)
            except OSError as e:
                logger.error("snapshot_save_failed", path=str(self._path), error=str(e))
                return False

        logger.debug("snapshot_saved", path=str(self._path), chats=len(snapshot.chats))
        return True

    async def close(self) -> None:
        """Close resources (no-op for file storage)."""
        pass

    def _read(self) -> str | None:
        try:
            return self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("snapshot_load_failed", path=str(self._path), error=str(e))
            return None

    def _write(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
