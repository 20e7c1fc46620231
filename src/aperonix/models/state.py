"""Persisted store snapshot for aperonix.

The whole conversation store is saved as one snapshot after every
mutation. Loaders never fail on bad data: see ``StoreSnapshot.from_records``.
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from aperonix.logging import get_logger
from aperonix.models.chat import ChatSessionDTO

__all__ = [
    "DEFAULT_THEME",
    "StoreSnapshot",
]

logger = get_logger(__name__)

DEFAULT_THEME = "midnight"


class StoreSnapshot(BaseModel):
    """Full snapshot of the conversation store.

    Attributes:
        chats: Sessions, most recent first
        active_chat_id: ID of the active session, if any
        theme: Selected theme identifier, carried through unchanged
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    chats: tuple[ChatSessionDTO, ...] = Field(default_factory=tuple)
    active_chat_id: str | None = None
    theme: str = DEFAULT_THEME

    @classmethod
    def empty(cls) -> "StoreSnapshot":
        """Snapshot used when nothing has been persisted yet."""
        return cls()

    def chats_record(self) -> str:
        """Serialize the session collection record."""
        return json.dumps(
            [chat.model_dump(mode="json", by_alias=True) for chat in self.chats],
            ensure_ascii=False,
        )

    @classmethod
    def from_records(
        cls,
        chats: str | list[Any] | dict[str, Any] | None,
        active_chat_id: str | None,
        theme: str | None,
    ) -> "StoreSnapshot":
        """Build a snapshot from the three raw key-value records.

        Absent or malformed records fall back to empty defaults. A single
        malformed chat is dropped without discarding the others.

        Args:
            chats: JSON list of serialized sessions, or the decoded list
            active_chat_id: Active session ID record
            theme: Theme preference record

        Returns:
            StoreSnapshot built from whatever could be parsed
        """
        if not (isinstance(active_chat_id, str) and active_chat_id):
            active_chat_id = None
        return cls(
            chats=tuple(_parse_chats(chats)),
            active_chat_id=active_chat_id,
            theme=theme if isinstance(theme, str) and theme else DEFAULT_THEME,
        )


def _parse_chats(raw: str | list[Any] | dict[str, Any] | None) -> list[ChatSessionDTO]:
    if not raw:
        return []

    data: Any = raw
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("chats_record_malformed", error=str(e))
            return []

    # Keyed-by-id objects are accepted too
    if isinstance(data, dict):
        data = list(data.values())
    if not isinstance(data, list):
        logger.warning("chats_record_malformed", error="expected a list")
        return []

    chats: list[ChatSessionDTO] = []
    seen: set[str] = set()
    for item in data:
        try:
            chat = ChatSessionDTO.model_validate(item)
        except PydanticValidationError as e:
            logger.warning("chat_record_dropped", error=str(e))
            continue
        if chat.id in seen:
            logger.warning("chat_record_dropped", chat_id=chat.id, error="duplicate id")
            continue
        seen.add(chat.id)
        chats.append(chat)
    return chats
