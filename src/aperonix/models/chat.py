"""Chat session models for aperonix.

These models represent persisted chat sessions.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from aperonix.models.message import MessageDTO

__all__ = [
    "ChatSessionDTO",
]


class ChatSessionDTO(BaseModel):
    """Public chat session data transfer object.

    Serialized with camelCase keys so records written by the browser
    client (``createdAt``, ``updatedAt``) load unchanged.

    Attributes:
        id: Opaque session ID, immutable
        title: Human-readable label
        title_locked: True once the user renamed the session
        messages: Messages in canonical conversation order
        created_at: Creation time in epoch milliseconds
        updated_at: Last mutation time in epoch milliseconds
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str
    title: str = "New Chat"
    title_locked: bool = False
    messages: tuple[MessageDTO, ...] = Field(default_factory=tuple)
    created_at: int = Field(description="Epoch milliseconds")
    updated_at: int | None = Field(default=None, description="Epoch milliseconds")

    @property
    def message_count(self) -> int:
        """Get the number of messages in this session."""
        return len(self.messages)
