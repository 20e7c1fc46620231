"""Internal Message entity for aperonix.

This module contains the internal Message domain model.
"""

from dataclasses import dataclass, field

from aperonix.models.message import MessageDTO, MessageRole
from aperonix.utils.ids import new_id, now_ms

__all__ = [
    "Message",
]


@dataclass
class Message:
    """Internal Message entity.

    This is a mutable internal representation used by the services.
    Convert to MessageDTO for persistence and external use.
    """

    role: MessageRole
    content: str = ""
    error: str | None = None
    id: str = field(default_factory=new_id)
    timestamp: int = field(default_factory=now_ms)

    @classmethod
    def user(cls, content: str) -> "Message":
        """Create a user message."""
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        """Create a successful assistant message."""
        return cls(role=MessageRole.ASSISTANT, content=content)

    @classmethod
    def failure(cls, error: str) -> "Message":
        """Create a failed assistant turn: empty content, error set."""
        return cls(role=MessageRole.ASSISTANT, error=error)

    @property
    def is_error(self) -> bool:
        """Check if this message records a failed turn."""
        return self.error is not None

    def copy(self) -> "Message":
        """Independent copy keeping the same id and timestamp."""
        return Message(
            role=self.role,
            content=self.content,
            error=self.error,
            id=self.id,
            timestamp=self.timestamp,
        )

    def to_dto(self) -> MessageDTO:
        """Convert to immutable DTO for persistence."""
        return MessageDTO(
            id=self.id,
            role=self.role,
            content=self.content,
            error=self.error,
            timestamp=self.timestamp,
        )

    @classmethod
    def from_dto(cls, dto: MessageDTO) -> "Message":
        """Create from DTO."""
        return cls(
            role=dto.role,
            content=dto.content,
            error=dto.error,
            id=dto.id,
            timestamp=dto.timestamp,
        )
