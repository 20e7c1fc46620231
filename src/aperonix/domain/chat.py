"""Internal ChatSession entity for aperonix.

This module contains the internal chat session domain model with
its title and ordering rules.
"""

from dataclasses import dataclass, field

from aperonix.domain.message import Message
from aperonix.models.chat import ChatSessionDTO
from aperonix.models.message import MessageRole
from aperonix.utils.ids import new_id, now_ms

__all__ = [
    "PLACEHOLDER_TITLE",
    "ChatSession",
    "derive_title",
]

PLACEHOLDER_TITLE = "New Chat"
ELLIPSIS = "…"


def derive_title(text: str, max_length: int = 48) -> str:
    """Build a session title from the leading characters of a message.

    Args:
        text: Message text
        max_length: Characters kept before the ellipsis marker

    Returns:
        Title, or the placeholder if the text is blank
    """
    collapsed = " ".join(text.split())
    if not collapsed:
        return PLACEHOLDER_TITLE
    if len(collapsed) > max_length:
        return collapsed[:max_length].rstrip() + ELLIPSIS
    return collapsed


@dataclass
class ChatSession:
    """Internal chat session entity with business logic.

    This is a mutable internal representation owned by the conversation
    store. Convert to ChatSessionDTO for persistence and external use.
    """

    id: str = field(default_factory=new_id)
    title: str = PLACEHOLDER_TITLE
    title_locked: bool = False
    messages: list[Message] = field(default_factory=list)
    created_at: int = field(default_factory=now_ms)
    updated_at: int | None = None

    def __post_init__(self) -> None:
        if self.updated_at is None:
            self.updated_at = self.created_at

    @property
    def has_placeholder_title(self) -> bool:
        return self.title == PLACEHOLDER_TITLE and not self.title_locked

    @property
    def last_timestamp(self) -> int | None:
        return self.messages[-1].timestamp if self.messages else None

    def append(self, message: Message, now: int, title_max_length: int = 48) -> Message:
        """Append a message at the end of the conversation.

        The message timestamp is clamped so timestamps never decrease in
        message order. The title is derived from the first user message
        while it is still the placeholder.

        Args:
            message: Message to append (mutated in place when clamped)
            now: Current time in epoch milliseconds
            title_max_length: Title length before truncation

        Returns:
            The appended message
        """
        last = self.last_timestamp
        if last is not None and message.timestamp < last:
            message.timestamp = last

        if not self.messages and message.role == MessageRole.USER and self.has_placeholder_title:
            self.title = derive_title(message.content, title_max_length)

        self.messages.append(message)
        self.touch(max(now, message.timestamp))
        return message

    def rename(self, new_title: str, now: int) -> bool:
        """Set a user-chosen title. Blank titles are ignored.

        Returns:
            True if the title changed
        """
        title = new_title.strip()
        if not title:
            return False
        self.title = title
        self.title_locked = True
        self.touch(now)
        return True

    def touch(self, now: int) -> None:
        """Refresh ``updated_at`` without ever moving it backwards."""
        self.updated_at = max(self.updated_at or now, now)

    def duplicate(self, now: int, up_to_message_id: str | None = None) -> "ChatSession":
        """Create an independent copy of this session.

        Messages are deep-copied, so mutating the copy never affects the
        source. With ``up_to_message_id`` the copy ends at that message.

        Args:
            now: Creation time of the copy in epoch milliseconds
            up_to_message_id: Last message to keep, or None for all

        Returns:
            New session titled "<title> (copy)"

        Raises:
            ValueError: If up_to_message_id is not in this session
        """
        messages = self.messages
        if up_to_message_id is not None:
            index = next(
                (i for i, m in enumerate(messages) if m.id == up_to_message_id),
                None,
            )
            if index is None:
                raise ValueError(f"message {up_to_message_id} not in session {self.id}")
            messages = messages[: index + 1]

        return ChatSession(
            title=f"{self.title} (copy)",
            title_locked=self.title_locked,
            messages=[m.copy() for m in messages],
            created_at=now,
        )

    def find_message(self, message_id: str) -> Message | None:
        return next((m for m in self.messages if m.id == message_id), None)

    def to_dto(self) -> ChatSessionDTO:
        """Convert to immutable DTO for persistence."""
        return ChatSessionDTO(
            id=self.id,
            title=self.title,
            title_locked=self.title_locked,
            messages=tuple(m.to_dto() for m in self.messages),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_dto(cls, dto: ChatSessionDTO) -> "ChatSession":
        """Create from DTO."""
        return cls(
            id=dto.id,
            title=dto.title,
            title_locked=dto.title_locked,
            messages=[Message.from_dto(m) for m in dto.messages],
            created_at=dto.created_at,
            updated_at=dto.updated_at,
        )
