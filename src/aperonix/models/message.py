"""Message models for aperonix.

These models represent persisted conversation messages.
"""

from enum import StrEnum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from aperonix.utils.ids import new_id

__all__ = [
    "MessageDTO",
    "MessageRole",
]


class MessageRole(StrEnum):
    """Author of a stored message.

    The provider calls the assistant side "model"; that name only exists
    on the wire and is never stored.
    """

    USER = "user"
    ASSISTANT = "assistant"


class MessageDTO(BaseModel):
    """Public Message data transfer object.

    Attributes:
        id: Message ID, unique within its session
        role: user or assistant
        content: Raw message text (empty for failed assistant turns)
        error: Failure description for assistant turns that failed
        timestamp: Creation time in epoch milliseconds
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str
    role: MessageRole
    content: str = ""
    error: str | None = None
    timestamp: int = Field(
        description="Epoch milliseconds",
        validation_alias=AliasChoices("timestamp", "ts"),
    )

    @model_validator(mode="before")
    @classmethod
    def _fill_legacy_fields(cls, data: object) -> object:
        # Older records lack ids and store content as null next to an error
        if isinstance(data, dict):
            data = {k: v for k, v in data.items() if not (k == "content" and v is None)}
            data.setdefault("id", new_id())
        return data

    @property
    def is_error(self) -> bool:
        """Check if this message records a failed turn."""
        return self.error is not None
