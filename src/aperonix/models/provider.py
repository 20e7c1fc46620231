"""Gemini wire-format models for aperonix.

These frozen models describe the ``generateContent`` request body.
Sequences are tuples so a composed request cannot be changed after
the composer hands it to the completion client.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "GenerationConfig",
    "Part",
    "ProviderRequest",
    "SafetySetting",
    "SystemInstruction",
    "Turn",
]

_WIRE = ConfigDict(frozen=True, populate_by_name=True)


class Part(BaseModel):
    """One text part of a turn."""

    model_config = _WIRE

    text: str


class Turn(BaseModel):
    """One message in provider format (``role`` + ``parts``)."""

    model_config = _WIRE

    role: Literal["user", "model"]
    parts: tuple[Part, ...]

    @classmethod
    def of(cls, role: Literal["user", "model"], text: str) -> "Turn":
        """Create a single-part turn."""
        return cls(role=role, parts=(Part(text=text),))

    @property
    def text(self) -> str:
        """Concatenated text of all parts."""
        return "".join(part.text for part in self.parts)


class SystemInstruction(BaseModel):
    """Dedicated system-instruction field."""

    model_config = _WIRE

    parts: tuple[Part, ...]


class GenerationConfig(BaseModel):
    """Fixed generation parameters attached to every request."""

    model_config = _WIRE

    temperature: float = 0.8
    top_k: int = Field(default=40, serialization_alias="topK")
    top_p: float = Field(default=0.95, serialization_alias="topP")
    max_output_tokens: int = Field(default=8192, serialization_alias="maxOutputTokens")


class SafetySetting(BaseModel):
    """Content-safety threshold for one harm category."""

    model_config = _WIRE

    category: str
    threshold: str = "BLOCK_MEDIUM_AND_ABOVE"


class ProviderRequest(BaseModel):
    """Complete ``generateContent`` request body.

    Attributes:
        contents: Conversation turns in canonical order, new user turn last
        generation_config: Sampling parameters
        system_instruction: System prompt, unless it was prepended as turns
        safety_settings: Optional safety thresholds
    """

    model_config = _WIRE

    contents: tuple[Turn, ...]
    generation_config: GenerationConfig = Field(
        default_factory=GenerationConfig,
        serialization_alias="generationConfig",
    )
    # Sent under its snake_case name, as the provider documents it
    system_instruction: SystemInstruction | None = None
    safety_settings: tuple[SafetySetting, ...] | None = Field(
        default=None,
        serialization_alias="safetySettings",
    )

    def to_payload(self) -> dict[str, Any]:
        """JSON body exactly as sent to the provider."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
