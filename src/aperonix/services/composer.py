"""Message composer service for aperonix.

This module builds provider requests from a session's message history.
"""

from collections.abc import Iterable
from enum import StrEnum

from aperonix.config import ProviderSettings
from aperonix.domain.message import Message
from aperonix.errors import ValidationError
from aperonix.logging import get_logger
from aperonix.models.message import MessageRole
from aperonix.models.provider import (
    GenerationConfig,
    Part,
    ProviderRequest,
    SafetySetting,
    SystemInstruction,
    Turn,
)

__all__ = [
    "DEFAULT_SAFETY_SETTINGS",
    "SYSTEM_ACKNOWLEDGEMENT",
    "MessageComposer",
    "SystemPromptMode",
]

logger = get_logger(__name__)

SYSTEM_ACKNOWLEDGEMENT = "Understood! I am Aperonix AI, ready to help you."

DEFAULT_SAFETY_SETTINGS = (
    SafetySetting(category="HARM_CATEGORY_HARASSMENT"),
    SafetySetting(category="HARM_CATEGORY_HATE_SPEECH"),
)


class SystemPromptMode(StrEnum):
    """Where the system prompt goes in the request.

    INSTRUCTION uses the dedicated ``system_instruction`` field.
    PREPENDED_TURN opens the conversation with the prompt as a user turn
    followed by a fixed model acknowledgement, for endpoints without
    system-instruction support. Both are equivalent for the model.
    """

    INSTRUCTION = "instruction"
    PREPENDED_TURN = "prepended_turn"


class MessageComposer:
    """Service for building ProviderRequests from conversation history.

    - Drops failed turns (any message with ``error`` set)
    - Maps user to "user" turns and assistant to "model" turns
    - Attaches the system prompt and fixed generation parameters
    - Appends the new user turn last

    The returned request is frozen; nothing downstream may change it.

    Example:
        composer = MessageComposer()
        request = composer.compose(system_prompt, session.messages, "How are you?")
    """

    def __init__(
        self,
        generation_config: GenerationConfig | None = None,
        mode: SystemPromptMode = SystemPromptMode.INSTRUCTION,
        safety_settings: tuple[SafetySetting, ...] | None = None,
    ) -> None:
        """Initialize composer.

        Args:
            generation_config: Sampling parameters (defaults: 0.8 / 40 / 0.95 / 8192)
            mode: System prompt placement
            safety_settings: Optional safety thresholds sent with every request
        """
        self._generation_config = generation_config or GenerationConfig()
        self._mode = mode
        self._safety_settings = safety_settings

    @classmethod
    def from_settings(cls, settings: ProviderSettings) -> "MessageComposer":
        """Create a composer from provider settings."""
        return cls(
            generation_config=GenerationConfig(
                temperature=settings.temperature,
                top_k=settings.top_k,
                top_p=settings.top_p,
                max_output_tokens=settings.max_output_tokens,
            ),
            mode=SystemPromptMode(settings.system_prompt_mode),
            safety_settings=DEFAULT_SAFETY_SETTINGS if settings.safety_settings_enabled else None,
        )

    @property
    def mode(self) -> SystemPromptMode:
        return self._mode

    def compose(
        self,
        system_prompt: str,
        prior_messages: Iterable[Message],
        new_user_text: str,
    ) -> ProviderRequest:
        """Build the request body for the next user turn.

        Args:
            system_prompt: Fixed assistant identity and formatting instructions
            prior_messages: Session history in canonical order
            new_user_text: Text of the new user message

        Returns:
            Frozen ProviderRequest, exactly as the completion client sends it

        Raises:
            ValidationError: If the new user text is blank
        """
        if not new_user_text.strip():
            raise ValidationError("new user message is empty")

        history = [_to_turn(m) for m in prior_messages if not m.is_error]

        contents: list[Turn] = []
        system_instruction = None
        if self._mode == SystemPromptMode.PREPENDED_TURN:
            contents.append(Turn.of("user", system_prompt))
            contents.append(Turn.of("model", SYSTEM_ACKNOWLEDGEMENT))
        else:
            system_instruction = SystemInstruction(parts=(Part(text=system_prompt),))

        contents.extend(history)
        contents.append(Turn.of("user", new_user_text))

        logger.debug(
            "request_composed",
            history_turns=len(history),
            mode=self._mode.value,
        )

        return ProviderRequest(
            contents=tuple(contents),
            generation_config=self._generation_config,
            system_instruction=system_instruction,
            safety_settings=self._safety_settings,
        )


def _to_turn(message: Message) -> Turn:
    role = "user" if message.role == MessageRole.USER else "model"
    return Turn.of(role, message.content)
