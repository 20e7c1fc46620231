"""Completion interface for aperonix.

This module defines the Protocol for turning a composed provider
request into assistant text.
"""

from typing import ClassVar, Protocol, runtime_checkable

from aperonix.models.provider import ProviderRequest

__all__ = [
    "CompletionInterface",
]


@runtime_checkable
class CompletionInterface(Protocol):
    """Contract for language-model completions.

    Implementations raise the classified errors from ``aperonix.errors``
    (NetworkError, ApiError, NoModelAvailable, ConfigurationError).
    """

    config_class: ClassVar[type | None] = None

    async def complete(self, request: ProviderRequest) -> str:
        """Send a composed request and return the completion text.

        Args:
            request: Request body built by the message composer

        Returns:
            Assistant text
        """
        ...

    async def close(self) -> None:
        """Release any held resources."""
        ...
