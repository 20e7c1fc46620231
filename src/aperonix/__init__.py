"""aperonix - Chat core for a Gemini-backed assistant.

This package provides tools for:
- Keeping multiple local conversations with durable snapshots
- Composing multi-turn Gemini requests from conversation history
- Calling Gemini with tiered model fallback and classified errors
- Rendering assistant Markdown into safe HTML
- Serving a stateless proxy that keeps the API key server-side

Example usage:
    from aperonix import Aperonix, GeminiCompletionClient, JSONFileStorage

    # Simple usage - config loaded from .env automatically
    async with Aperonix(
        storage_class=JSONFileStorage,
        completion_class=GeminiCompletionClient,
    ) as ax:
        reply = await ax.send_message("Explain async/await in Python")
        html = ax.render_message(reply)
"""

__version__ = "0.1.0"

# Errors
from aperonix.errors import (
    ApiError,
    AperonixError,
    ConfigurationError,
    NetworkError,
    NoModelAvailable,
    NotFound,
    StorageUnavailable,
    ValidationError,
)

# Implementations
from aperonix.infra.gemini.client import GeminiCompletionClient
from aperonix.infra.local.json_storage import JSONFileStorage
from aperonix.infra.local.memory_storage import InMemoryStorage
from aperonix.infra.redis.storage import RedisSnapshotStorage

# Interfaces
from aperonix.interfaces.completion import CompletionInterface
from aperonix.interfaces.storage import SnapshotStorageInterface

# Orchestrator
from aperonix.orchestrator import Aperonix

# Services
from aperonix.services.markdown import render_markdown

__all__ = [  # noqa: RUF022
    # Orchestrator
    "Aperonix",
    # Implementations
    "GeminiCompletionClient",
    "InMemoryStorage",
    "JSONFileStorage",
    "RedisSnapshotStorage",
    # Interfaces
    "CompletionInterface",
    "SnapshotStorageInterface",
    # Services
    "render_markdown",
    # Errors
    "ApiError",
    "AperonixError",
    "ConfigurationError",
    "NetworkError",
    "NoModelAvailable",
    "NotFound",
    "StorageUnavailable",
    "ValidationError",
]
