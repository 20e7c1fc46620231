"""Local storage backends for aperonix."""

from aperonix.infra.local.json_storage import JSONFileStorage
from aperonix.infra.local.memory_storage import InMemoryStorage

__all__ = ["InMemoryStorage", "JSONFileStorage"]
