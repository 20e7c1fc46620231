"""Protocol interfaces for aperonix.

This module exports the contracts implemented by the infra backends.
"""

from aperonix.interfaces.completion import CompletionInterface
from aperonix.interfaces.storage import SnapshotStorageInterface

__all__ = [
    "CompletionInterface",
    "SnapshotStorageInterface",
]
