"""Utility functions for aperonix.

This module contains internal utility functions.
"""

from aperonix.utils.hashing import hash_text, short_hash
from aperonix.utils.ids import new_id, now_ms

__all__ = [
    "hash_text",
    "new_id",
    "now_ms",
    "short_hash",
]
