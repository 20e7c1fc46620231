"""Hashing utilities for aperonix.

Deterministic hashes are used wherever rendered output must be
byte-identical across calls (for example code-block element ids).
"""

import hashlib

__all__ = [
    "hash_text",
    "short_hash",
]


def hash_text(text: str) -> str:
    """Generate SHA256 hash of text.

    Args:
        text: Input text to hash

    Returns:
        Hexadecimal SHA256 hash string
    """
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def short_hash(*args: object, length: int = 10) -> str:
    """Generate a short stable hash from multiple arguments.

    Converts all arguments to strings and joins them with pipe separator.

    Args:
        *args: Values to include in the hash
        length: Number of hex characters to keep

    Returns:
        Truncated hexadecimal SHA256 hash string
    """
    combined = "|".join(str(arg) for arg in args)
    return hash_text(combined)[:length]
