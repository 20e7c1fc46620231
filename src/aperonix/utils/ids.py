"""Identifier and clock helpers for aperonix."""

import time
import uuid

__all__ = [
    "new_id",
    "now_ms",
]


def new_id() -> str:
    """Generate an opaque unique identifier for a chat or message."""
    return uuid.uuid4().hex


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000
