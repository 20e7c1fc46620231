"""Internal domain entities for aperonix."""

from aperonix.domain.chat import ChatSession
from aperonix.domain.message import Message

__all__ = ["ChatSession", "Message"]
