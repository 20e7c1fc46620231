"""Public DTO models for aperonix.

This module exports all public data transfer objects.
"""

from aperonix.models.chat import ChatSessionDTO
from aperonix.models.message import MessageDTO, MessageRole
from aperonix.models.provider import (
    GenerationConfig,
    Part,
    ProviderRequest,
    SafetySetting,
    SystemInstruction,
    Turn,
)
from aperonix.models.proxy import ProxyErrorResponse, ProxyMessage, ProxyRequest, ProxyResponse
from aperonix.models.state import StoreSnapshot

__all__ = [
    "ChatSessionDTO",
    "GenerationConfig",
    "MessageDTO",
    "MessageRole",
    "Part",
    "ProviderRequest",
    "ProxyErrorResponse",
    "ProxyMessage",
    "ProxyRequest",
    "ProxyResponse",
    "SafetySetting",
    "StoreSnapshot",
    "SystemInstruction",
    "Turn",
]
