"""Service layer for aperonix.

This module exports the main service entry points.
"""

from aperonix.services.composer import DEFAULT_SAFETY_SETTINGS, MessageComposer, SystemPromptMode
from aperonix.services.conversation_store import (
    ConversationStore,
    StoreEvent,
    StoreEventKind,
)
from aperonix.services.identity import IdentityResponder
from aperonix.services.markdown import MarkdownRenderer, render_markdown
from aperonix.services.session_controller import (
    SendState,
    SendStatusEvent,
    SessionController,
)

__all__ = [
    "DEFAULT_SAFETY_SETTINGS",
    "ConversationStore",
    "IdentityResponder",
    "MarkdownRenderer",
    "MessageComposer",
    "SendState",
    "SendStatusEvent",
    "SessionController",
    "StoreEvent",
    "StoreEventKind",
    "SystemPromptMode",
    "render_markdown",
]
