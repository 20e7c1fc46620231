"""Shared test fixtures for aperonix.

This module provides pytest fixtures used across all tests.
"""

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from aperonix.domain.message import Message
from aperonix.infra.gemini.client import GeminiCompletionClient
from aperonix.infra.local.memory_storage import InMemoryStorage
from aperonix.models.chat import ChatSessionDTO
from aperonix.models.message import MessageDTO, MessageRole
from aperonix.services.conversation_store import ConversationStore
from tests.mocks.mock_gemini import MockGemini

TEST_MODELS = ["model-a", "model-b", "model-c"]


class FakeClock:
    """Deterministic epoch-millisecond clock that ticks on every read."""

    def __init__(self, start: int = 1_704_067_200_000, step: int = 1_000) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value


# Mock fixtures
@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest_asyncio.fixture
async def store(memory_storage: InMemoryStorage, clock: FakeClock) -> ConversationStore:
    """Loaded store over empty in-memory storage."""
    store = ConversationStore(memory_storage, clock=clock)
    await store.load()
    return store


@pytest.fixture
def gemini() -> MockGemini:
    return MockGemini()


@pytest_asyncio.fixture
async def gemini_client(gemini: MockGemini) -> AsyncIterator[GeminiCompletionClient]:
    """Client with three fallback candidates talking to the mock endpoint."""
    http = gemini.client()
    yield GeminiCompletionClient("test-key", TEST_MODELS, http_client=http)
    await http.aclose()


@pytest.fixture
def mock_completion() -> AsyncMock:
    """Create mock completion interface."""
    completion = AsyncMock()
    completion.complete.return_value = "Hello from the model"
    return completion


# Sample data fixtures
@pytest.fixture
def sample_history() -> list[Message]:
    """Create sample conversation with one failed turn."""
    return [
        Message(role=MessageRole.USER, content="How do I write async code in Python?", timestamp=1),
        Message(role=MessageRole.ASSISTANT, content="Use async def and await.", timestamp=2),
        Message(role=MessageRole.USER, content="Show me an example", timestamp=3),
        Message(role=MessageRole.ASSISTANT, error="Network error", timestamp=4),
    ]


@pytest.fixture
def sample_chat_dto() -> ChatSessionDTO:
    """Create sample ChatSessionDTO."""
    return ChatSessionDTO(
        id="chat-1",
        title="Python asyncio",
        messages=(
            MessageDTO(id="m1", role=MessageRole.USER, content="What is asyncio?", timestamp=10),
            MessageDTO(id="m2", role=MessageRole.ASSISTANT, content="A library.", timestamp=20),
        ),
        created_at=5,
        updated_at=20,
    )
