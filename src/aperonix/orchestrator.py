"""Aperonix orchestrator for high-level chat operations.

This module provides the main entry point for the aperonix package,
wiring storage, the completion client and the chat services together.
"""

from typing import Any

from aperonix.config import AperonixConfig
from aperonix.infra.gemini.client import GeminiCompletionClient
from aperonix.infra.local.json_storage import JSONFileStorage
from aperonix.infra.local.memory_storage import InMemoryStorage
from aperonix.infra.redis.storage import RedisSnapshotStorage
from aperonix.interfaces.completion import CompletionInterface
from aperonix.interfaces.storage import SnapshotStorageInterface
from aperonix.logging import get_logger
from aperonix.models.chat import ChatSessionDTO
from aperonix.models.message import MessageDTO
from aperonix.services.composer import MessageComposer
from aperonix.services.conversation_store import ConversationStore
from aperonix.services.identity import IdentityResponder
from aperonix.services.markdown import MarkdownRenderer
from aperonix.services.session_controller import SessionController

__all__ = ["Aperonix"]

logger = get_logger(__name__)

_STORAGE_BACKENDS: dict[str, type[SnapshotStorageInterface]] = {
    "file": JSONFileStorage,
    "memory": InMemoryStorage,
    "redis": RedisSnapshotStorage,
}


class Aperonix:
    """Main orchestrator for aperonix chat sessions.

    Accepts implementation classes. Config is loaded from .env automatically.
    Without a storage class the backend named by ``APERONIX_STORAGE_BACKEND``
    is used. For custom implementations, set config_class = None and pass a
    custom config dict.

    Example:
        async with Aperonix(completion_class=GeminiCompletionClient) as ax:
            chat = await ax.new_chat()
            reply = await ax.send_message("Hello!")
            html = ax.render_message(reply)
    """

    def __init__(
        self,
        storage_class: type[SnapshotStorageInterface] | None = None,
        completion_class: type[CompletionInterface] = GeminiCompletionClient,
        *,
        config: AperonixConfig | None = None,
        storage_custom_config: dict[str, Any] | None = None,
        completion_custom_config: dict[str, Any] | None = None,
    ) -> None:
        """Initialize Aperonix with implementation classes.

        Args:
            storage_class: Snapshot storage implementation class
            completion_class: Completion implementation class
            config: Aggregate settings (loaded from .env when omitted)
            storage_custom_config: Custom config dict if storage_class.config_class is None
            completion_custom_config: Custom config dict if
                completion_class.config_class is None
        """
        self._config = config or AperonixConfig()

        if storage_class is None:
            storage_class = _STORAGE_BACKENDS[self._config.storage.backend]
            if storage_class is InMemoryStorage and storage_custom_config is None:
                storage_custom_config = {"key_prefix": self._config.storage.key_prefix}

        self._storage_class = storage_class
        self._completion_class = completion_class
        self._storage_custom_config = storage_custom_config
        self._completion_custom_config = completion_custom_config

        # Instances (created on connect)
        self._storage: SnapshotStorageInterface | None = None
        self._client: CompletionInterface | None = None

        # Services (wired on connect)
        self._store: ConversationStore | None = None
        self._controller: SessionController | None = None
        self._renderer = MarkdownRenderer()

        self._connected = False

    async def _instantiate_class(
        self,
        cls: type,
        custom_config: dict[str, Any] | None,
    ) -> Any:
        """Instantiate an implementation class.

        If cls.config_class is set, the matching section of the aggregate
        config is used (or a fresh settings object loaded from .env).
        If cls.config_class is None, use custom_config dict.
        """
        config_class = getattr(cls, "config_class", None)

        if config_class is None:
            if custom_config is None:
                raise ValueError(
                    f"{cls.__name__} has config_class=None but no custom_config provided"
                )
            return await cls.from_dict(custom_config)

        if custom_config is not None:
            return await cls.from_dict(custom_config)
        return await cls.from_config(self._section(config_class))

    def _section(self, config_class: type) -> Any:
        for section in (
            self._config.provider,
            self._config.storage,
            self._config.redis,
            self._config.identity,
        ):
            if isinstance(section, config_class):
                return section
        return config_class()

    async def _connect(self) -> None:
        """Initialize connections and services."""
        if self._connected:
            return

        self._storage = await self._instantiate_class(
            self._storage_class, self._storage_custom_config
        )
        self._client = await self._instantiate_class(
            self._completion_class, self._completion_custom_config
        )

        self._store = ConversationStore(
            self._storage,
            title_max_length=self._config.title_max_length,
        )
        await self._store.load()

        self._controller = SessionController(
            self._store,
            MessageComposer.from_settings(self._config.provider),
            self._client,
            self._config.system_prompt,
            identity=IdentityResponder(self._config.identity),
        )

        self._connected = True
        logger.info(
            "aperonix_connected",
            storage=type(self._storage).__name__,
            completion=type(self._client).__name__,
        )

    async def _disconnect(self) -> None:
        """Close all connections."""
        if self._storage and hasattr(self._storage, "close"):
            await self._storage.close()
        if self._client and hasattr(self._client, "close"):
            await self._client.close()

        self._connected = False
        logger.info("aperonix_disconnected")

    async def __aenter__(self) -> "Aperonix":
        """Async context manager entry - connects automatically."""
        await self._connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Async context manager exit - disconnects automatically."""
        await self._disconnect()

    def _ensure_connected(self) -> None:
        if not self._connected:
            raise RuntimeError("Aperonix not connected. Use 'async with Aperonix(...) as ax:'")

    # === SERVICES ===

    @property
    def store(self) -> ConversationStore:
        self._ensure_connected()
        assert self._store is not None
        return self._store

    @property
    def controller(self) -> SessionController:
        self._ensure_connected()
        assert self._controller is not None
        return self._controller

    @property
    def renderer(self) -> MarkdownRenderer:
        return self._renderer

    # === CHAT OPERATIONS ===

    async def send_message(self, text: str, chat_id: str | None = None) -> MessageDTO | None:
        """Send a user message to a chat (the active one by default).

        Returns:
            The assistant reply (with ``error`` set on failure), or None
            if the send was rejected
        """
        reply = await self.controller.send(text, chat_id)
        return reply.to_dto() if reply is not None else None

    async def new_chat(self) -> ChatSessionDTO:
        return (await self.store.create_session()).to_dto()

    async def select_chat(self, chat_id: str) -> ChatSessionDTO:
        return (await self.store.select_session(chat_id)).to_dto()

    async def delete_chat(self, chat_id: str) -> None:
        await self.store.delete_session(chat_id)

    async def duplicate_chat(
        self,
        chat_id: str,
        up_to_message_id: str | None = None,
    ) -> ChatSessionDTO:
        return (await self.store.duplicate_session(chat_id, up_to_message_id)).to_dto()

    async def rename_chat(self, chat_id: str, title: str) -> ChatSessionDTO:
        return (await self.store.rename_session(chat_id, title)).to_dto()

    def list_chats(self) -> list[ChatSessionDTO]:
        """All chats, most recent first."""
        return [s.to_dto() for s in self.store.sessions]

    def get_chat(self, chat_id: str | None = None) -> ChatSessionDTO:
        """A chat by ID, or the active chat."""
        if chat_id is None:
            return self.store.active_session.to_dto()
        return self.store.get_session(chat_id).to_dto()

    def render_message(self, message: MessageDTO) -> str:
        """HTML fragment for a message.

        Assistant content goes through the Markdown renderer; user text
        and error descriptions are only escaped.
        """
        if message.error is not None:
            error_html = self._renderer.render_plain(message.error)
            return f'<div class="message-error">{error_html}</div>'
        if message.role == "assistant":
            return self._renderer.render(message.content)
        return self._renderer.render_plain(message.content)
