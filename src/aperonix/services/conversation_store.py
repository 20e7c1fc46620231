"""Conversation store service for aperonix.

This module owns the in-memory collection of chat sessions and writes
a full snapshot to the configured storage after every mutation.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from aperonix.domain.chat import ChatSession
from aperonix.domain.message import Message
from aperonix.errors import NotFound, StorageUnavailable
from aperonix.interfaces.storage import SnapshotStorageInterface
from aperonix.logging import get_logger
from aperonix.models.state import DEFAULT_THEME, StoreSnapshot
from aperonix.utils.ids import now_ms

__all__ = [
    "ConversationStore",
    "StoreEvent",
    "StoreEventKind",
    "StoreListener",
]

logger = get_logger(__name__)


class StoreEventKind(StrEnum):
    """Kinds of store change notifications."""

    LOADED = "loaded"
    CREATED = "created"
    SELECTED = "selected"
    DELETED = "deleted"
    DUPLICATED = "duplicated"
    RENAMED = "renamed"
    MESSAGE_APPENDED = "message_appended"


@dataclass(frozen=True)
class StoreEvent:
    """Change notification delivered to subscribers after a save."""

    kind: StoreEventKind
    session_id: str | None
    active_chat_id: str | None


StoreListener = Callable[[StoreEvent], None]


class ConversationStore:
    """In-memory chat sessions with durable full-snapshot persistence.

    Invariants:
    - after ``load()`` at least one session always exists
    - ``active_chat_id`` always references an existing session
    - sessions are ordered most recent first; duplicates sit right
      after their source

    Every mutation finishes in memory before its first await, and the
    snapshot it saves is taken at that point, so saves never observe a
    half-applied change. Saves are written in mutation order.

    Example:
        store = ConversationStore(JSONFileStorage(path))
        await store.load()
        session = await store.create_session()
        await store.append_message(session.id, Message.user("Hi"))
    """

    def __init__(
        self,
        storage: SnapshotStorageInterface,
        *,
        clock: Callable[[], int] = now_ms,
        title_max_length: int = 48,
    ) -> None:
        """Initialize store.

        Args:
            storage: Snapshot persistence backend
            clock: Source of epoch-millisecond timestamps
            title_max_length: Characters kept when deriving titles
        """
        self._storage = storage
        self._clock = clock
        self._title_max_length = title_max_length

        self._sessions: list[ChatSession] = []
        self._active_id: str | None = None
        self._theme = DEFAULT_THEME
        self._listeners: list[StoreListener] = []
        self._save_lock = asyncio.Lock()
        self._loaded = False
        self._persistent = True

    # === LIFECYCLE ===

    async def load(self) -> None:
        """Load persisted state and restore the store invariants.

        A stale active id falls back to the first session; an empty
        store gets a fresh session. Either repair is persisted.

        If the storage cannot be read, the store starts from a fresh
        session and stops saving, so the unread state is never
        overwritten. A later successful ``load()`` resumes saving.
        """
        try:
            snapshot = await self._storage.load()
            self._persistent = True
        except StorageUnavailable as e:
            logger.error("store_load_failed", error=e.message, action="saving disabled")
            snapshot = StoreSnapshot.empty()
            self._persistent = False
        self._sessions = [ChatSession.from_dto(dto) for dto in snapshot.chats]
        self._active_id = snapshot.active_chat_id
        self._theme = snapshot.theme
        self._loaded = True

        repaired = False
        if not self._sessions:
            self._sessions.insert(0, self._new_session())
            repaired = True
        if self._find(self._active_id) is None:
            if self._active_id is not None:
                logger.info("stale_active_chat", chat_id=self._active_id)
            self._active_id = self._sessions[0].id
            repaired = True

        logger.info(
            "store_loaded",
            sessions=len(self._sessions),
            active_chat_id=self._active_id,
            persistent=self._persistent,
        )

        if repaired:
            await self.save()
        self._notify(StoreEvent(StoreEventKind.LOADED, self._active_id, self._active_id))

    def snapshot(self) -> StoreSnapshot:
        """Full immutable snapshot of the current state."""
        return StoreSnapshot(
            chats=tuple(s.to_dto() for s in self._sessions),
            active_chat_id=self._active_id,
            theme=self._theme,
        )

    async def save(self) -> bool:
        """Persist a full snapshot of the current state.

        Returns:
            True if written; False on failure or while saving is disabled
        """
        if not self._persistent:
            return False
        snapshot = self.snapshot()
        async with self._save_lock:
            return await self._storage.save(snapshot)

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # === READ ACCESS ===

    @property
    def sessions(self) -> tuple[ChatSession, ...]:
        """Sessions, most recent first. Treat as read-only."""
        return tuple(self._sessions)

    @property
    def active_chat_id(self) -> str | None:
        return self._active_id

    @property
    def active_session(self) -> ChatSession:
        """The active session."""
        self._ensure_loaded()
        session = self._find(self._active_id)
        assert session is not None
        return session

    @property
    def theme(self) -> str:
        return self._theme

    @property
    def is_persistent(self) -> bool:
        """False while saving is disabled after an unreadable load."""
        return self._persistent

    def get_session(self, session_id: str) -> ChatSession:
        """Get a session by ID.

        Raises:
            NotFound: If no session has this ID
        """
        session = self._find(session_id)
        if session is None:
            raise NotFound(session_id)
        return session

    # === MUTATIONS ===

    async def create_session(self) -> ChatSession:
        """Create an empty session at the front and make it active."""
        self._ensure_loaded()
        session = self._new_session()
        self._sessions.insert(0, session)
        self._active_id = session.id

        logger.info("chat_created", chat_id=session.id)
        await self._commit(StoreEventKind.CREATED, session.id)
        return session

    async def select_session(self, session_id: str) -> ChatSession:
        """Make an existing session active.

        Raises:
            NotFound: If no session has this ID
        """
        self._ensure_loaded()
        session = self.get_session(session_id)
        self._active_id = session.id
        await self._commit(StoreEventKind.SELECTED, session.id)
        return session

    async def delete_session(self, session_id: str) -> None:
        """Delete a session.

        If it was active, the most recent remaining session becomes
        active; if none remain, a fresh session is created.

        Raises:
            NotFound: If no session has this ID
        """
        self._ensure_loaded()
        session = self.get_session(session_id)
        self._sessions.remove(session)

        if not self._sessions:
            fresh = self._new_session()
            self._sessions.insert(0, fresh)
            self._active_id = fresh.id
        elif self._active_id == session_id:
            self._active_id = self._sessions[0].id

        logger.info("chat_deleted", chat_id=session_id, active_chat_id=self._active_id)
        await self._commit(StoreEventKind.DELETED, session_id)

    async def duplicate_session(
        self,
        session_id: str,
        up_to_message_id: str | None = None,
    ) -> ChatSession:
        """Copy a session into a new one right after it, and activate the copy.

        Args:
            session_id: Source session
            up_to_message_id: Truncate the copy after this message

        Raises:
            NotFound: If the session, or the message to truncate at, does not exist
        """
        self._ensure_loaded()
        source = self.get_session(session_id)
        if up_to_message_id is not None and source.find_message(up_to_message_id) is None:
            raise NotFound(up_to_message_id, what="Message")

        copy = source.duplicate(self._clock(), up_to_message_id)
        self._sessions.insert(self._sessions.index(source) + 1, copy)
        self._active_id = copy.id

        logger.info(
            "chat_duplicated",
            source_chat_id=session_id,
            chat_id=copy.id,
            messages=len(copy.messages),
        )
        await self._commit(StoreEventKind.DUPLICATED, copy.id)
        return copy

    async def rename_session(self, session_id: str, new_title: str) -> ChatSession:
        """Rename a session. Blank titles are ignored.

        Raises:
            NotFound: If no session has this ID
        """
        self._ensure_loaded()
        session = self.get_session(session_id)
        if not session.rename(new_title, self._clock()):
            return session

        await self._commit(StoreEventKind.RENAMED, session.id)
        return session

    async def append_message(self, session_id: str, message: Message) -> Message:
        """Append a message to a session.

        Raises:
            NotFound: If no session has this ID
        """
        self._ensure_loaded()
        session = self.get_session(session_id)
        session.append(message, self._clock(), self._title_max_length)

        logger.debug(
            "message_appended",
            chat_id=session_id,
            role=message.role.value,
            failed=message.is_error,
        )
        await self._commit(StoreEventKind.MESSAGE_APPENDED, session_id)
        return message

    # === INTERNALS ===

    def _new_session(self) -> ChatSession:
        return ChatSession(created_at=self._clock())

    def _find(self, session_id: str | None) -> ChatSession | None:
        if session_id is None:
            return None
        return next((s for s in self._sessions if s.id == session_id), None)

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            raise RuntimeError("ConversationStore not loaded. Call 'await store.load()' first.")

    async def _commit(self, kind: StoreEventKind, session_id: str | None) -> None:
        if not await self.save():
            logger.warning("store_not_persisted", event_kind=kind.value, chat_id=session_id)
        self._notify(StoreEvent(kind, session_id, self._active_id))

    def _notify(self, event: StoreEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error("store_listener_failed", event_kind=event.kind.value, error=str(e))
