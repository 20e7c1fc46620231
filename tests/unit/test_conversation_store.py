"""Unit tests for the aperonix conversation store."""

import json

import pytest

from aperonix.domain.chat import PLACEHOLDER_TITLE
from aperonix.domain.message import Message
from aperonix.errors import NotFound
from aperonix.infra.local.memory_storage import InMemoryStorage
from aperonix.models.state import StoreSnapshot
from aperonix.services.conversation_store import (
    ConversationStore,
    StoreEvent,
    StoreEventKind,
)


def _chat_record(chat_id: str, title: str = "Saved", created_at: int = 1) -> dict:
    return {"id": chat_id, "title": title, "createdAt": created_at, "messages": []}


class TestLoad:
    """Tests for ConversationStore.load."""

    @pytest.mark.asyncio
    async def test_empty_storage_creates_session(self, memory_storage: InMemoryStorage) -> None:
        store = ConversationStore(memory_storage)

        await store.load()

        assert len(store.sessions) == 1
        assert store.active_chat_id == store.sessions[0].id
        assert store.active_session.title == PLACEHOLDER_TITLE
        assert memory_storage.save_count == 1

    @pytest.mark.asyncio
    async def test_restores_persisted_state(self) -> None:
        storage = InMemoryStorage(
            records={
                "aperonix-chats": json.dumps([_chat_record("c1"), _chat_record("c2")]),
                "aperonix-active": "c2",
                "aperonix-theme": "ocean",
            }
        )
        store = ConversationStore(storage)

        await store.load()

        assert [s.id for s in store.sessions] == ["c1", "c2"]
        assert store.active_chat_id == "c2"
        assert store.theme == "ocean"
        assert storage.save_count == 0

    @pytest.mark.asyncio
    async def test_stale_active_falls_back_to_first(self) -> None:
        storage = InMemoryStorage(
            records={
                "aperonix-chats": json.dumps([_chat_record("c1"), _chat_record("c2")]),
                "aperonix-active": "deleted-elsewhere",
            }
        )
        store = ConversationStore(storage)

        await store.load()

        assert store.active_chat_id == "c1"
        assert storage.records["aperonix-active"] == "c1"

    @pytest.mark.asyncio
    async def test_malformed_records_load_as_empty(self) -> None:
        storage = InMemoryStorage(records={"aperonix-chats": "[{broken"})
        store = ConversationStore(storage)

        await store.load()

        assert len(store.sessions) == 1

    @pytest.mark.asyncio
    async def test_operations_require_load(self, memory_storage: InMemoryStorage) -> None:
        store = ConversationStore(memory_storage)

        with pytest.raises(RuntimeError, match="not loaded"):
            await store.create_session()


class TestSessionLifecycle:
    """Tests for create, select, delete and rename."""

    @pytest.mark.asyncio
    async def test_create_inserts_at_front(self, store: ConversationStore) -> None:
        first = store.active_session

        created = await store.create_session()

        assert store.sessions[0] is created
        assert store.sessions[1] is first
        assert store.active_chat_id == created.id
        assert created.created_at == created.updated_at

    @pytest.mark.asyncio
    async def test_select(self, store: ConversationStore) -> None:
        first = store.active_session
        await store.create_session()

        await store.select_session(first.id)

        assert store.active_chat_id == first.id

    @pytest.mark.asyncio
    async def test_select_unknown(self, store: ConversationStore) -> None:
        with pytest.raises(NotFound):
            await store.select_session("missing")

    @pytest.mark.asyncio
    async def test_delete_active_selects_most_recent(self, store: ConversationStore) -> None:
        oldest = store.active_session
        middle = await store.create_session()
        newest = await store.create_session()

        await store.delete_session(newest.id)

        assert store.active_chat_id == middle.id
        assert [s.id for s in store.sessions] == [middle.id, oldest.id]

    @pytest.mark.asyncio
    async def test_delete_inactive_keeps_active(self, store: ConversationStore) -> None:
        oldest = store.active_session
        newest = await store.create_session()

        await store.delete_session(oldest.id)

        assert store.active_chat_id == newest.id

    @pytest.mark.asyncio
    async def test_delete_last_creates_fresh(self, store: ConversationStore) -> None:
        only = store.active_session

        await store.delete_session(only.id)

        assert len(store.sessions) == 1
        assert store.active_chat_id != only.id
        assert store.active_session.messages == []

    @pytest.mark.asyncio
    async def test_delete_unknown(self, store: ConversationStore) -> None:
        with pytest.raises(NotFound):
            await store.delete_session("missing")

    @pytest.mark.asyncio
    async def test_rename(self, store: ConversationStore) -> None:
        session = store.active_session

        await store.rename_session(session.id, "  Trip planning ")

        assert session.title == "Trip planning"
        assert session.title_locked is True

    @pytest.mark.asyncio
    async def test_rename_blank_is_noop(
        self,
        store: ConversationStore,
        memory_storage: InMemoryStorage,
    ) -> None:
        session = store.active_session
        saves = memory_storage.save_count

        await store.rename_session(session.id, "   ")

        assert session.title == PLACEHOLDER_TITLE
        assert memory_storage.save_count == saves

    @pytest.mark.asyncio
    async def test_rename_unknown(self, store: ConversationStore) -> None:
        with pytest.raises(NotFound):
            await store.rename_session("missing", "Title")


class TestDuplicate:
    """Tests for ConversationStore.duplicate_session."""

    @pytest.mark.asyncio
    async def test_duplicate_inserted_after_source(self, store: ConversationStore) -> None:
        older = store.active_session
        source = await store.create_session()
        await store.append_message(source.id, Message.user("Hello"))

        copy = await store.duplicate_session(source.id)

        assert [s.id for s in store.sessions] == [source.id, copy.id, older.id]
        assert store.active_chat_id == copy.id
        assert copy.title == "Hello (copy)"

    @pytest.mark.asyncio
    async def test_duplicate_shares_no_state(self, store: ConversationStore) -> None:
        source = store.active_session
        await store.append_message(source.id, Message.user("Hello"))

        copy = await store.duplicate_session(source.id)
        await store.append_message(copy.id, Message.assistant("Only in the copy"))

        assert len(source.messages) == 1
        assert len(copy.messages) == 2

    @pytest.mark.asyncio
    async def test_duplicate_up_to_message(self, store: ConversationStore) -> None:
        source = store.active_session
        first = await store.append_message(source.id, Message.user("one"))
        await store.append_message(source.id, Message.assistant("two"))

        copy = await store.duplicate_session(source.id, up_to_message_id=first.id)

        assert [m.content for m in copy.messages] == ["one"]

    @pytest.mark.asyncio
    async def test_duplicate_unknown_message(self, store: ConversationStore) -> None:
        source = store.active_session

        with pytest.raises(NotFound):
            await store.duplicate_session(source.id, up_to_message_id="missing")

    @pytest.mark.asyncio
    async def test_duplicate_unknown_session(self, store: ConversationStore) -> None:
        with pytest.raises(NotFound):
            await store.duplicate_session("missing")


class TestAppendMessage:
    """Tests for ConversationStore.append_message."""

    @pytest.mark.asyncio
    async def test_append_derives_title(self, store: ConversationStore) -> None:
        session = store.active_session

        await store.append_message(session.id, Message.user("x" * 60))

        assert session.title == "x" * 48 + "…"

    @pytest.mark.asyncio
    async def test_append_persists_snapshot(
        self,
        store: ConversationStore,
        memory_storage: InMemoryStorage,
    ) -> None:
        session = store.active_session

        await store.append_message(session.id, Message.user("Hello"))

        saved = json.loads(memory_storage.records["aperonix-chats"])
        assert saved[0]["id"] == session.id
        assert saved[0]["messages"][0]["content"] == "Hello"
        assert memory_storage.records["aperonix-active"] == session.id

    @pytest.mark.asyncio
    async def test_append_unknown(self, store: ConversationStore) -> None:
        with pytest.raises(NotFound):
            await store.append_message("missing", Message.user("Hello"))

    @pytest.mark.asyncio
    async def test_timestamps_non_decreasing(self, store: ConversationStore) -> None:
        session = store.active_session
        await store.append_message(session.id, Message.user("a"))

        late = Message.assistant("b")
        late.timestamp = 0
        await store.append_message(session.id, late)

        stamps = [m.timestamp for m in session.messages]
        assert stamps == sorted(stamps)


class TestSnapshotAndEvents:
    """Tests for snapshots and change notification."""

    @pytest.mark.asyncio
    async def test_snapshot_is_detached(self, store: ConversationStore) -> None:
        session = store.active_session
        snapshot = store.snapshot()

        await store.append_message(session.id, Message.user("after"))

        assert isinstance(snapshot, StoreSnapshot)
        assert snapshot.chats[0].messages == ()

    @pytest.mark.asyncio
    async def test_listener_receives_events(self, store: ConversationStore) -> None:
        events: list[StoreEvent] = []
        store.subscribe(events.append)

        created = await store.create_session()
        await store.append_message(created.id, Message.user("Hi"))

        assert [e.kind for e in events] == [
            StoreEventKind.CREATED,
            StoreEventKind.MESSAGE_APPENDED,
        ]
        assert events[0].session_id == created.id
        assert events[0].active_chat_id == created.id

    @pytest.mark.asyncio
    async def test_unsubscribe(self, store: ConversationStore) -> None:
        events: list[StoreEvent] = []
        unsubscribe = store.subscribe(events.append)

        unsubscribe()
        await store.create_session()

        assert events == []

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_mutation(
        self,
        store: ConversationStore,
    ) -> None:
        def broken(event: StoreEvent) -> None:
            raise RuntimeError("render failed")

        store.subscribe(broken)

        created = await store.create_session()

        assert store.active_chat_id == created.id
