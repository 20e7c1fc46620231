"""Integration tests for aperonix snapshot persistence."""

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from aperonix.config import RedisSettings
from aperonix.domain.message import Message
from aperonix.errors import StorageUnavailable
from aperonix.infra.local.json_storage import JSONFileStorage
from aperonix.infra.local.memory_storage import InMemoryStorage
from aperonix.infra.redis.client import RedisClient
from aperonix.infra.redis.storage import RedisSnapshotStorage
from aperonix.interfaces.storage import SnapshotStorageInterface
from aperonix.models.chat import ChatSessionDTO
from aperonix.models.message import MessageRole
from aperonix.models.state import DEFAULT_THEME, StoreSnapshot
from aperonix.services.conversation_store import ConversationStore
from tests.mocks.mock_redis import MockRedis

BROWSER_DOCUMENT = {
    "chats": [
        {
            "id": "1717171717171",
            "title": "Sorting in Python",
            "createdAt": 1717171717171,
            "messages": [
                {"role": "user", "content": "How do I sort a list?", "timestamp": 1717171717200},
                {"role": "assistant", "content": "Use `sorted()`.", "timestamp": 1717171718000},
                {
                    "role": "assistant",
                    "content": None,
                    "error": "Network error: Could not reach the Gemini API.",
                    "timestamp": 1717171719000,
                },
            ],
        }
    ],
    "activeChatId": "1717171717171",
    "theme": "light",
}


def _redis_storage(redis: MockRedis) -> RedisSnapshotStorage:
    return RedisSnapshotStorage(RedisClient(RedisSettings(url="redis://test"), redis=redis))


class TestJSONFileStorage:
    """Tests for the JSON document backend."""

    @pytest.mark.asyncio
    async def test_missing_file_loads_empty(self, tmp_path: Path) -> None:
        storage = JSONFileStorage(tmp_path / "state.json")

        assert await storage.load() == StoreSnapshot.empty()

    @pytest.mark.asyncio
    async def test_save_and_load(
        self,
        tmp_path: Path,
        sample_chat_dto: ChatSessionDTO,
    ) -> None:
        storage = JSONFileStorage(tmp_path / "nested" / "state.json")
        snapshot = StoreSnapshot(chats=(sample_chat_dto,), active_chat_id="chat-1", theme="light")

        assert await storage.save(snapshot) is True
        loaded = await storage.load()

        assert loaded == snapshot
        document = json.loads(storage.path.read_text(encoding="utf-8"))
        assert set(document) == {"chats", "activeChatId", "theme"}
        assert "createdAt" in document["chats"][0]

    @pytest.mark.asyncio
    async def test_save_leaves_no_temp_files(
        self,
        tmp_path: Path,
        sample_chat_dto: ChatSessionDTO,
    ) -> None:
        storage = JSONFileStorage(tmp_path / "state.json")

        await storage.save(StoreSnapshot(chats=(sample_chat_dto,)))
        await storage.save(StoreSnapshot())

        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]
        assert (await storage.load()).chats == ()

    @pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]", '"text"', ""])
    @pytest.mark.asyncio
    async def test_malformed_file_loads_empty(self, tmp_path: Path, content: str) -> None:
        path = tmp_path / "state.json"
        path.write_text(content, encoding="utf-8")

        snapshot = await JSONFileStorage(path).load()

        assert snapshot.chats == ()
        assert snapshot.theme == DEFAULT_THEME

    @pytest.mark.asyncio
    async def test_undecodable_file_loads_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_bytes(b'{"chats": "\xff\xfe"}')

        snapshot = await JSONFileStorage(path).load()

        assert snapshot == StoreSnapshot.empty()

    @pytest.mark.asyncio
    async def test_browser_document(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_text(json.dumps(BROWSER_DOCUMENT), encoding="utf-8")

        snapshot = await JSONFileStorage(path).load()

        assert snapshot.active_chat_id == "1717171717171"
        assert snapshot.theme == "light"
        chat = snapshot.chats[0]
        assert chat.title == "Sorting in Python"
        assert [m.role for m in chat.messages] == [
            MessageRole.USER,
            MessageRole.ASSISTANT,
            MessageRole.ASSISTANT,
        ]
        assert chat.messages[2].content == ""
        assert chat.messages[2].error is not None
        assert len({m.id for m in chat.messages}) == 3

    @pytest.mark.asyncio
    async def test_unwritable_path_reports_failure(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        storage = JSONFileStorage(blocker / "state.json")

        assert await storage.save(StoreSnapshot()) is False


class TestInMemoryStorage:
    """Tests for the in-memory backend."""

    @pytest.mark.asyncio
    async def test_records_layout(self, sample_chat_dto: ChatSessionDTO) -> None:
        storage = InMemoryStorage(key_prefix="test-")

        await storage.save(StoreSnapshot(chats=(sample_chat_dto,), active_chat_id="chat-1"))

        assert set(storage.records) == {"test-chats", "test-active", "test-theme"}
        assert json.loads(storage.records["test-chats"])[0]["id"] == "chat-1"
        assert storage.save_count == 1

    @pytest.mark.asyncio
    async def test_no_active_record_without_active_chat(self) -> None:
        storage = InMemoryStorage(records={"aperonix-active": "stale"})

        await storage.save(StoreSnapshot())

        assert "aperonix-active" not in storage.records

    @pytest.mark.asyncio
    async def test_preexisting_records(self) -> None:
        storage = InMemoryStorage(
            records={
                "aperonix-chats": json.dumps(BROWSER_DOCUMENT["chats"]),
                "aperonix-active": "1717171717171",
            }
        )

        snapshot = await storage.load()

        assert len(snapshot.chats) == 1
        assert snapshot.theme == DEFAULT_THEME


class TestRedisSnapshotStorage:
    """Tests for the Redis backend."""

    @pytest.mark.asyncio
    async def test_save_and_load(self, sample_chat_dto: ChatSessionDTO) -> None:
        redis = MockRedis()
        storage = _redis_storage(redis)
        snapshot = StoreSnapshot(chats=(sample_chat_dto,), active_chat_id="chat-1", theme="light")

        assert await storage.save(snapshot) is True

        assert redis.transactions == 1
        assert redis.data["aperonix-active"] == "chat-1"
        assert await storage.load() == snapshot

    @pytest.mark.asyncio
    async def test_cleared_active_id_deleted(self) -> None:
        redis = MockRedis({"aperonix-active": "gone"})
        storage = _redis_storage(redis)

        await storage.save(StoreSnapshot())

        assert "aperonix-active" not in redis.data
        assert redis.data["aperonix-chats"] == "[]"

    @pytest.mark.asyncio
    async def test_failed_transaction(self, sample_chat_dto: ChatSessionDTO) -> None:
        redis = MockRedis()
        redis.fail_writes = True
        storage = _redis_storage(redis)

        assert await storage.save(StoreSnapshot(chats=(sample_chat_dto,))) is False
        assert redis.data == {}

    @pytest.mark.asyncio
    async def test_failed_read_raises(self) -> None:
        redis = MockRedis({"aperonix-chats": "[]"})
        redis.fail_reads = True

        with pytest.raises(StorageUnavailable):
            await _redis_storage(redis).load()

    @pytest.mark.asyncio
    async def test_not_configured(self) -> None:
        storage = RedisSnapshotStorage(RedisClient(RedisSettings(url=None)))

        assert (await storage.load()).chats == ()
        assert await storage.save(StoreSnapshot()) is False

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        redis = MockRedis()
        storage = _redis_storage(redis)

        await storage.close()

        assert redis.closed is True


class TestUnreadableStorage:
    """A failed read is never mistaken for an empty store."""

    @pytest.mark.asyncio
    async def test_persisted_chats_not_overwritten(
        self,
        clock: Callable[[], int],
        sample_chat_dto: ChatSessionDTO,
    ) -> None:
        snapshot = StoreSnapshot(chats=(sample_chat_dto,), active_chat_id="chat-1")
        redis = MockRedis(
            {
                "aperonix-chats": snapshot.chats_record(),
                "aperonix-active": "chat-1",
                "aperonix-theme": "light",
            }
        )
        before = dict(redis.data)
        redis.fail_reads = True
        store = ConversationStore(_redis_storage(redis), clock=clock)

        await store.load()
        session = await store.create_session()
        await store.append_message(session.id, Message.user("Hello"))

        assert store.is_persistent is False
        assert len(store.sessions) == 2
        assert redis.transactions == 0
        assert redis.data == before

    @pytest.mark.asyncio
    async def test_reload_resumes_saving(
        self,
        clock: Callable[[], int],
        sample_chat_dto: ChatSessionDTO,
    ) -> None:
        redis = MockRedis(
            {"aperonix-chats": StoreSnapshot(chats=(sample_chat_dto,)).chats_record()}
        )
        redis.fail_reads = True
        store = ConversationStore(_redis_storage(redis), clock=clock)
        await store.load()

        redis.fail_reads = False
        await store.load()
        await store.rename_session("chat-1", "Renamed")

        assert store.is_persistent is True
        assert store.active_chat_id == "chat-1"
        assert json.loads(redis.data["aperonix-chats"])[0]["title"] == "Renamed"


class TestStoreReload:
    """Store state survives a reload on every backend."""

    @pytest.mark.parametrize("backend", ["file", "memory", "redis"])
    @pytest.mark.asyncio
    async def test_reload(self, tmp_path: Path, clock: Callable[[], int], backend: str) -> None:
        storage: SnapshotStorageInterface
        if backend == "file":
            storage = JSONFileStorage(tmp_path / "state.json")
        elif backend == "memory":
            storage = InMemoryStorage()
        else:
            storage = _redis_storage(MockRedis())

        store = ConversationStore(storage, clock=clock)
        await store.load()
        first = store.active_session
        second = await store.create_session()
        await store.append_message(second.id, Message.user("Plan a trip"))
        await store.rename_session(first.id, "Pinned")
        await store.select_session(first.id)

        reloaded = ConversationStore(storage, clock=clock)
        await reloaded.load()

        assert [s.id for s in reloaded.sessions] == [second.id, first.id]
        assert reloaded.active_chat_id == first.id
        assert reloaded.get_session(first.id).title == "Pinned"
        assert [m.content for m in reloaded.get_session(second.id).messages] == ["Plan a trip"]
        assert reloaded.get_session(second.id).title == "Plan a trip"
