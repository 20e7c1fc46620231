"""Unit tests for aperonix domain entities."""

import pytest

from aperonix.domain.chat import PLACEHOLDER_TITLE, ChatSession, derive_title
from aperonix.domain.message import Message
from aperonix.models.chat import ChatSessionDTO
from aperonix.models.message import MessageRole


class TestDeriveTitle:
    """Tests for title derivation."""

    def test_short_text_kept(self) -> None:
        assert derive_title("Hello there") == "Hello there"

    def test_long_text_truncated(self) -> None:
        text = "a" * 60

        title = derive_title(text)

        assert title == "a" * 48 + "…"

    def test_exact_length_not_truncated(self) -> None:
        assert derive_title("b" * 48) == "b" * 48

    def test_whitespace_collapsed(self) -> None:
        assert derive_title("  What\n is   this?  ") == "What is this?"

    def test_blank_gives_placeholder(self) -> None:
        assert derive_title("   ") == PLACEHOLDER_TITLE


class TestMessage:
    """Tests for Message entity."""

    def test_failure_has_empty_content(self) -> None:
        msg = Message.failure("HTTP 500")

        assert msg.role == MessageRole.ASSISTANT
        assert msg.content == ""
        assert msg.is_error is True

    def test_dto_round_trip(self) -> None:
        msg = Message.user("Hello")

        assert Message.from_dto(msg.to_dto()) == msg


class TestChatSession:
    """Tests for ChatSession entity."""

    def test_new_session_defaults(self) -> None:
        session = ChatSession(created_at=100)

        assert session.title == PLACEHOLDER_TITLE
        assert session.updated_at == 100
        assert session.messages == []

    def test_first_user_message_sets_title(self) -> None:
        session = ChatSession(created_at=100)

        session.append(Message.user("Explain Python decorators"), now=200)

        assert session.title == "Explain Python decorators"

    def test_later_messages_keep_title(self) -> None:
        session = ChatSession(created_at=100)
        session.append(Message.user("First"), now=200)

        session.append(Message.user("Second"), now=300)

        assert session.title == "First"

    def test_renamed_title_not_overwritten(self) -> None:
        session = ChatSession(created_at=100)
        session.rename("New Chat", now=150)

        session.append(Message.user("Hello"), now=200)

        assert session.title == "New Chat"
        assert session.title_locked is True

    def test_timestamp_clamped(self) -> None:
        session = ChatSession(created_at=100)
        session.append(Message(role=MessageRole.USER, content="a", timestamp=500), now=500)

        late = session.append(
            Message(role=MessageRole.ASSISTANT, content="b", timestamp=400),
            now=600,
        )

        assert late.timestamp == 500
        assert session.updated_at == 600

    def test_rename_blank_is_noop(self) -> None:
        session = ChatSession(title="Keep", created_at=100)

        changed = session.rename("   ", now=200)

        assert changed is False
        assert session.title == "Keep"
        assert session.updated_at == 100

    def test_rename_trims(self) -> None:
        session = ChatSession(created_at=100)

        session.rename("  Trip plans  ", now=200)

        assert session.title == "Trip plans"
        assert session.updated_at == 200

    def test_duplicate_is_independent(self) -> None:
        session = ChatSession(title="Original", created_at=100)
        session.append(Message.user("Hello"), now=200)

        copy = session.duplicate(now=300)
        copy.messages[0].content = "Changed"
        copy.append(Message.assistant("Hi"), now=400)

        assert copy.id != session.id
        assert copy.title == "Original (copy)"
        assert copy.created_at == 300
        assert session.messages[0].content == "Hello"
        assert len(session.messages) == 1

    def test_duplicate_up_to_message(self) -> None:
        session = ChatSession(created_at=100)
        first = session.append(Message.user("one"), now=200)
        session.append(Message.assistant("two"), now=300)

        copy = session.duplicate(now=400, up_to_message_id=first.id)

        assert [m.content for m in copy.messages] == ["one"]

    def test_duplicate_unknown_message(self) -> None:
        session = ChatSession(created_at=100)

        with pytest.raises(ValueError):
            session.duplicate(now=200, up_to_message_id="missing")

    def test_dto_round_trip(self, sample_chat_dto: ChatSessionDTO) -> None:
        session = ChatSession.from_dto(sample_chat_dto)

        assert session.to_dto() == sample_chat_dto
