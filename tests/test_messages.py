"""Tests for microprompts.messages (Message, MessageStore)."""

import dataclasses

import pytest

from microprompts.messages import Message, MessageState, MessageStore, Role


class TestMessage:
    def test_user_message_is_complete(self):
        message = Message.user("Hello there")
        assert message.role is Role.USER
        assert message.state is MessageState.COMPLETED
        assert message.revealed_text == "Hello there"
        assert message.suggestions is None

    def test_placeholder_is_pending(self):
        message = Message.placeholder("Hello there")
        assert message.role is Role.ASSISTANT
        assert message.state is MessageState.PENDING
        assert message.text is None
        assert message.revealed_text == ""
        assert message.question == "Hello there"

    def test_ids_are_unique(self):
        ids = {Message.user("x").id for _ in range(100)}
        assert len(ids) == 100

    def test_is_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            Message.user("x").text = "y"

    def test_terminal_states(self):
        assert not MessageState.PENDING.is_terminal
        assert not MessageState.REVEALING.is_terminal
        assert MessageState.COMPLETED.is_terminal
        assert MessageState.STOPPED.is_terminal
        assert MessageState.SUPERSEDED.is_terminal

    def test_to_dict(self):
        message = dataclasses.replace(
            Message.placeholder("q"),
            text="abcdef",
            revealed_length=3,
            state=MessageState.STOPPED,
            suggestions=("CV summary",),
        )
        data = message.to_dict()
        assert data["role"] == "assistant"
        assert data["state"] == "stopped"
        assert data["revealed_text"] == "abc"
        assert data["suggestions"] == ["CV summary"]


class TestMessageStore:
    def test_append_preserves_order(self):
        store = MessageStore()
        first = store.append(Message.user("one"))
        second = store.append(Message.placeholder("one"))
        assert [m.id for m in store] == [first.id, second.id]
        assert len(store) == 2

    def test_duplicate_id_rejected(self):
        store = MessageStore()
        message = store.append(Message.user("one"))
        with pytest.raises(ValueError):
            store.append(message)

    def test_replace_merges_fields(self):
        store = MessageStore()
        placeholder = store.append(Message.placeholder("q"))
        updated = store.replace(placeholder.id, text="answer", state=MessageState.REVEALING)
        assert updated.text == "answer"
        assert updated.question == "q"
        assert store.get(placeholder.id) is updated

    def test_replace_unknown_id(self):
        with pytest.raises(KeyError):
            MessageStore().replace("missing", text="x")

    def test_replace_unknown_field(self):
        store = MessageStore()
        message = store.append(Message.user("one"))
        with pytest.raises(TypeError):
            store.replace(message.id, colour="blue")

    def test_replace_rejects_id_change(self):
        store = MessageStore()
        message = store.append(Message.user("one"))
        with pytest.raises(ValueError, match="immutable"):
            store.replace(message.id, id="other")
        assert store.get(message.id) == message
        assert [m.id for m in store] == [message.id]

    def test_single_revealing_invariant(self):
        store = MessageStore()
        first = store.append(Message.placeholder("a"))
        second = store.append(Message.placeholder("b"))
        store.replace(first.id, state=MessageState.REVEALING)
        with pytest.raises(ValueError, match="already revealing"):
            store.replace(second.id, state=MessageState.REVEALING)

    def test_find_last(self):
        store = MessageStore()
        store.append(Message.user("first"))
        store.append(Message.placeholder("first"))
        latest = store.append(Message.user("second"))
        assert store.find_last(lambda m: m.role is Role.USER) is latest
        assert store.find_last(lambda m: m.state is MessageState.REVEALING) is None

    def test_snapshot_is_plain_data(self):
        store = MessageStore()
        store.append(Message.user("hello"))
        snapshot = store.snapshot()
        assert snapshot[0]["text"] == "hello"
        assert snapshot[0]["state"] == "completed"

    def test_messages_view_is_a_copy(self):
        store = MessageStore()
        view = store.messages
        store.append(Message.user("hello"))
        assert view == ()

    def test_clear(self):
        store = MessageStore()
        message = store.append(Message.user("hello"))
        store.clear()
        assert len(store) == 0
        with pytest.raises(KeyError):
            store.get(message.id)


class TestSubscribers:
    def test_listener_sees_appends_and_replacements(self):
        store = MessageStore()
        seen = []
        store.subscribe(seen.append)
        placeholder = store.append(Message.placeholder("q"))
        store.replace(placeholder.id, text="a")
        assert [m.text for m in seen] == [None, "a"]

    def test_unsubscribe(self):
        store = MessageStore()
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        store.append(Message.user("x"))
        assert seen == []

    def test_failing_listener_is_logged_not_raised(self, caplog):
        store = MessageStore()

        def broken(message):
            raise RuntimeError("render failed")

        store.subscribe(broken)
        with caplog.at_level("WARNING", logger="microprompts"):
            store.append(Message.user("x"))
        assert "render failed" in caplog.text
        assert len(store) == 1
