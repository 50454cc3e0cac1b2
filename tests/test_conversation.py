import json
import os
import stat

import pytest

from ponder.context.conversation import Conversation
from ponder.exceptions import PersistenceError
from ponder.llm.models import Message, Role


def contents(messages: list[Message]) -> list[str]:
    return [message.content for message in messages]


def test_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        Conversation(max_length=0)


def test_oldest_messages_are_evicted_first():
    conversation = Conversation(max_length=3)
    for i in range(5):
        conversation.add_user(f"m{i}")

    assert len(conversation) == 3
    assert contents(list(conversation.history)) == ["m2", "m3", "m4"]


def test_capacity_three_scenario():
    conversation = Conversation(max_length=3, system_prompt="S")
    conversation.add_user("u1")
    conversation.add_assistant("a1")
    conversation.add_user("u2")
    conversation.add_assistant("a2")

    messages = conversation.get_messages()
    assert [m.role for m in messages] == [Role.SYSTEM, Role.ASSISTANT, Role.USER, Role.ASSISTANT]
    assert contents(messages) == ["S", "a1", "u2", "a2"]


def test_system_prompt_is_never_evicted_or_counted():
    conversation = Conversation(max_length=2, system_prompt="rules")
    for i in range(10):
        conversation.add_user(f"m{i}")

    assert len(conversation) == 2
    assert conversation.get_messages()[0] == Message.system("rules")


def test_context_window_returns_system_prompt_and_tail():
    conversation = Conversation(max_length=100, system_prompt="S")
    for i in range(10):
        conversation.add_user(f"m{i}")

    window = conversation.get_context_window(3)
    assert contents(window) == ["S", "m7", "m8", "m9"]


def test_context_window_larger_than_history():
    conversation = Conversation(max_length=100)
    conversation.add_user("only")

    assert contents(conversation.get_context_window(20)) == ["only"]


def test_context_window_of_zero_keeps_only_system_prompt():
    conversation = Conversation(max_length=100, system_prompt="S")
    conversation.add_user("hello")

    assert contents(conversation.get_context_window(0)) == ["S"]


def test_get_range_returns_half_open_slice():
    conversation = Conversation(max_length=100)
    for i in range(5):
        conversation.add_user(f"m{i}")

    assert contents(conversation.get_range(1, 3)) == ["m1", "m2"]


def test_get_range_clamps_out_of_bounds_indices():
    conversation = Conversation(max_length=100)
    for i in range(5):
        conversation.add_user(f"m{i}")

    assert contents(conversation.get_range(-4, 100)) == ["m0", "m1", "m2", "m3", "m4"]
    assert contents(conversation.get_range(10, 20)) == ["m4"]
    assert contents(conversation.get_range(3, 1)) == ["m3"]


def test_get_range_on_empty_history_is_empty():
    assert Conversation(max_length=10).get_range(0, 5) == []


def test_last_messages_by_role():
    conversation = Conversation(max_length=10)
    assert conversation.last_user_message() is None

    conversation.add_user("question")
    conversation.add_assistant("answer")
    conversation.add_user("follow-up")

    assert conversation.last_user_message().content == "follow-up"
    assert conversation.last_assistant_message().content == "answer"
    assert contents(conversation.last_n(2)) == ["answer", "follow-up"]
    assert conversation.last_n(0) == []


def test_clear_keeps_system_prompt():
    conversation = Conversation(max_length=10, system_prompt="S")
    conversation.add_user("hello")
    conversation.clear()

    assert conversation.is_empty
    assert contents(conversation.get_messages()) == ["S"]


def test_persistence_round_trip(tmp_path):
    path = tmp_path / ".ponder" / "session.json"

    first = Conversation(max_length=10)
    first.enable_persistence(path)
    first.add_user("hello")
    first.add_assistant("hi")

    second = Conversation(max_length=10)
    second.enable_persistence(path)

    assert contents(list(second.history)) == ["hello", "hi"]


def test_persisted_file_is_owner_only(tmp_path):
    path = tmp_path / "session.json"
    conversation = Conversation(max_length=10)
    conversation.enable_persistence(path)
    conversation.add_user("secret")

    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600


def test_restore_keeps_capacity(tmp_path):
    path = tmp_path / "session.json"
    path.write_text(
        json.dumps(
            {
                "system_prompt": "stored",
                "messages": [{"role": "user", "content": f"m{i}"} for i in range(6)],
            }
        )
    )

    conversation = Conversation(max_length=4)
    conversation.enable_persistence(path)

    assert contents(list(conversation.history)) == ["m2", "m3", "m4", "m5"]
    assert conversation.system_prompt == "stored"


def test_corrupt_session_file_starts_empty(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json")

    conversation = Conversation(max_length=10)
    conversation.enable_persistence(path)

    assert conversation.is_empty


def test_undecodable_session_file_starts_empty(tmp_path):
    path = tmp_path / "session.json"
    path.write_bytes(b'{"messages": [\xff\xfe]}')

    conversation = Conversation(max_length=10)
    conversation.enable_persistence(path)

    assert conversation.is_empty
    conversation.add_user("fresh start")
    assert json.loads(path.read_text())["messages"][0]["content"] == "fresh start"


def test_malformed_messages_start_empty(tmp_path):
    path = tmp_path / "session.json"
    path.write_text(json.dumps({"messages": [{"role": "robot"}]}))

    conversation = Conversation(max_length=10)
    conversation.enable_persistence(path)

    assert conversation.is_empty


class FailingSink:
    def load(self, path):
        return None

    def save(self, path, state):
        raise PersistenceError("disk full", path=str(path))


def test_flush_failure_is_logged_not_raised(tmp_path, caplog):
    conversation = Conversation(max_length=10)
    conversation.enable_persistence(tmp_path / "session.json", sink=FailingSink())

    conversation.add_user("still recorded")

    assert contents(list(conversation.history)) == ["still recorded"]
    assert "Failed to persist conversation" in caplog.text


class BrokenSink:
    def load(self, path):
        raise RuntimeError("storage offline")

    def save(self, path, state):
        raise RuntimeError("storage offline")


def test_unexpected_sink_errors_never_escape(tmp_path, caplog):
    conversation = Conversation(max_length=10, system_prompt="be brief")
    conversation.enable_persistence(tmp_path / "session.json", sink=BrokenSink())

    conversation.add_user("hello")
    conversation.add_assistant("hi")
    conversation.clear()
    conversation.add_user("again")

    assert contents(list(conversation.history)) == ["again"]
    assert conversation.system_prompt == "be brief"
    assert "Failed to load session" in caplog.text
    assert "Failed to persist conversation" in caplog.text
