# Tests for the append-only conversation model.
# Created: 2026-10-14

import pytest

from devflow.client.conversation import Conversation, Role, Turn, TurnStatus


class TestTurn:
    def test_round_trip_dict(self):
        turn = Turn(Role.ASSISTANT, "hi", TurnStatus.INCOMPLETE)
        assert turn.to_dict() == {"role": "assistant", "content": "hi", "status": "incomplete"}
        assert Turn.from_dict(turn.to_dict()) == turn

    def test_missing_status_defaults_to_complete(self):
        turn = Turn.from_dict({"role": "user", "content": "q"})
        assert turn.status is TurnStatus.COMPLETE

    def test_streaming_turn_restored_as_incomplete(self):
        turn = Turn.from_dict({"role": "assistant", "content": "par", "status": "streaming"})
        assert turn.status is TurnStatus.INCOMPLETE
        assert turn.content == "par"

    @pytest.mark.parametrize(
        "data",
        [
            "not a dict",
            {"role": "user"},
            {"role": "user", "content": 3},
            {"role": "system", "content": "x"},
            {"role": "user", "content": "x", "status": "bogus"},
        ],
    )
    def test_malformed(self, data):
        with pytest.raises(ValueError):
            Turn.from_dict(data)


class TestConversation:
    def test_append_order(self):
        conv = Conversation()
        conv.append_user("one")
        handle = conv.begin_assistant()
        handle.append("two")
        handle.complete()
        conv.append_user("three")
        assert [t.content for t in conv.turns()] == ["one", "two", "three"]
        assert [t.role for t in conv.turns()] == [Role.USER, Role.ASSISTANT, Role.USER]

    def test_snapshots_are_detached(self):
        conv = Conversation()
        conv.append_user("q")
        snapshot = conv.turns()
        snapshot[0].content = "tampered"
        assert conv.turns()[0].content == "q"

    def test_streaming_turn_grows_through_handle(self):
        conv = Conversation()
        handle = conv.begin_assistant()
        assert conv.streaming
        assert conv.turns()[-1].status is TurnStatus.STREAMING

        handle.append("Hel")
        handle.append("")
        handle.append("lo")
        assert conv.turns()[-1].content == "Hello"

        handle.complete()
        assert not conv.streaming
        assert conv.turns()[-1].status is TurnStatus.COMPLETE

    def test_fail_keeps_partial_text(self):
        conv = Conversation()
        handle = conv.begin_assistant()
        handle.append("partial")
        handle.fail()
        last = conv.turns()[-1]
        assert last.content == "partial"
        assert last.status is TurnStatus.INCOMPLETE

    def test_closed_handle_rejects_writes(self):
        conv = Conversation()
        handle = conv.begin_assistant()
        handle.complete()
        with pytest.raises(RuntimeError):
            handle.append("late")
        with pytest.raises(RuntimeError):
            handle.fail()

    def test_one_streaming_turn_at_a_time(self):
        conv = Conversation()
        conv.begin_assistant()
        with pytest.raises(RuntimeError):
            conv.begin_assistant()

    def test_no_clear_while_streaming(self):
        conv = Conversation()
        conv.begin_assistant()
        with pytest.raises(RuntimeError):
            conv.clear()
        with pytest.raises(RuntimeError):
            conv.replace_all([])

    def test_clear(self):
        conv = Conversation()
        conv.append_user("q")
        conv.clear()
        assert len(conv) == 0
        assert conv.to_list() == []

    def test_on_change_fires_for_every_mutation(self):
        events = []
        conv = Conversation(on_change=lambda: events.append(1))
        conv.append_user("q")
        handle = conv.begin_assistant()
        handle.append("a")
        handle.complete()
        conv.clear()
        assert len(events) == 5

    def test_last_user_prompt(self):
        conv = Conversation()
        assert conv.last_user_prompt() is None
        conv.append_user("first")
        conv.append_user("second")
        conv.begin_assistant().complete()
        assert conv.last_user_prompt() == "second"

    def test_turns_from_list(self):
        conv = Conversation()
        conv.append_user("q")
        handle = conv.begin_assistant()
        handle.append("a")
        handle.complete()
        assert Conversation.turns_from_list(conv.to_list()) == conv.turns()

    def test_turns_from_list_rejects_non_list(self):
        with pytest.raises(ValueError):
            Conversation.turns_from_list({"role": "user"})
