# Conversation model for the chat client.
# Created: 2026-10-13
#
# Turns are only ever appended; the whole conversation is cleared as a unit.
# The assistant turn being streamed is mutated exclusively through the
# ``InProgressTurn`` handle returned by ``begin_assistant()``; everyone else
# reads snapshots.

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class TurnStatus(str, Enum):
    COMPLETE = "complete"
    STREAMING = "streaming"
    INCOMPLETE = "incomplete"  # stream broke off; content is partial


@dataclass
class Turn:
    """One message in the conversation."""

    role: Role
    content: str
    status: TurnStatus = TurnStatus.COMPLETE

    def to_dict(self) -> dict[str, str]:
        data = asdict(self)
        data["role"] = self.role.value
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Turn:
        """Build a Turn from its persisted form. Raises ValueError if malformed."""
        if not isinstance(data, dict):
            raise ValueError(f"turn must be an object, got {type(data).__name__}")
        content = data.get("content")
        if not isinstance(content, str):
            raise ValueError("turn content must be a string")
        status = TurnStatus(data.get("status", TurnStatus.COMPLETE.value))
        # A turn persisted mid-stream never finished.
        if status is TurnStatus.STREAMING:
            status = TurnStatus.INCOMPLETE
        return cls(role=Role(data.get("role")), content=content, status=status)


class InProgressTurn:
    """Exclusive write handle on the assistant turn being streamed."""

    def __init__(self, turn: Turn, on_change: Callable[[], None]):
        self._turn = turn
        self._on_change = on_change
        self._closed = False

    @property
    def content(self) -> str:
        return self._turn.content

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("assistant turn is already closed")

    def append(self, fragment: str) -> None:
        self._check_open()
        if not fragment:
            return
        self._turn.content += fragment
        self._on_change()

    def complete(self) -> None:
        self._check_open()
        self._turn.status = TurnStatus.COMPLETE
        self._closed = True
        self._on_change()

    def fail(self) -> None:
        """Mark the turn incomplete, keeping whatever text already arrived."""
        self._check_open()
        self._turn.status = TurnStatus.INCOMPLETE
        self._closed = True
        self._on_change()


class Conversation:
    """Ordered, append-only list of turns."""

    def __init__(self, turns: Iterable[Turn] = (), on_change: Callable[[], None] | None = None):
        self._turns: list[Turn] = list(turns)
        self._on_change = on_change or (lambda: None)
        self._active: InProgressTurn | None = None

    def __len__(self) -> int:
        return len(self._turns)

    def turns(self) -> list[Turn]:
        """Snapshot of every turn, safe to hand to a renderer."""
        return [replace(t) for t in self._turns]

    @property
    def streaming(self) -> bool:
        return self._active is not None and not self._active.closed

    def append_user(self, content: str) -> Turn:
        self._turns.append(Turn(Role.USER, content))
        self._on_change()
        return replace(self._turns[-1])

    def begin_assistant(self) -> InProgressTurn:
        """Append an empty streaming assistant turn and return its handle."""
        if self.streaming:
            raise RuntimeError("an assistant turn is already streaming")
        turn = Turn(Role.ASSISTANT, "", TurnStatus.STREAMING)
        self._turns.append(turn)
        self._active = InProgressTurn(turn, self._on_change)
        self._on_change()
        return self._active

    def replace_all(self, turns: Iterable[Turn]) -> None:
        if self.streaming:
            raise RuntimeError("cannot replace turns while streaming")
        self._turns = list(turns)
        self._on_change()

    def clear(self) -> None:
        if self.streaming:
            raise RuntimeError("cannot clear while streaming")
        self._turns.clear()
        self._active = None
        self._on_change()

    def last_user_prompt(self) -> str | None:
        for turn in reversed(self._turns):
            if turn.role is Role.USER:
                return turn.content
        return None

    def to_list(self) -> list[dict[str, str]]:
        return [t.to_dict() for t in self._turns]

    @staticmethod
    def turns_from_list(data: Any) -> list[Turn]:
        """Parse a persisted turn list. Raises ValueError if anything is off."""
        if not isinstance(data, list):
            raise ValueError("persisted history must be a list")
        return [Turn.from_dict(item) for item in data]
