"""Chat client: conversation state, persistence and the relay stream consumer."""

from devflow.client.conversation import Conversation, InProgressTurn, Role, Turn, TurnStatus
from devflow.client.relay_client import RelayClient, RelayHTTPError, RelayUnavailable, StreamInterrupted
from devflow.client.selection import SelectionChannel
from devflow.client.shell import HISTORY_KEY, ChatShell
from devflow.client.storage import JsonFileStorage, KeyValueStorage, MemoryStorage

__all__ = [
    "HISTORY_KEY",
    "ChatShell",
    "Conversation",
    "InProgressTurn",
    "JsonFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "RelayClient",
    "RelayHTTPError",
    "RelayUnavailable",
    "Role",
    "SelectionChannel",
    "StreamInterrupted",
    "Turn",
    "TurnStatus",
]
