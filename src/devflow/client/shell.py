# Chat shell: conversation state, persistence and the submit/stream loop.
# Created: 2026-10-13
#
# Owns the conversation.  Every mutation persists the full turn list under
# HISTORY_KEY and re-renders from a fresh snapshot.  Failed requests are not
# retried; the partial reply stays, marked incomplete, and ``resubmit()``
# sends the last prompt again on request.

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator
from typing import Protocol

from devflow.client.conversation import Conversation, Turn
from devflow.client.render import Clipboard, Renderer, conversation_code_blocks
from devflow.client.selection import SelectionChannel, Subscription
from devflow.client.storage import KeyValueStorage
from devflow.errors import DevFlowError

logger = logging.getLogger(__name__)

HISTORY_KEY = "chatHistory"


class Relay(Protocol):
    def ask(self, prompt: str, session_id: str | None = None) -> AsyncIterator[str]: ...


class ChatShell:
    """Client-side chat state machine."""

    def __init__(
        self,
        relay: Relay,
        storage: KeyValueStorage,
        *,
        selection: SelectionChannel | None = None,
        renderer: Renderer | None = None,
        clipboard: Clipboard | None = None,
    ):
        self.relay = relay
        self.storage = storage
        self.renderer = renderer
        self.clipboard = clipboard
        self.session_id = uuid.uuid4().hex
        self.input = ""
        self.loading = False
        self.last_error: DevFlowError | None = None
        self.conversation = Conversation(on_change=self._on_change)
        self._subscription: Subscription | None = None
        if selection is not None:
            self._subscription = selection.subscribe(self._on_selection)

    # ------------------------------------------------------------------
    # State plumbing
    # ------------------------------------------------------------------

    def _on_change(self) -> None:
        self.persist()
        self.render()

    def _on_selection(self, text: str) -> None:
        if isinstance(text, str) and text.strip():
            self.input = text

    def turns(self) -> list[Turn]:
        return self.conversation.turns()

    def render(self) -> None:
        if self.renderer is not None:
            self.renderer.render(self.conversation.turns(), self.loading)

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def persist(self) -> None:
        """Overwrite the stored history with the full turn list."""
        self.storage.set(HISTORY_KEY, self.conversation.to_list())

    def restore(self) -> int:
        """Replace the in-memory conversation with the stored one.

        Returns the number of turns restored.  A missing or unreadable record
        leaves the conversation untouched.
        """
        data = self.storage.get(HISTORY_KEY)
        if data is None:
            return 0
        try:
            turns = Conversation.turns_from_list(data)
        except ValueError as e:
            logger.warning(f"Ignoring stored history: {e}")
            return 0
        self.conversation.replace_all(turns)
        return len(turns)

    def clear(self) -> None:
        """Drop every turn and the stored copy."""
        self.conversation.clear()
        self.storage.remove(HISTORY_KEY)
        self.last_error = None
        self.render()

    # ------------------------------------------------------------------
    # Submit
    # ------------------------------------------------------------------

    async def submit(self, prompt: str | None = None) -> Turn | None:
        """Send *prompt* (or the pending input) and stream the reply.

        Returns the finished assistant turn, or None when there was nothing to
        send or a request is already running.
        """
        text = (self.input if prompt is None else prompt).strip()
        if not text or self.loading:
            return None

        self.last_error = None
        self.conversation.append_user(text)
        self.input = ""
        self.loading = True
        handle = self.conversation.begin_assistant()
        try:
            async for fragment in self.relay.ask(text, self.session_id):
                handle.append(fragment)
            handle.complete()
        except DevFlowError as e:
            logger.error(f"Request failed: {e}")
            self.last_error = e
            handle.fail()
        finally:
            if not handle.closed:
                handle.fail()
            self.loading = False
            self.render()
        return self.turns()[-1]

    async def resubmit(self) -> Turn | None:
        """Send the most recent user prompt again."""
        prompt = self.conversation.last_user_prompt()
        if prompt is None:
            return None
        return await self.submit(prompt)

    # ------------------------------------------------------------------
    # Code blocks
    # ------------------------------------------------------------------

    def copy_code(self, number: int) -> str:
        """Copy code block *number* (1-based) to the clipboard and return it."""
        blocks = conversation_code_blocks(self.conversation.turns())
        if not 1 <= number <= len(blocks):
            raise IndexError(f"no code block #{number} (have {len(blocks)})")
        code = blocks[number - 1].code
        if self.clipboard is not None:
            self.clipboard.copy(code)
        return code
