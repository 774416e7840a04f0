"""Terminal rendering for the chat client.

Each turn is rendered as markdown through Rich, which highlights fenced code
blocks by language.  Code blocks are also extracted and numbered across the
whole conversation so any of them can be copied with ``/copy N``.

Renderers only ever see snapshots of the conversation.
"""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass
from typing import Protocol

from rich.console import Console, Group
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text

from devflow.client.conversation import Role, Turn, TurnStatus

_FENCE_RE = re.compile(
    r"^(?P<fence>`{3,}|~{3,})[ \t]*(?P<lang>[\w+#.-]*)[^\n]*\n(?P<code>.*?)^(?P=fence)[ \t]*$",
    re.MULTILINE | re.DOTALL,
)


@dataclass(frozen=True)
class CodeBlock:
    language: str
    code: str


def extract_code_blocks(markdown: str) -> list[CodeBlock]:
    """Return the closed fenced code blocks of *markdown* in order."""
    return [
        CodeBlock(language=m.group("lang") or "text", code=m.group("code").rstrip("\n"))
        for m in _FENCE_RE.finditer(markdown)
    ]


def conversation_code_blocks(turns: list[Turn]) -> list[CodeBlock]:
    """All code blocks of the assistant turns, numbered from 1 by position."""
    blocks: list[CodeBlock] = []
    for turn in turns:
        if turn.role is Role.ASSISTANT:
            blocks.extend(extract_code_blocks(turn.content))
    return blocks


class Renderer(Protocol):
    def render(self, turns: list[Turn], loading: bool) -> None: ...


class Clipboard(Protocol):
    def copy(self, text: str) -> None: ...


class TerminalClipboard:
    """Copies text through the OSC 52 escape sequence understood by most terminals."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def copy(self, text: str) -> None:
        payload = base64.b64encode(text.encode("utf-8")).decode("ascii")
        self.console.file.write(f"\x1b]52;c;{payload}\x07")
        self.console.file.flush()


def _turn_panel(turn: Turn, first_block: int) -> Panel:
    body = Markdown(turn.content or "…", code_theme="one-dark")
    if turn.role is Role.USER:
        return Panel(body, title="you", title_align="right", border_style="green")

    parts: list = [body]
    blocks = extract_code_blocks(turn.content)
    if blocks:
        labels = ", ".join(
            f"/copy {first_block + i} ({b.language})" for i, b in enumerate(blocks)
        )
        parts.append(Text(labels, style="dim"))
    subtitle = None
    if turn.status is TurnStatus.INCOMPLETE:
        subtitle = "[red]incomplete, /retry to resend[/red]"
    elif turn.status is TurnStatus.STREAMING:
        subtitle = "[dim]streaming…[/dim]"
    return Panel(Group(*parts), title="DevFlow", title_align="left",
                 border_style="cyan", subtitle=subtitle)


class RichRenderer:
    """Prints finished turns once and live-updates the one being streamed."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()
        self._printed = 0
        self._blocks_printed = 0
        self._live: Live | None = None

    def _stop_live(self) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None

    def render(self, turns: list[Turn], loading: bool) -> None:
        if len(turns) < self._printed:
            # Conversation was cleared or replaced.
            self._stop_live()
            self.console.clear()
            self._printed = 0
            self._blocks_printed = 0

        while self._printed < len(turns):
            turn = turns[self._printed]
            if turn.status is TurnStatus.STREAMING:
                panel = _turn_panel(turn, self._blocks_printed + 1)
                if self._live is None:
                    self._live = Live(panel, console=self.console, refresh_per_second=12)
                    self._live.start()
                else:
                    self._live.update(panel)
                return

            panel = _turn_panel(turn, self._blocks_printed + 1)
            if self._live is not None:
                self._live.update(panel)
                self._stop_live()
            else:
                self.console.print(panel)
            if turn.role is Role.ASSISTANT:
                self._blocks_printed += len(extract_code_blocks(turn.content))
            self._printed += 1
