# Interactive terminal front end for ``devflow chat``.
# Created: 2026-10-14

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from rich.console import Console

from devflow.client.relay_client import RelayClient
from devflow.client.render import RichRenderer, TerminalClipboard
from devflow.client.selection import SelectionChannel
from devflow.client.shell import ChatShell
from devflow.client.storage import JsonFileStorage, KeyValueStorage, MemoryStorage
from devflow.config import Settings

logger = logging.getLogger(__name__)

HELP = (
    "Type a question and press Enter.  Commands: "
    "/clear  /copy N  /retry  /help  /quit"
)


async def handle_line(shell: ChatShell, line: str, console: Console) -> bool:
    """Process one line of input. Returns False when the user wants to quit."""
    stripped = line.strip()

    if stripped in ("/quit", "/exit"):
        return False
    if stripped == "/help":
        console.print(HELP, style="dim")
        return True
    if stripped == "/clear":
        shell.clear()
        console.print("Conversation cleared.", style="dim")
        return True
    if stripped == "/retry":
        if await shell.resubmit() is None:
            console.print("Nothing to resend.", style="dim")
        _report_error(shell, console)
        return True
    if stripped == "/copy" or stripped.startswith("/copy "):
        arg = stripped[len("/copy"):].strip()
        try:
            shell.copy_code(int(arg))
        except ValueError:
            console.print("Usage: /copy N", style="yellow")
        except IndexError as e:
            console.print(str(e), style="yellow")
        else:
            console.print(f"Copied code block #{arg}.", style="dim")
        return True

    # An empty line sends whatever the selection channel pre-filled.
    if not stripped and shell.input.strip():
        await shell.submit()
    else:
        await shell.submit(stripped)
    _report_error(shell, console)
    return True


def _report_error(shell: ChatShell, console: Console) -> None:
    if shell.last_error is not None:
        console.print(
            f"Request failed: {shell.last_error.message.rstrip('.')}. Use /retry to send it again.",
            style="red",
        )


async def run_chat(
    settings: Settings,
    *,
    selection_text: str | None = None,
    keep_history: bool = True,
    console: Console | None = None,
    read_line: Callable[[str], str] | None = None,
) -> None:
    """Run the interactive chat loop until /quit or EOF."""
    console = console or Console()
    read_line = read_line or console.input
    storage: KeyValueStorage = (
        JsonFileStorage(settings.resolved_history_path()) if keep_history else MemoryStorage()
    )
    selection = SelectionChannel()

    async with RelayClient(settings.relay_url, timeout=settings.upstream_timeout * 2) as relay:
        shell = ChatShell(
            relay,
            storage,
            selection=selection,
            renderer=RichRenderer(console),
            clipboard=TerminalClipboard(console),
        )
        restored = shell.restore()
        if restored == 0:
            shell.render()
        console.print(HELP, style="dim")

        if selection_text:
            selection.publish(selection_text)
            if shell.input:
                console.print(f"Pending input: {shell.input!r}  (Enter to send)", style="cyan")

        try:
            while True:
                try:
                    line = await asyncio.to_thread(read_line, "[bold green]> [/bold green]")
                except EOFError:
                    break
                if not await handle_line(shell, line, console):
                    break
        finally:
            shell.close()
