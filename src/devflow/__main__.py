"""DevFlow entry point.

``devflow serve`` runs the streaming relay; ``devflow chat`` opens the
terminal chat client against a running relay.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from devflow import __version__
from devflow.config import get_settings
from devflow.errors import ConfigurationError
from devflow.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devflow",
        description="DevFlow: stream answers from a hosted LLM to your editor and browser",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  devflow serve                      Start the relay on $PORT (default 3000)
  devflow serve --host 0.0.0.0       Listen on all interfaces
  devflow serve --dev                Auto-reload on code changes
  devflow chat                       Chat with the relay at $DEVFLOW_RELAY_URL
  devflow chat --selection "$(pbpaste)"   Pre-fill the input with some text
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="Logging level (default: from settings)")

    parser.set_defaults(host=None, port=None, dev=False)
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the streaming relay")
    serve.add_argument("--host", default=None, help="Host to bind (default: settings.host)")
    serve.add_argument("--port", type=int, default=None, help="Port to bind (default: $PORT or 3000)")
    serve.add_argument("--dev", action="store_true", help="Enable auto-reload")

    chat = sub.add_parser("chat", help="Open the terminal chat client")
    chat.add_argument("--relay-url", default=None, help="Relay base URL (default: settings.relay_url)")
    chat.add_argument("--selection", default=None, help="Text to place in the input field")
    chat.add_argument("--no-history", action="store_true", help="Do not read or write chat history")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    setup_logging(level=args.log_level or settings.log_level)

    if args.command in (None, "serve"):
        from devflow.api.app import run_server

        try:
            settings.require_api_key()
            run_server(host=args.host, port=args.port, dev=args.dev)
        except ConfigurationError as e:
            logger.critical(f"{e.message}. {e.detail or ''}".strip())
            return 1
        return 0

    from devflow.client.terminal import run_chat

    if args.relay_url:
        settings = settings.model_copy(update={"relay_url": args.relay_url})
    try:
        asyncio.run(
            run_chat(settings, selection_text=args.selection, keep_history=not args.no_history)
        )
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
