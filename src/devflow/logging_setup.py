"""Console logging setup shared by the ``devflow`` entry points."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_NOISY_LOGGERS = ("httpx", "httpcore", "openai._base_client")


def setup_logging(level: str = "INFO") -> None:
    """Route the root logger through a Rich handler on stderr.

    Safe to call more than once; the previous handlers are replaced.
    """
    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="[%X]"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
