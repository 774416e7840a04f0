"""DevFlow: a streaming LLM relay and the chat client that talks to it."""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _get_version

try:
    __version__ = _get_version("devflow")
except PackageNotFoundError:
    __version__ = "0.0.0"
