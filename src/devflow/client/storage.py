"""Keyed record storage for the chat client.

The client keeps exactly one record, the serialized conversation, and always
overwrites or removes it as a whole.  Two backends:

- ``MemoryStorage``: process-local, used by tests and ``--no-history``.
- ``JsonFileStorage``: one JSON object on disk, written atomically using a
  temp file + rename so a crash never leaves half a history behind.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """Protocol for keyed record backends."""

    def get(self, key: str) -> Any | None:
        """Return the record stored under *key*, or None."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*, replacing any previous record."""
        ...

    def remove(self, key: str) -> None:
        """Delete the record under *key*. Missing keys are ignored."""
        ...


class MemoryStorage:
    """Dict-backed storage. Values are deep-copied in and out."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str) -> Any | None:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonFileStorage:
    """Stores all records in a single JSON object file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Error loading {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Ignoring {self.path}: expected a JSON object")
            return {}
        return data

    def _save(self, data: dict[str, Any]) -> None:
        temp_path = self.path.with_suffix(".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(self.path)
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def get(self, key: str) -> Any | None:
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)
