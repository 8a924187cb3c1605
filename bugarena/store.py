"""
Key-value stores for player progression.
Every write replaces one named slot; values must be JSON-compatible.
"""

import copy
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any


logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Base class for progression storage backends."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return a copy of the value stored under `key`, or `default`."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Replace the value stored under `key`."""

    @abstractmethod
    def keys(self) -> list[str]:
        """Names of all stored slots."""


class InMemoryStore(KeyValueStore):
    """Store that keeps slots in a dictionary. Used by tests and throwaway sessions."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStore(InMemoryStore):
    """Store backed by a single JSON document, rewritten on each `set`."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        super().__init__(self._read())

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        logger.debug("Loaded %d slots from %s", len(data), self.path)
        return data

    def set(self, key: str, value: Any) -> None:
        super().set(key, value)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, ensure_ascii=False, indent=2)
