"""Key-value persistence used for all durable engine state.

The engine only needs two operations, ``get(key)`` and ``set(key, value)``,
where values are JSON-compatible (the ``model_dump(mode="json")`` of a
Pydantic model, or a list of them).  Two backends are provided:

- :class:`InMemoryStore` -- for tests and throwaway simulations.
- :class:`JsonFileStore` -- one ``<key>.json`` file per key in a directory.

Reads never raise for bad data: an unreadable or unparsable value is
logged and reported as absent.  Writes raise :class:`PersistenceError`.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from delvers_descent.core.errors import PersistenceError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Minimal durable storage contract."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the value stored under *key*, or None when absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*.

        Raises
        ------
        PersistenceError
            If the value could not be written.
        """


class InMemoryStore(KeyValueStore):
    """Dict-backed store.

    Values are stored as JSON text so callers never alias stored state
    and non-serializable values fail the same way they would on disk.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Unparsable data for key '%s': %s", key, exc)
            return None

    def set(self, key: str, value: Any) -> None:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(key, str(exc)) from exc

    def set_raw(self, key: str, raw: str) -> None:
        """Store raw text under *key* (used to simulate corrupted data)."""
        self._data[key] = raw

    def get_raw(self, key: str) -> str | None:
        return self._data.get(key)

    def keys(self) -> list[str]:
        return sorted(self._data)


class JsonFileStore(KeyValueStore):
    """Store each key as ``<directory>/<key>.json``.

    Parameters
    ----------
    directory:
        Directory holding the files.  Created on first write.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Unreadable data for key '%s' at %s: %s", key, path, exc)
            return None

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            payload = json.dumps(value, indent=2)
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write then rename so a failed write never truncates old data.
            tmp = path.with_suffix(".json.tmp")
            tmp.write_text(payload)
            tmp.replace(path)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(key, str(exc)) from exc
