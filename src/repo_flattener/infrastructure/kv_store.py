"""Key-value stores — implement the KeyValueStore port.

Both stores are best-effort: a failing read behaves like a missing key and a
failing write is logged, so callers degrade to in-memory state.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class MemoryStore:
    """Process-local store, used in tests and when no state file is configured."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """Store persisted as a single JSON object on disk."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def get(self, key: str) -> str | None:
        value = (self._read() or {}).get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        if data is None:
            logger.warning("Not persisting key %r — %s could not be read", key, self._path)
            return
        data[key] = value
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp.replace(self._path)
        except OSError:
            logger.warning("Failed to persist key %r to %s", key, self._path, exc_info=True)

    def _read(self) -> dict[str, object] | None:
        """Current file contents; ``None`` when the file exists but can't be read.

        A missing or corrupt file reads as empty, so the next write replaces it.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError:
            logger.warning("Failed to read state file %s", self._path, exc_info=True)
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("State file %s is not valid JSON — ignoring", self._path)
            return {}
        return data if isinstance(data, dict) else {}
