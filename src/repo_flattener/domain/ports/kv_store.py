"""Port: persisted key-value store for preferences and navigation state."""

from __future__ import annotations

from typing import Protocol


class KeyValueStore(Protocol):
    """Best-effort string store; implementations log failures instead of raising."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...
