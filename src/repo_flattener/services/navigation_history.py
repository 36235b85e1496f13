"""Navigation history — bounded back/forward stack of visited paths."""

from __future__ import annotations

import logging

from pydantic import BaseModel, ValidationError

from repo_flattener.domain.entities import NavigationState
from repo_flattener.domain.ports.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

NAV_KEY = "repo-browser-nav-state"
DEFAULT_MAX_ENTRIES = 100


class _StoredNavigation(BaseModel):
    current_path: str = ""
    history: list[str] = []
    current_index: int = -1


class NavigationHistory:
    """Browser-style history over a key-value store.

    ``navigate_to`` drops any forward entries before appending, and the
    oldest entries fall off once ``max_entries`` is reached.  Every change is
    written through to the store; a store that fails only loses persistence.
    """

    def __init__(
        self, store: KeyValueStore, *, max_entries: int = DEFAULT_MAX_ENTRIES
    ) -> None:
        self._store = store
        self._max_entries = max(max_entries, 1)
        self._state = self._load()

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def current_path(self) -> str:
        return self._state.current_path

    def navigate_to(self, path: str) -> None:
        history = list(self._state.history[: self._state.current_index + 1])
        history.append(path)
        history = history[-self._max_entries :]
        self._commit(NavigationState(path, tuple(history), len(history) - 1))

    def can_go_back(self) -> bool:
        return self._state.current_index > 0

    def can_go_forward(self) -> bool:
        return self._state.current_index < len(self._state.history) - 1

    def go_back(self) -> bool:
        if not self.can_go_back():
            return False
        self._move_to(self._state.current_index - 1)
        return True

    def go_forward(self) -> bool:
        if not self.can_go_forward():
            return False
        self._move_to(self._state.current_index + 1)
        return True

    def _move_to(self, index: int) -> None:
        history = self._state.history
        self._commit(NavigationState(history[index], history, index))

    def _commit(self, state: NavigationState) -> None:
        self._state = state
        stored = _StoredNavigation(
            current_path=state.current_path,
            history=list(state.history),
            current_index=state.current_index,
        )
        try:
            self._store.set(NAV_KEY, stored.model_dump_json())
        except Exception:
            logger.warning("Failed to save navigation state", exc_info=True)

    def _load(self) -> NavigationState:
        try:
            raw = self._store.get(NAV_KEY)
        except Exception:
            logger.warning("Failed to read navigation state", exc_info=True)
            return NavigationState()
        if not raw:
            return NavigationState()
        try:
            stored = _StoredNavigation.model_validate_json(raw)
        except ValidationError:
            logger.warning("Failed to parse stored navigation state — starting fresh")
            return NavigationState()

        history = tuple(stored.history[-self._max_entries :])
        index = stored.current_index - (len(stored.history) - len(history))
        if not history or not 0 <= index < len(history):
            return NavigationState()
        return NavigationState(history[index], history, index)
