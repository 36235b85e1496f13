"""User preferences persisted through the key-value store."""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, ValidationError

from repo_flattener.domain.ports.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

SETTINGS_KEY = "repo-browser-settings"
MAX_RECENT_REPOS = 10


class UserPreferences(BaseModel):
    """Display and history preferences for the repository browser."""

    theme: Literal["light", "dark", "auto"] = "auto"
    sidebar_collapsed: bool = False
    sidebar_pinned: bool = False
    view_mode: Literal["human", "llm"] = "human"
    compact_view: bool = False
    show_line_numbers: bool = True
    font_size: int = 14
    code_theme: str = "vs-dark"
    auto_save: bool = True
    bookmarks: list[str] = []
    last_used_repos: list[str] = []


class PreferencesStore:
    """Load, mutate and write back :class:`UserPreferences`."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._prefs = self._load()

    @property
    def preferences(self) -> UserPreferences:
        return self._prefs

    def update(self, **changes: Any) -> UserPreferences:
        """Apply *changes*, validating them against the model."""
        merged = {**self._prefs.model_dump(), **changes}
        self._save(UserPreferences.model_validate(merged))
        return self._prefs

    def reset(self) -> UserPreferences:
        self._save(UserPreferences())
        return self._prefs

    def add_bookmark(self, repo_url: str) -> None:
        if repo_url not in self._prefs.bookmarks:
            self.update(bookmarks=[*self._prefs.bookmarks, repo_url])

    def remove_bookmark(self, repo_url: str) -> None:
        self.update(bookmarks=[b for b in self._prefs.bookmarks if b != repo_url])

    def add_last_used_repo(self, repo_url: str) -> None:
        """Move *repo_url* to the front of the recent list, keeping at most 10."""
        recent = [repo_url, *(r for r in self._prefs.last_used_repos if r != repo_url)]
        self.update(last_used_repos=recent[:MAX_RECENT_REPOS])

    def _save(self, prefs: UserPreferences) -> None:
        self._prefs = prefs
        try:
            self._store.set(SETTINGS_KEY, prefs.model_dump_json())
        except Exception:
            logger.warning("Failed to save preferences", exc_info=True)

    def _load(self) -> UserPreferences:
        try:
            raw = self._store.get(SETTINGS_KEY)
        except Exception:
            logger.warning("Failed to read preferences", exc_info=True)
            return UserPreferences()
        if not raw:
            return UserPreferences()
        try:
            return UserPreferences.model_validate_json(raw)
        except ValidationError:
            logger.warning("Failed to parse stored preferences — using defaults")
            return UserPreferences()
