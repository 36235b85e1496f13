"""Tests for the persisted back/forward navigation history."""

from __future__ import annotations

import json

from repo_flattener.domain.entities import NavigationState
from repo_flattener.infrastructure.kv_store import MemoryStore
from repo_flattener.services.navigation_history import NAV_KEY, NavigationHistory


class _BrokenStore:
    def get(self, key: str) -> str | None:
        raise OSError("storage unavailable")

    def set(self, key: str, value: str) -> None:
        raise OSError("storage unavailable")


def test_starts_empty() -> None:
    nav = NavigationHistory(MemoryStore())
    assert nav.state == NavigationState()
    assert not nav.can_go_back()
    assert not nav.can_go_forward()


def test_back_at_first_entry_is_a_no_op() -> None:
    nav = NavigationHistory(MemoryStore())
    nav.navigate_to("README.md")
    before = nav.state

    assert nav.go_back() is False
    assert nav.state == before
    assert nav.current_path == "README.md"


def test_back_and_forward() -> None:
    nav = NavigationHistory(MemoryStore())
    for path in ("a", "b", "c"):
        nav.navigate_to(path)

    assert nav.go_back() is True
    assert nav.current_path == "b"
    assert nav.go_back() is True
    assert nav.current_path == "a"
    assert nav.can_go_forward()
    assert nav.go_forward() is True
    assert nav.current_path == "b"
    assert nav.state.history == ("a", "b", "c")


def test_forward_at_last_entry_is_a_no_op() -> None:
    nav = NavigationHistory(MemoryStore())
    nav.navigate_to("a")
    assert nav.go_forward() is False
    assert nav.state.current_index == 0


def test_navigating_after_back_truncates_forward_history() -> None:
    nav = NavigationHistory(MemoryStore())
    for path in ("a", "b", "c"):
        nav.navigate_to(path)
    nav.go_back()
    nav.go_back()

    nav.navigate_to("d")

    assert nav.state.history == ("a", "d")
    assert nav.state.current_index == 1
    assert not nav.can_go_forward()


def test_history_is_bounded() -> None:
    nav = NavigationHistory(MemoryStore(), max_entries=3)
    for path in ("a", "b", "c", "d", "e"):
        nav.navigate_to(path)

    assert nav.state.history == ("c", "d", "e")
    assert nav.state.current_index == 2
    assert nav.current_path == "e"


def test_state_survives_a_new_instance() -> None:
    store = MemoryStore()
    nav = NavigationHistory(store)
    nav.navigate_to("a")
    nav.navigate_to("b")
    nav.go_back()

    restored = NavigationHistory(store)
    assert restored.state == NavigationState("a", ("a", "b"), 0)
    assert json.loads(store.get(NAV_KEY) or "{}")["current_index"] == 0


def test_corrupt_state_starts_fresh() -> None:
    for raw in ("not json", '{"history": "nope"}', '{"history": ["a"], "current_index": 5}'):
        nav = NavigationHistory(MemoryStore({NAV_KEY: raw}))
        assert nav.state == NavigationState()


def test_failing_store_keeps_working_in_memory() -> None:
    nav = NavigationHistory(_BrokenStore())
    nav.navigate_to("a")
    nav.navigate_to("b")
    assert nav.go_back() is True
    assert nav.current_path == "a"
