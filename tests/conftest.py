"""Shared fixtures for API tests."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from repo_flattener.infrastructure.config import Settings
from repo_flattener.infrastructure.kv_store import MemoryStore
from repo_flattener.interface.app import create_app
from repo_flattener.interface.dependencies import (
    get_app_settings,
    get_navigation,
    get_preferences,
    get_result_cache,
    get_use_case,
)
from repo_flattener.services.flatten_repo import FlattenRepoUseCase
from repo_flattener.services.navigation_history import NavigationHistory
from repo_flattener.services.preferences import PreferencesStore
from repo_flattener.services.result_cache import ResultCache
from tests.fakes import FakeRepoSource


def parse_sse_events(raw: str) -> list[dict[str, str]]:
    """Parse raw SSE text into a list of ``{event, data}`` dicts."""
    events: list[dict[str, str]] = []
    current_event = ""
    current_data = ""

    for line in raw.replace("\r\n", "\n").split("\n"):
        line = line.strip()
        if line.startswith("event:"):
            current_event = line[6:].strip()
        elif line.startswith("data:"):
            current_data = line[5:].strip()
        elif line == "" and current_event:
            events.append({"event": current_event, "data": current_data})
            current_event = ""
            current_data = ""

    if current_event and current_data:
        events.append({"event": current_event, "data": current_data})
    return events


@pytest.fixture
def source() -> FakeRepoSource:
    return FakeRepoSource(
        {
            "README.md": b"# Widgets\n\nTODO: write docs\n",
            "src/app.py": b"def main():\n    return 1  # todo tidy\n",
            "logo.png": b"\x89PNG\x00\x00",
        },
        dirs=["src"],
        revisions={"v1.0": "1111111111111111111111111111111111111111"},
    )


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def app(source: FakeRepoSource, store: MemoryStore) -> FastAPI:
    """Application wired to the fake source and in-memory session state."""
    application = create_app()
    settings = Settings(disclosure_batch_size=2, search_debounce_ms=10)
    cache = ResultCache(8)
    navigation = NavigationHistory(store)
    preferences = PreferencesStore(store)

    application.dependency_overrides[get_app_settings] = lambda: settings
    application.dependency_overrides[get_use_case] = lambda: FlattenRepoUseCase(source)
    application.dependency_overrides[get_result_cache] = lambda: cache
    application.dependency_overrides[get_navigation] = lambda: navigation
    application.dependency_overrides[get_preferences] = lambda: preferences
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
