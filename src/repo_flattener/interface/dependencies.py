"""FastAPI dependency injection wiring."""

from __future__ import annotations

from functools import lru_cache

import httpx

from repo_flattener.infrastructure.config import Settings, get_settings
from repo_flattener.infrastructure.github_rest_adapter import GitHubRestAdapter
from repo_flattener.infrastructure.kv_store import JsonFileStore
from repo_flattener.services.flatten_repo import FlattenRepoUseCase
from repo_flattener.services.navigation_history import NavigationHistory
from repo_flattener.services.preferences import PreferencesStore
from repo_flattener.services.result_cache import ResultCache

_http_client: httpx.AsyncClient | None = None
_result_cache: ResultCache | None = None
_navigation: NavigationHistory | None = None
_preferences: PreferencesStore | None = None


async def startup() -> None:
    """Initialise shared resources — called from the lifespan context manager."""
    global _http_client, _result_cache, _navigation, _preferences  # noqa: PLW0603

    settings = get_settings()
    _http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.request_timeout_s),
        follow_redirects=True,
    )
    _result_cache = ResultCache(settings.result_cache_size)
    store = JsonFileStore(settings.state_file)
    _navigation = NavigationHistory(store)
    _preferences = PreferencesStore(store)


async def shutdown() -> None:
    """Release shared resources."""
    global _http_client, _result_cache  # noqa: PLW0603

    if _http_client:
        await _http_client.aclose()
        _http_client = None
    _result_cache = None


@lru_cache(maxsize=1)
def _settings() -> Settings:
    return get_settings()


def get_app_settings() -> Settings:
    return _settings()


def get_use_case() -> FlattenRepoUseCase:
    """Build the use-case with the injected GitHub adapter."""
    settings = _settings()

    assert _http_client is not None, "startup() was not called"

    token = settings.github_token.get_secret_value() if settings.github_token else None
    github_adapter = GitHubRestAdapter(
        client=_http_client,
        token=token,
        rate_limit_retries=settings.rate_limit_retries,
    )

    return FlattenRepoUseCase(
        repo_source=github_adapter,
        fetch_concurrency=settings.fetch_concurrency,
        max_file_bytes=settings.max_file_bytes,
    )


def get_result_cache() -> ResultCache:
    assert _result_cache is not None, "startup() was not called"
    return _result_cache


def get_navigation() -> NavigationHistory:
    assert _navigation is not None, "startup() was not called"
    return _navigation


def get_preferences() -> PreferencesStore:
    assert _preferences is not None, "startup() was not called"
    return _preferences
