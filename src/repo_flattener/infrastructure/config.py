"""Application configuration — loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from env vars (or ``.env`` file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    github_token: SecretStr | None = None
    max_file_bytes: int = 50 * 1024
    fetch_concurrency: int = 6
    request_timeout_s: float = 30.0
    rate_limit_retries: int = 3
    disclosure_batch_size: int = 8
    search_debounce_ms: int = 300
    search_max_files: int = 100
    search_max_results: int = 100
    commit_page_size: int = 30
    result_cache_size: int = 16
    state_file: str = ".repo_flattener_state.json"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings (cached after first call)."""
    return Settings()
