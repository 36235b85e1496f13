"""GitHub REST API adapter — implements the RepoSource port."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable
from urllib.parse import quote

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from repo_flattener.domain.entities import (
    CommitInfo,
    EntryKind,
    Signature,
    Snapshot,
    TreeEntry,
)
from repo_flattener.domain.exceptions import (
    CommitNotFoundError,
    FileFetchError,
    RateLimitError,
    RepoFlattenerError,
    RepoNotFoundError,
    TreeUnavailableError,
    UpstreamError,
)
from repo_flattener.domain.value_objects import RepoRef

logger = logging.getLogger(__name__)

_GITHUB_API = "https://api.github.com"
_RAW_BASE = "https://raw.githubusercontent.com"
_USER_AGENT = "repo-flattener/1.0"


class GitHubRestAdapter:
    """Concrete RepoSource backed by the GitHub v3 REST API.

    Rate-limited responses (429, or 403 with an exhausted quota) are retried
    with jittered exponential backoff before surfacing as errors.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str | None = None,
        *,
        rate_limit_retries: int = 3,
        retry_wait: wait_base | None = None,
    ) -> None:
        self._client = client
        self._retries = max(rate_limit_retries, 0)
        self._retry_wait = retry_wait or wait_exponential_jitter(initial=1, max=30)
        self._api_headers: dict[str, str] = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": _USER_AGENT,
        }
        if token:
            self._api_headers["Authorization"] = f"Bearer {token}"

    async def get_latest_commit(self, ref: RepoRef) -> str:
        """GET /repos/{owner}/{repo}/commits?per_page=1 → newest sha."""
        resp = await self._api_get(
            f"/repos/{ref.owner}/{ref.name}/commits",
            params={"per_page": "1"},
            on_status=lambda status: RepoNotFoundError(
                f"Repository {ref.full_name} not found (HTTP {status}). "
                "Make sure the URL points to a public repository."
            ),
        )
        commits = _json(resp, f"Commit listing for {ref.full_name}")
        head = commits[0] if isinstance(commits, list) and commits else None
        sha = head.get("sha") if isinstance(head, dict) else None
        if not sha:
            raise RepoNotFoundError(f"Repository {ref.full_name} has no commits.")
        return str(sha)

    async def get_commit(self, ref: RepoRef, revision: str) -> str:
        """GET /repos/{owner}/{repo}/commits/{revision} → resolved sha."""
        resp = await self._api_get(
            f"/repos/{ref.owner}/{ref.name}/commits/{quote(revision, safe='')}",
            on_status=lambda status: CommitNotFoundError(
                f"Revision '{revision}' not found in {ref.full_name} (HTTP {status})."
            ),
        )
        data = _json(resp, f"Commit data for {ref.full_name}")
        sha = data.get("sha") if isinstance(data, dict) else None
        if not sha:
            raise CommitNotFoundError(
                f"Revision '{revision}' did not resolve to a commit in {ref.full_name}."
            )
        return str(sha)

    async def get_tree(self, ref: RepoRef, commit_id: str) -> Snapshot:
        """GET /repos/{owner}/{repo}/git/trees/{sha}?recursive=1 → Snapshot."""

        def _unavailable(status: int) -> RepoFlattenerError:
            return TreeUnavailableError(
                f"Tree listing for {ref.full_name}@{commit_id} failed (HTTP {status})."
            )

        try:
            resp = await self._api_get(
                f"/repos/{ref.owner}/{ref.name}/git/trees/{commit_id}",
                params={"recursive": "1"},
                on_status=_unavailable,
            )
            data = resp.json()
        except UpstreamError as exc:
            raise TreeUnavailableError(str(exc)) from exc
        except ValueError as exc:
            raise TreeUnavailableError(
                f"Tree listing for {ref.full_name}@{commit_id} is not valid JSON."
            ) from exc
        if not isinstance(data, dict):
            raise TreeUnavailableError(
                f"Tree listing for {ref.full_name}@{commit_id} has an unexpected shape."
            )

        truncated = bool(data.get("truncated", False))
        if truncated:
            logger.warning(
                "Tree listing for %s@%s was truncated upstream; some files are missing",
                ref.full_name,
                commit_id,
            )
        return Snapshot(
            commit_id=commit_id,
            entries=tuple(_parse_tree(data.get("tree", []))),
            truncated=truncated,
        )

    async def get_raw(self, ref: RepoRef, commit_id: str, path: str) -> bytes:
        """Fetch raw bytes via raw.githubusercontent.com."""
        raw_url = f"{_RAW_BASE}/{ref.owner}/{ref.name}/{commit_id}/{quote(path)}"
        try:
            async for attempt in self._retrying():
                with attempt:
                    resp = await self._raw_get_once(raw_url, path)
        except RateLimitError as exc:
            raise FileFetchError(f"Rate limited fetching {path}: {exc}") from exc
        return resp.content

    async def list_commits(self, ref: RepoRef, page_size: int) -> list[CommitInfo]:
        """GET /repos/{owner}/{repo}/commits?per_page=N → [CommitInfo]."""
        resp = await self._api_get(
            f"/repos/{ref.owner}/{ref.name}/commits",
            params={"per_page": str(page_size)},
            on_status=lambda status: RepoNotFoundError(
                f"Could not list commits for {ref.full_name} (HTTP {status})."
            ),
        )
        data = _json(resp, f"Commit listing for {ref.full_name}")
        if not isinstance(data, list):
            raise UpstreamError(f"Unexpected commit listing for {ref.full_name}.")
        return [_parse_commit(item) for item in data]

    # ── HTTP helpers ────────────────────────────────────────────────────

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self._retries + 1),
            wait=self._retry_wait,
            retry=retry_if_exception_type(RateLimitError),
            reraise=True,
        )

    async def _raw_get_once(self, raw_url: str, path: str) -> httpx.Response:
        try:
            resp = await self._client.get(raw_url, headers={"User-Agent": _USER_AGENT})
        except httpx.HTTPError as exc:
            raise FileFetchError(f"Network error fetching {raw_url}: {exc}") from exc

        if resp.is_success:
            return resp
        if resp.status_code == 429:
            raise RateLimitError(f"raw.githubusercontent.com rate limited {path}.")
        raise FileFetchError(
            f"raw.githubusercontent.com returned HTTP {resp.status_code} for {path}"
        )

    async def _api_get(
        self,
        endpoint: str,
        params: dict[str, str] | None = None,
        *,
        on_status: Callable[[int], RepoFlattenerError],
    ) -> httpx.Response:
        """Perform a GitHub API GET request with retry and error translation."""
        async for attempt in self._retrying():
            with attempt:
                resp = await self._api_get_once(endpoint, params, on_status)
        return resp

    async def _api_get_once(
        self,
        endpoint: str,
        params: dict[str, str] | None,
        on_status: Callable[[int], RepoFlattenerError],
    ) -> httpx.Response:
        url = f"{_GITHUB_API}{endpoint}"
        try:
            resp = await self._client.get(
                url, headers=self._api_headers, params=params
            )
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Network error fetching {url}: {exc}") from exc

        if resp.is_success:
            return resp

        if resp.status_code == 403 and resp.headers.get("x-ratelimit-remaining") == "0":
            reset_raw = resp.headers.get("x-ratelimit-reset", "")
            try:
                reset_str = datetime.fromtimestamp(int(reset_raw), tz=timezone.utc).strftime(
                    "%Y-%m-%d %H:%M:%S UTC"
                )
            except (ValueError, OSError):
                reset_str = reset_raw or "unknown"
            logger.info("GitHub rate limit hit on %s (resets %s)", endpoint, reset_str)
            raise RateLimitError(
                f"GitHub API rate limit exceeded. Resets at {reset_str}. "
                "Set the GITHUB_TOKEN environment variable to increase the limit."
            )

        if resp.status_code == 429:
            logger.info("GitHub returned 429 on %s", endpoint)
            raise RateLimitError("GitHub API rate limit exceeded (HTTP 429).")

        raise on_status(resp.status_code)


# ── Parsing ─────────────────────────────────────────────────────────────────


def _json(resp: httpx.Response, what: str) -> Any:
    """Decode a 200 body, reporting a non-JSON payload as an upstream fault."""
    try:
        return resp.json()
    except ValueError as exc:
        raise UpstreamError(f"{what} is not valid JSON.") from exc


def _parse_tree(items: list[dict[str, Any]]) -> list[TreeEntry]:
    entries: list[TreeEntry] = []
    for item in items:
        kind = item.get("type")
        # submodules come back as "commit" and have no content to render
        if kind not in (EntryKind.BLOB.value, EntryKind.TREE.value):
            continue
        size = item.get("size")
        entries.append(
            TreeEntry(
                path=item["path"],
                kind=EntryKind(kind),
                size=int(size) if size is not None else None,
            )
        )
    return entries


def _parse_signature(data: dict[str, Any] | None) -> Signature:
    data = data or {}
    return Signature(
        name=data.get("name", ""),
        email=data.get("email", ""),
        date=data.get("date", ""),
    )


def _parse_commit(item: dict[str, Any]) -> CommitInfo:
    commit = item.get("commit", {})
    return CommitInfo(
        id=item["sha"],
        message=commit.get("message", ""),
        author=_parse_signature(commit.get("author")),
        committer=_parse_signature(commit.get("committer")),
    )
