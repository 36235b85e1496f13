"""In-memory fakes of the RepoSource port for service and API tests."""

from __future__ import annotations

import asyncio
from typing import Iterable

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
    RepoNotFoundError,
    TreeUnavailableError,
)
from repo_flattener.domain.value_objects import RepoRef


class FakeRepoSource:
    """Serves a fixed snapshot; records every call for assertions."""

    def __init__(
        self,
        files: dict[str, bytes],
        *,
        commit_id: str = "c0ffee0000000000000000000000000000000000",
        dirs: Iterable[str] = (),
        sizes: dict[str, int] | None = None,
        failing: Iterable[str] = (),
        revisions: dict[str, str] | None = None,
        delays: dict[str, float] | None = None,
        missing_repo: bool = False,
        tree_fails: bool = False,
        truncated: bool = False,
    ) -> None:
        self.files = files
        self.commit_id = commit_id
        self.dirs = list(dirs)
        self.sizes = sizes or {}
        self.failing = set(failing)
        self.revisions = revisions or {}
        self.delays = delays or {}
        self.missing_repo = missing_repo
        self.tree_fails = tree_fails
        self.truncated = truncated
        self.calls: list[str] = []
        self.raw_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_latest_commit(self, ref: RepoRef) -> str:
        self.calls.append("latest")
        if self.missing_repo:
            raise RepoNotFoundError(f"Repository {ref.full_name} not found (HTTP 404).")
        return self.commit_id

    async def get_commit(self, ref: RepoRef, revision: str) -> str:
        self.calls.append(f"commit:{revision}")
        if revision not in self.revisions:
            raise CommitNotFoundError(f"Revision '{revision}' not found.")
        return self.revisions[revision]

    async def get_tree(self, ref: RepoRef, commit_id: str) -> Snapshot:
        self.calls.append(f"tree:{commit_id}")
        if self.tree_fails:
            raise TreeUnavailableError("Tree listing failed (HTTP 500).")
        entries = [TreeEntry(path=d, kind=EntryKind.TREE) for d in self.dirs]
        entries += [
            TreeEntry(path=p, kind=EntryKind.BLOB, size=self.sizes.get(p, len(data)))
            for p, data in self.files.items()
        ]
        return Snapshot(commit_id=commit_id, entries=tuple(entries), truncated=self.truncated)

    async def get_raw(self, ref: RepoRef, commit_id: str, path: str) -> bytes:
        self.raw_calls.append(path)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(path, 0))
            if path in self.failing:
                raise FileFetchError(f"raw.githubusercontent.com returned HTTP 500 for {path}")
            return self.files[path]
        finally:
            self.in_flight -= 1

    async def list_commits(self, ref: RepoRef, page_size: int) -> list[CommitInfo]:
        self.calls.append(f"list:{page_size}")
        who = Signature(name="Ada", email="ada@example.com", date="2024-01-01T00:00:00Z")
        return [
            CommitInfo(id=self.commit_id, message="Initial commit", author=who, committer=who)
        ][:page_size]
