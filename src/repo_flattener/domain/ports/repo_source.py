"""Port: repository source — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol

from repo_flattener.domain.entities import CommitInfo, Snapshot
from repo_flattener.domain.value_objects import RepoRef


class RepoSource(Protocol):
    """Abstract contract for reading an immutable repository snapshot.

    Every method surfaces non-2xx responses as domain exceptions.
    """

    async def get_latest_commit(self, ref: RepoRef) -> str:
        """Return the id of the most recent commit on the default branch."""
        ...

    async def get_commit(self, ref: RepoRef, revision: str) -> str:
        """Resolve *revision* (sha, branch or tag) to a concrete commit id."""
        ...

    async def get_tree(self, ref: RepoRef, commit_id: str) -> Snapshot:
        """Return the full recursive listing of the commit's root tree."""
        ...

    async def get_raw(self, ref: RepoRef, commit_id: str, path: str) -> bytes:
        """Return the raw bytes of *path* at *commit_id*."""
        ...

    async def list_commits(self, ref: RepoRef, page_size: int) -> list[CommitInfo]:
        """Return the most recent commits on the default branch."""
        ...
