"""Flatten-repository use case — the main orchestration pipeline.

This is the single entry point for the business logic.  It depends only on
the :class:`RepoSource` port and the pure service modules.  The interface
layer injects the concrete adapter at runtime.
"""

from __future__ import annotations

import logging

from repo_flattener.domain.cancellation import CancellationSignal
from repo_flattener.domain.entities import CommitInfo, ProcessResult
from repo_flattener.domain.ports.repo_source import RepoSource
from repo_flattener.domain.value_objects import RepoRef
from repo_flattener.services.content_fetcher import DEFAULT_CONCURRENCY, ContentFetcher
from repo_flattener.services.document_assembler import assemble
from repo_flattener.services.file_filter import MAX_BYTES
from repo_flattener.services.snapshot_resolver import resolve_commit, resolve_snapshot

logger = logging.getLogger(__name__)


class FlattenRepoUseCase:
    """Orchestrates the full URL → snapshot → files → :class:`ProcessResult` pipeline.

    Parameters
    ----------
    repo_source:
        Adapter that can resolve commits, list trees and fetch raw bytes.
    fetch_concurrency:
        Width of the per-file fetch pool.
    max_file_bytes:
        Skip files larger than this threshold.
    """

    def __init__(
        self,
        repo_source: RepoSource,
        fetch_concurrency: int = DEFAULT_CONCURRENCY,
        max_file_bytes: int = MAX_BYTES,
    ) -> None:
        self._source = repo_source
        self._fetcher = ContentFetcher(
            repo_source, concurrency=fetch_concurrency, max_bytes=max_file_bytes
        )

    # ── Public entry points ─────────────────────────────────────────────

    async def execute(
        self,
        url: str,
        revision: str | None = None,
        cancel: CancellationSignal | None = None,
        *,
        commit_id: str | None = None,
    ) -> ProcessResult:
        """Run the full pipeline and return the assembled result.

        Passing an already resolved *commit_id* skips the commit lookup.
        Fatal errors (bad URL, unknown repo or revision, missing tree,
        cancellation) propagate; per-file failures only degrade that file.
        """
        ref = RepoRef.from_url(url)
        cancel = cancel or CancellationSignal()
        logger.info("Flattening %s", ref.full_name)

        # 1. Pin the revision and list the tree
        snapshot = await resolve_snapshot(
            self._source, ref, revision, cancel, commit_id=commit_id
        )

        # 2. Classify and fetch content concurrently
        files = await self._fetcher.fetch_all(ref, snapshot, cancel)
        cancel.raise_if_cancelled()

        # 3. Partition and build the artifacts
        return assemble(ref, url.strip(), snapshot, files)

    async def resolve_commit(
        self,
        url: str,
        revision: str | None = None,
        cancel: CancellationSignal | None = None,
    ) -> str:
        """Pin *revision* (or HEAD) to a commit id without listing the tree."""
        return await resolve_commit(self._source, RepoRef.from_url(url), revision, cancel)

    async def list_commits(self, url: str, page_size: int = 30) -> list[CommitInfo]:
        """Return recent commits for the revision picker."""
        ref = RepoRef.from_url(url)
        return await self._source.list_commits(ref, page_size)
