"""Snapshot resolution — pin a revision to a commit and list its whole tree."""

from __future__ import annotations

import logging

from repo_flattener.domain.cancellation import CancellationSignal
from repo_flattener.domain.entities import Snapshot
from repo_flattener.domain.ports.repo_source import RepoSource
from repo_flattener.domain.value_objects import RepoRef

logger = logging.getLogger(__name__)


async def resolve_commit(
    source: RepoSource,
    ref: RepoRef,
    revision: str | None = None,
    cancel: CancellationSignal | None = None,
) -> str:
    """Resolve *revision* (or the default branch head) to a commit id."""
    cancel = cancel or CancellationSignal()
    if revision:
        commit_id = await cancel.guard(source.get_commit(ref, revision))
    else:
        commit_id = await cancel.guard(source.get_latest_commit(ref))
    logger.info("Resolved %s@%s to %s", ref.full_name, revision or "HEAD", commit_id)
    return commit_id


async def resolve_snapshot(
    source: RepoSource,
    ref: RepoRef,
    revision: str | None = None,
    cancel: CancellationSignal | None = None,
    *,
    commit_id: str | None = None,
) -> Snapshot:
    """Resolve *revision* and fetch its tree.

    Exactly two round trips: commit metadata, then the recursive listing.
    A caller that already holds the resolved *commit_id* skips the first.
    A listing the upstream truncated is returned as-is with ``truncated`` set.
    """
    cancel = cancel or CancellationSignal()
    if commit_id is None:
        commit_id = await resolve_commit(source, ref, revision, cancel)

    snapshot = await cancel.guard(source.get_tree(ref, commit_id))
    logger.info(
        "Tree for %s@%s has %d entries", ref.full_name, commit_id[:12], len(snapshot.entries)
    )
    return snapshot
