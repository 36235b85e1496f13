"""Content fetcher — download included files and re-check them against the bytes.

Fetches run concurrently behind a fixed-width semaphore.  The output keeps
the original tree order even though completions arrive out of order.
"""

from __future__ import annotations

import asyncio
import logging

from repo_flattener.domain.cancellation import CancellationSignal
from repo_flattener.domain.entities import (
    INCLUDE,
    EntryKind,
    FileRecord,
    InclusionDecision,
    SkipReason,
    Snapshot,
    TreeEntry,
)
from repo_flattener.domain.exceptions import OperationCancelledError, RepoFlattenerError
from repo_flattener.domain.ports.repo_source import RepoSource
from repo_flattener.domain.value_objects import RepoRef
from repo_flattener.services.file_filter import MAX_BYTES, classify, is_markdown

logger = logging.getLogger(__name__)

SNIFF_WINDOW = 8 * 1024
DEFAULT_CONCURRENCY = 6


def looks_binary(data: bytes) -> bool:
    """More than one NUL byte in the first 8 KiB marks the payload as binary."""
    return data[:SNIFF_WINDOW].count(0) > 1


def decode_text(data: bytes) -> str:
    """Decode UTF-8, replacing malformed sequences and dropping a leading BOM."""
    return data.decode("utf-8-sig", errors="replace")


class ContentFetcher:
    """Turn a snapshot's blobs into ordered, classified :class:`FileRecord` s.

    Parameters
    ----------
    source:
        Adapter that returns raw bytes for a path at a commit.
    concurrency:
        Maximum number of fetches in flight at once.
    max_bytes:
        Files larger than this are skipped without being downloaded.
    """

    def __init__(
        self,
        source: RepoSource,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        max_bytes: int = MAX_BYTES,
    ) -> None:
        self._source = source
        self._concurrency = max(concurrency, 1)
        self._max_bytes = max_bytes

    async def fetch_all(
        self,
        ref: RepoRef,
        snapshot: Snapshot,
        cancel: CancellationSignal | None = None,
    ) -> list[FileRecord]:
        """Classify every blob and fetch the included ones.

        Raises :class:`OperationCancelledError` if *cancel* fires; no partial
        list is returned in that case.
        """
        cancel = cancel or CancellationSignal()
        sem = asyncio.Semaphore(self._concurrency)
        blobs = [e for e in snapshot.entries if e.kind is EntryKind.BLOB]

        decisions = [classify(e.path, e.size or 0, self._max_bytes) for e in blobs]

        async def _process(entry: TreeEntry, decision: InclusionDecision) -> FileRecord:
            size = entry.size or 0
            if not decision.included:
                return FileRecord(path=entry.path, size=size, decision=decision)
            async with sem:
                cancel.raise_if_cancelled()
                return await self._fetch_one(ref, snapshot.commit_id, entry.path, size)

        included = sum(1 for d in decisions if d.included)
        logger.info(
            "Fetching %d of %d files from %s (concurrency %d)",
            included,
            len(blobs),
            ref.full_name,
            self._concurrency,
        )

        tasks = [
            asyncio.ensure_future(_process(entry, decision))
            for entry, decision in zip(blobs, decisions)
        ]
        try:
            records = await cancel.guard(asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            raise
        return list(records)

    async def _fetch_one(
        self, ref: RepoRef, commit_id: str, path: str, size: int
    ) -> FileRecord:
        try:
            data = await self._source.get_raw(ref, commit_id, path)
        except OperationCancelledError:
            raise
        except (RepoFlattenerError, TimeoutError) as exc:
            logger.debug("Failed to fetch %s — skipping: %s", path, exc)
            return _skipped(path, size, SkipReason.FETCH_ERROR)

        if len(data) > self._max_bytes:
            logger.debug("%s is %d bytes on the wire — skipping as too large", path, len(data))
            return _skipped(path, size, SkipReason.TOO_LARGE)
        if looks_binary(data):
            logger.debug("%s sniffed as binary", path)
            return _skipped(path, size, SkipReason.BINARY)

        return FileRecord(
            path=path,
            size=size,
            decision=INCLUDE,
            content=decode_text(data),
            is_markdown=is_markdown(path),
        )


def _skipped(path: str, size: int, reason: SkipReason) -> FileRecord:
    return FileRecord(path=path, size=size, decision=InclusionDecision.excluded(reason))
