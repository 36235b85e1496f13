"""Document assembler — partition classified files and build the result artifacts.

This is the final transformation before a :class:`ProcessResult` is handed
to consumers; nothing downstream mutates it.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from repo_flattener.domain.entities import (
    EntryKind,
    FileRecord,
    ProcessResult,
    SkipReason,
    Snapshot,
    TocEntry,
)
from repo_flattener.domain.value_objects import RepoRef
from repo_flattener.services import container_serializer

logger = logging.getLogger(__name__)

_ANCHOR_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_-]")
_SIZE_UNITS = ("B", "KiB", "MiB", "GiB", "TiB")


def slugify(path: str) -> str:
    """URL-safe anchor: every character outside ``[A-Za-z0-9_-]`` becomes ``-``."""
    return _ANCHOR_UNSAFE_RE.sub("-", path)


def bytes_human(n: int) -> str:
    """Format a byte count as ``"812 B"`` or ``"1.5 KiB"``."""
    value = float(n)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    if unit == 0:
        return f"{value:.0f} {_SIZE_UNITS[unit]}"
    return f"{value:.1f} {_SIZE_UNITS[unit]}"


def build_tree_text(snapshot: Snapshot, repo_name: str) -> str:
    """Sorted listing of every tree and blob path, headed by the repo name."""
    paths = sorted(
        e.path for e in snapshot.entries if e.kind in (EntryKind.TREE, EntryKind.BLOB)
    )
    return "\n".join([repo_name, *paths])


def build_table_of_contents(rendered: Sequence[FileRecord]) -> tuple[TocEntry, ...]:
    return tuple(
        TocEntry(anchor=slugify(f.path), path=f.path, size=f.size) for f in rendered
    )


def filter_table_of_contents(toc: Sequence[TocEntry], text: str) -> tuple[TocEntry, ...]:
    """Entries whose path contains *text*, case-insensitively; all of them if blank."""
    needle = text.lower()
    if not needle:
        return tuple(toc)
    return tuple(entry for entry in toc if needle in entry.path.lower())


def assemble(
    ref: RepoRef,
    repo_url: str,
    snapshot: Snapshot,
    files: Sequence[FileRecord],
) -> ProcessResult:
    """Build the immutable :class:`ProcessResult` for one run.

    *files* must already be in tree order; every partition keeps that order.
    """
    rendered = tuple(f for f in files if f.decision.included)
    skipped_binary = tuple(f for f in files if f.decision.reason is SkipReason.BINARY)
    skipped_large = tuple(f for f in files if f.decision.reason is SkipReason.TOO_LARGE)
    skipped_ignored = tuple(f for f in files if f.decision.reason is SkipReason.IGNORED)
    skipped_fetch_error = tuple(
        f for f in files if f.decision.reason is SkipReason.FETCH_ERROR
    )

    result = ProcessResult(
        owner=ref.owner,
        name=ref.name,
        commit_id=snapshot.commit_id,
        files=tuple(files),
        rendered=rendered,
        skipped_binary=skipped_binary,
        skipped_large=skipped_large,
        skipped_ignored=skipped_ignored,
        tree_text=build_tree_text(snapshot, ref.name),
        container_text=container_serializer.serialize(rendered, repo_url),
        table_of_contents=build_table_of_contents(rendered),
        skipped_fetch_error=skipped_fetch_error,
        tree_truncated=snapshot.truncated,
    )
    logger.info(
        "Assembled %s@%s: %d rendered, %d binary, %d large, %d ignored, %d fetch errors",
        ref.full_name,
        snapshot.commit_id[:12],
        len(rendered),
        len(skipped_binary),
        len(skipped_large),
        len(skipped_ignored),
        len(skipped_fetch_error),
    )
    return result
