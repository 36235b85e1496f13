"""Domain entities — pure data structures with no external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class EntryKind(str, Enum):
    """Node type in a GitHub tree listing."""

    BLOB = "blob"
    TREE = "tree"


class SkipReason(str, Enum):
    """Why a file was left out of the rendered set."""

    IGNORED = "ignored"
    TOO_LARGE = "too_large"
    BINARY = "binary"
    FETCH_ERROR = "fetch_error"


@dataclass(frozen=True, slots=True)
class TreeEntry:
    """A single node from the recursive tree listing (blob or sub-tree)."""

    path: str
    kind: EntryKind
    size: int | None = None


@dataclass(frozen=True, slots=True)
class Snapshot:
    """A resolved commit paired with its full recursive file listing."""

    commit_id: str
    entries: tuple[TreeEntry, ...]
    truncated: bool = False


@dataclass(frozen=True, slots=True)
class InclusionDecision:
    """Classifier verdict: included when *reason* is ``None``."""

    reason: SkipReason | None = None

    @property
    def included(self) -> bool:
        return self.reason is None

    @classmethod
    def excluded(cls, reason: SkipReason) -> InclusionDecision:
        return cls(reason=reason)


INCLUDE = InclusionDecision()


@dataclass(frozen=True, slots=True)
class FileRecord:
    """A classified blob, with decoded text when it was rendered."""

    path: str
    size: int
    decision: InclusionDecision
    content: str | None = None
    is_markdown: bool = False


@dataclass(frozen=True, slots=True)
class TocEntry:
    """One table-of-contents line for a rendered file."""

    anchor: str
    path: str
    size: int


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """The assembled, read-only output of one flatten run.

    ``rendered``, ``skipped_binary``, ``skipped_large``, ``skipped_ignored``
    and ``skipped_fetch_error`` partition ``files`` by decision, each in
    original tree order.
    """

    owner: str
    name: str
    commit_id: str
    files: tuple[FileRecord, ...]
    rendered: tuple[FileRecord, ...]
    skipped_binary: tuple[FileRecord, ...]
    skipped_large: tuple[FileRecord, ...]
    skipped_ignored: tuple[FileRecord, ...]
    tree_text: str
    container_text: str
    table_of_contents: tuple[TocEntry, ...]
    skipped_fetch_error: tuple[FileRecord, ...] = ()
    tree_truncated: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True, slots=True)
class Signature:
    """Author or committer identity attached to a commit."""

    name: str
    email: str
    date: str


@dataclass(frozen=True, slots=True)
class CommitInfo:
    """A commit as shown in the revision picker."""

    id: str
    message: str
    author: Signature
    committer: Signature


@dataclass(frozen=True, slots=True)
class SearchMatch:
    """A single hit: 1-based line and column plus a same-line context window."""

    line: int
    column: int
    text: str
    context: str


@dataclass(frozen=True, slots=True)
class SearchResult:
    """All matches found in one file, ranked by *score*."""

    file: FileRecord
    matches: tuple[SearchMatch, ...]
    score: int


@dataclass(frozen=True, slots=True)
class SearchOutcome:
    """The complete answer to one query.

    ``truncated`` is set when candidate files beyond the scan cap were never
    searched, or when ranked results were cut to the result cap.  ``error``
    carries the reason an invalid regex query produced no results.
    """

    query: str
    results: tuple[SearchResult, ...] = ()
    files_scanned: int = 0
    truncated: bool = False
    error: str | None = None


@dataclass(frozen=True, slots=True)
class NavigationState:
    """Back/forward history of visited paths."""

    current_path: str = ""
    history: tuple[str, ...] = field(default_factory=tuple)
    current_index: int = -1
