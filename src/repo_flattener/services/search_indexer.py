"""Search indexer — debounced, cancelable substring search over fetched files.

The scan is linear: each candidate file is split into lines and every
non-overlapping match is recorded with its 1-based line and column.  Only
the first ``max_files`` candidates are scanned; the outcome says so via
``truncated`` instead of dropping matches silently.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Sequence

from repo_flattener.domain.entities import (
    FileRecord,
    SearchMatch,
    SearchOutcome,
    SearchResult,
)

logger = logging.getLogger(__name__)

CONTEXT_RADIUS = 50
LINE_START_COLUMNS = 5
DEFAULT_DEBOUNCE_S = 0.3

_WORD_RE = re.compile(r"\w")


@dataclass(frozen=True, slots=True)
class SearchOptions:
    """Query interpretation and the performance caps of one scan."""

    case_sensitive: bool = False
    whole_word: bool = False
    regex: bool = False
    file_types: tuple[str, ...] = ()
    max_files: int = 100
    max_results: int = 100
    rank_bonuses: bool = True


# ── Pure search ─────────────────────────────────────────────────────────────


def build_pattern(query: str, options: SearchOptions) -> re.Pattern[str]:
    """Compile *query*; metacharacters are escaped unless regex mode is on.

    Raises :class:`re.error` for an invalid regex.
    """
    body = query if options.regex else re.escape(query)
    if options.whole_word:
        body = rf"(?<!\w)(?:{body})(?!\w)"
    flags = 0 if options.case_sensitive else re.IGNORECASE
    return re.compile(body, flags)


def _is_word_char(line: str, index: int) -> bool:
    return 0 <= index < len(line) and _WORD_RE.match(line[index]) is not None


def _extension(path: str) -> str:
    name = path.rsplit("/", maxsplit=1)[-1]
    dot = name.rfind(".")
    return name[dot + 1 :].lower() if dot > 0 else ""


def search_file(
    record: FileRecord, pattern: re.Pattern[str], options: SearchOptions
) -> SearchResult | None:
    """Scan one file; ``None`` when it has no content or no matches."""
    if not record.content:
        return None

    matches: list[SearchMatch] = []
    score = 0
    for line_no, line in enumerate(record.content.split("\n"), start=1):
        for m in pattern.finditer(line):
            start, end = m.span()
            if start == end:
                continue
            matches.append(
                SearchMatch(
                    line=line_no,
                    column=start + 1,
                    text=m.group(),
                    context=line[max(0, start - CONTEXT_RADIUS) : end + CONTEXT_RADIUS],
                )
            )
            score += 1
            if options.rank_bonuses:
                if not _is_word_char(line, start - 1) and not _is_word_char(line, end):
                    score += 1
                if start < LINE_START_COLUMNS:
                    score += 1

    if not matches:
        return None
    return SearchResult(file=record, matches=tuple(matches), score=score)


def _search_file_safely(
    record: FileRecord, pattern: re.Pattern[str], options: SearchOptions
) -> SearchResult | None:
    try:
        return search_file(record, pattern, options)
    except Exception:
        logger.debug("Search failed in %s — treating as no matches", record.path, exc_info=True)
        return None


def select_candidates(
    files: Iterable[FileRecord], options: SearchOptions
) -> tuple[list[FileRecord], bool]:
    """Return the files to scan and whether the file cap cut any off."""
    wanted = {t.lower().lstrip(".") for t in options.file_types}
    candidates = [
        f for f in files if f.content and (not wanted or _extension(f.path) in wanted)
    ]
    return candidates[: options.max_files], len(candidates) > options.max_files


def rank(
    query: str,
    results: list[SearchResult],
    files_scanned: int,
    options: SearchOptions,
    *,
    truncated: bool = False,
) -> SearchOutcome:
    """Sort by descending score (ties keep file order) and apply the result cap."""
    ordered = sorted(results, key=lambda r: -r.score)
    return SearchOutcome(
        query=query,
        results=tuple(ordered[: options.max_results]),
        files_scanned=files_scanned,
        truncated=truncated or len(ordered) > options.max_results,
    )


def search(
    query: str, files: Sequence[FileRecord], options: SearchOptions | None = None
) -> SearchOutcome:
    """Run one synchronous scan of *files* for *query*."""
    options = options or SearchOptions()
    if not query.strip():
        return SearchOutcome(query=query)
    try:
        pattern = build_pattern(query, options)
    except re.error as exc:
        return SearchOutcome(query=query, error=f"Invalid pattern: {exc}")

    scanned, truncated = select_candidates(files, options)
    results = [
        r for r in (_search_file_safely(f, pattern, options) for f in scanned) if r
    ]
    return rank(query, results, len(scanned), options, truncated=truncated)


def highlight(text: str, query: str, options: SearchOptions | None = None) -> str:
    """Wrap every match of *query* in *text* with ``<mark>`` tags."""
    options = options or SearchOptions()
    if not query.strip():
        return text
    try:
        pattern = build_pattern(query, options)
    except re.error:
        return text
    return pattern.sub(lambda m: f"<mark>{m.group()}</mark>" if m.group() else "", text)


# ── Debounced indexer ───────────────────────────────────────────────────────


class SearchIndexer:
    """Re-run the search whenever the query changes, last query wins.

    A non-empty query is scanned after *debounce_s* of quiet; any newer
    query cancels the pending or running scan so stale results are never
    published.  An empty query publishes an empty outcome immediately.
    """

    def __init__(
        self,
        publish: Callable[[SearchOutcome], None],
        *,
        options: SearchOptions | None = None,
        debounce_s: float = DEFAULT_DEBOUNCE_S,
    ) -> None:
        self._publish = publish
        self._options = options or SearchOptions()
        self._debounce_s = debounce_s
        self._files: tuple[FileRecord, ...] = ()
        self._query = ""
        self._generation = 0
        self._task: asyncio.Task[None] | None = None
        self._outcome = SearchOutcome(query="")

    @property
    def query(self) -> str:
        return self._query

    @property
    def outcome(self) -> SearchOutcome:
        return self._outcome

    @property
    def options(self) -> SearchOptions:
        return self._options

    @property
    def searching(self) -> bool:
        return self._task is not None and not self._task.done()

    def set_files(self, files: Iterable[FileRecord]) -> None:
        """Replace the candidate set; clears the query and any in-flight scan."""
        self._supersede()
        self._files = tuple(files)
        self._query = ""
        self._set_outcome(SearchOutcome(query=""))

    def set_query(self, query: str, options: SearchOptions | None = None) -> None:
        """Schedule a scan for *query*, optionally switching options first."""
        generation = self._supersede()
        if options is not None:
            self._options = options
        self._query = query
        if not query.strip():
            self._set_outcome(SearchOutcome(query=query))
            return
        self._task = asyncio.get_running_loop().create_task(
            self._debounced_scan(generation, query, self._files, self._options)
        )

    def set_options(self, **changes: object) -> None:
        """Update options and re-run the current query, if any."""
        self._options = replace(self._options, **changes)  # type: ignore[arg-type]
        if self._query.strip():
            self.set_query(self._query)

    async def wait_idle(self) -> None:
        """Wait for the current scan, if any, to publish or be superseded."""
        if self._task is not None:
            await asyncio.wait({self._task})

    def close(self) -> None:
        self._supersede()

    # ── Internals ───────────────────────────────────────────────────────

    def _supersede(self) -> int:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        return self._generation

    def _set_outcome(self, outcome: SearchOutcome) -> None:
        self._outcome = outcome
        self._publish(outcome)

    async def _debounced_scan(
        self,
        generation: int,
        query: str,
        files: tuple[FileRecord, ...],
        options: SearchOptions,
    ) -> None:
        await asyncio.sleep(self._debounce_s)
        try:
            pattern = build_pattern(query, options)
        except re.error as exc:
            if generation == self._generation:
                self._set_outcome(SearchOutcome(query=query, error=f"Invalid pattern: {exc}"))
            return

        scanned, truncated = select_candidates(files, options)
        results: list[SearchResult] = []
        for record in scanned:
            if generation != self._generation:
                return
            result = _search_file_safely(record, pattern, options)
            if result is not None:
                results.append(result)
            await asyncio.sleep(0)

        if generation != self._generation:
            return
        outcome = rank(query, results, len(scanned), options, truncated=truncated)
        logger.debug(
            "Search %r: %d files matched of %d scanned", query, len(outcome.results), len(scanned)
        )
        self._set_outcome(outcome)
