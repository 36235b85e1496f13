"""Small LRU of recent flatten results, so follow-up requests skip the content fetch."""

from __future__ import annotations

import logging
import re
from collections import OrderedDict

from repo_flattener.domain.cancellation import CancellationSignal
from repo_flattener.domain.entities import ProcessResult
from repo_flattener.domain.value_objects import RepoRef
from repo_flattener.services.flatten_repo import FlattenRepoUseCase

logger = logging.getLogger(__name__)

_COMMIT_SHA_RE = re.compile(r"[0-9a-fA-F]{40}")


def is_commit_sha(revision: str) -> bool:
    """A full 40-hex id names an immutable commit; anything else may move."""
    return _COMMIT_SHA_RE.fullmatch(revision) is not None


class ResultCache:
    """LRU keyed by ``owner/name@commit``.

    Branch names, tags and HEAD are always resolved upstream first, then the
    resolved commit id is looked up.  Only a full commit sha is served
    without any round trip.
    """

    def __init__(self, max_entries: int = 16) -> None:
        self._max_entries = max(max_entries, 1)
        self._entries: OrderedDict[str, ProcessResult] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def _key(ref: RepoRef, commit_id: str) -> str:
        return f"{ref.full_name.lower()}@{commit_id.lower()}"

    def get(self, ref: RepoRef, commit_id: str) -> ProcessResult | None:
        key = self._key(ref, commit_id)
        result = self._entries.get(key)
        if result is not None:
            self._entries.move_to_end(key)
        return result

    def put(self, ref: RepoRef, result: ProcessResult) -> None:
        key = self._key(ref, result.commit_id)
        self._entries[key] = result
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    async def flatten(
        self,
        use_case: FlattenRepoUseCase,
        url: str,
        revision: str | None = None,
        cancel: CancellationSignal | None = None,
    ) -> ProcessResult:
        """Return the cached result for the resolved commit or run the pipeline."""
        ref = RepoRef.from_url(url)
        if revision and is_commit_sha(revision):
            cached = self.get(ref, revision)
            if cached is not None:
                logger.debug("Result cache hit for %s@%s", ref.full_name, revision)
                return cached
            result = await use_case.execute(url, revision, cancel)
        else:
            commit_id = await use_case.resolve_commit(url, revision, cancel)
            cached = self.get(ref, commit_id)
            if cached is not None:
                logger.debug(
                    "Result cache hit for %s@%s (%s)", ref.full_name, revision or "HEAD", commit_id
                )
                return cached
            result = await use_case.execute(url, revision, cancel, commit_id=commit_id)

        self.put(ref, result)
        return result
