"""Incremental discloser — reveal rendered files to a display in small batches.

Each growth step publishes a longer prefix of ``result.rendered`` and then
yields to the event loop so the display can repaint before the next batch.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from repo_flattener.domain.entities import FileRecord, ProcessResult

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 8

Publisher = Callable[[tuple[FileRecord, ...]], None]


async def _next_tick() -> None:
    await asyncio.sleep(0)


class IncrementalDiscloser:
    """Grow a revealed prefix of the rendered files until it is complete.

    ``revealed`` is always a prefix of ``result.rendered`` and never shrinks
    for a given result.  Replacing the result resets the cursor before any
    new batch is published.
    """

    def __init__(
        self,
        publish: Publisher,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        yield_frame: Callable[[], Awaitable[None]] = _next_tick,
    ) -> None:
        self._publish = publish
        self._batch_size = max(batch_size, 1)
        self._yield_frame = yield_frame
        self._result: ProcessResult | None = None
        self._revealed: tuple[FileRecord, ...] = ()
        self._task: asyncio.Task[None] | None = None

    @property
    def revealed(self) -> tuple[FileRecord, ...]:
        return self._revealed

    @property
    def cursor(self) -> int:
        return len(self._revealed)

    @property
    def total(self) -> int:
        return len(self._result.rendered) if self._result else 0

    @property
    def complete(self) -> bool:
        return self.cursor >= self.total

    def reset(self, result: ProcessResult | None) -> None:
        """Switch to *result* and start revealing it from the beginning.

        Must be called from within a running event loop when *result* is
        not ``None``.
        """
        self._stop()
        self._result = result
        self._revealed = ()
        self._publish(self._revealed)
        if result is not None and result.rendered:
            self._task = asyncio.get_running_loop().create_task(self._run(result))

    def load_more(self) -> bool:
        """Run one growth step now; return whether files remain hidden."""
        return self._grow()

    async def wait_complete(self) -> None:
        """Wait until the background disclosure for the current result ends."""
        if self._task is not None:
            await self._task

    def close(self) -> None:
        self._stop()

    # ── Internals ───────────────────────────────────────────────────────

    def _grow(self) -> bool:
        if self._result is None:
            return False
        rendered = self._result.rendered
        if self.cursor >= len(rendered):
            return False
        self._revealed = rendered[: self.cursor + self._batch_size]
        self._publish(self._revealed)
        return self.cursor < len(rendered)

    async def _run(self, result: ProcessResult) -> None:
        while self._result is result and self._grow():
            await self._yield_frame()
        logger.debug("Disclosed %d/%d files", self.cursor, self.total)

    def _stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
