"""Cooperative cancellation shared by every network call of one run."""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from repo_flattener.domain.exceptions import OperationCancelledError

T = TypeVar("T")


class CancellationSignal:
    """A one-shot flag that aborts all in-flight and queued work.

    Work is raced against the signal with :meth:`guard`; when the signal
    fires first the pending task is cancelled and its result discarded.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError("Operation was cancelled.")

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await *awaitable* unless the signal fires first."""
        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCancelledError("Operation was cancelled.")
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            work.cancel()
            raise
        finally:
            waiter.cancel()
        if work.done():
            return work.result()
        work.cancel()
        raise OperationCancelledError("Operation was cancelled.")
