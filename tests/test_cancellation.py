"""Tests for CancellationSignal.guard."""

from __future__ import annotations

import asyncio

import pytest

from repo_flattener.domain.cancellation import CancellationSignal
from repo_flattener.domain.exceptions import OperationCancelledError


@pytest.mark.asyncio
async def test_guard_returns_result_when_not_cancelled() -> None:
    async def _op() -> str:
        return "done"

    assert await CancellationSignal().guard(_op()) == "done"


@pytest.mark.asyncio
async def test_guard_propagates_errors() -> None:
    async def _op() -> None:
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        await CancellationSignal().guard(_op())


@pytest.mark.asyncio
async def test_cancel_abandons_pending_work() -> None:
    signal = CancellationSignal()
    finished = False

    async def _slow() -> None:
        nonlocal finished
        await asyncio.sleep(5)
        finished = True

    waiter = asyncio.create_task(signal.guard(_slow()))
    await asyncio.sleep(0.01)
    signal.cancel()

    with pytest.raises(OperationCancelledError):
        await asyncio.wait_for(waiter, timeout=1)
    assert not finished
    assert signal.cancelled


@pytest.mark.asyncio
async def test_already_cancelled_signal_raises_immediately() -> None:
    signal = CancellationSignal()
    signal.cancel()

    async def _op() -> int:
        return 1

    with pytest.raises(OperationCancelledError):
        await signal.guard(_op())
