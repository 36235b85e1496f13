"""Tests for the bounded-concurrency content fetcher."""

from __future__ import annotations

import asyncio

import pytest

from repo_flattener.domain.cancellation import CancellationSignal
from repo_flattener.domain.entities import SkipReason, Snapshot
from repo_flattener.domain.exceptions import OperationCancelledError
from repo_flattener.domain.value_objects import RepoRef
from repo_flattener.services.content_fetcher import ContentFetcher, decode_text, looks_binary
from tests.fakes import FakeRepoSource

REF = RepoRef(owner="acme", name="widgets")


async def _fetch(source: FakeRepoSource, **kwargs: object) -> list:
    snapshot: Snapshot = await source.get_tree(REF, source.commit_id)
    fetcher = ContentFetcher(source, **kwargs)  # type: ignore[arg-type]
    return await fetcher.fetch_all(REF, snapshot)


# ── Content sniffing ─────────────────────────────────────────


def test_single_nul_byte_is_still_text() -> None:
    assert not looks_binary(b"abc\x00def")


def test_two_nul_bytes_are_binary() -> None:
    assert looks_binary(b"\x00ab\x00")


def test_nul_bytes_past_sniff_window_are_ignored() -> None:
    assert not looks_binary(b"a" * 8192 + b"\x00\x00")


def test_decode_replaces_invalid_utf8() -> None:
    assert decode_text(b"ok \xff\xfe end") == "ok \ufffd\ufffd end"


def test_decode_strips_bom() -> None:
    assert decode_text(b"\xef\xbb\xbfhello") == "hello"


# ── fetch_all ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_sniffed_binary_overrides_text_extension() -> None:
    source = FakeRepoSource({"data.txt": b"\x00\x01\x00\x02", "ok.txt": b"fine"})
    records = await _fetch(source)
    by_path = {r.path: r for r in records}
    assert by_path["data.txt"].decision.reason is SkipReason.BINARY
    assert by_path["data.txt"].content is None
    assert by_path["ok.txt"].content == "fine"


@pytest.mark.asyncio
async def test_fetch_failure_is_isolated() -> None:
    source = FakeRepoSource(
        {"a.py": b"a", "broken.py": b"b", "c.py": b"c"}, failing={"broken.py"}
    )
    records = await _fetch(source)
    assert [r.decision.reason for r in records] == [None, SkipReason.FETCH_ERROR, None]
    assert records[1].content is None


@pytest.mark.asyncio
async def test_order_follows_tree_not_completion() -> None:
    files = {f"f{i}.txt": f"{i}".encode() for i in range(10)}
    delays = {f"f{i}.txt": (10 - i) * 0.005 for i in range(10)}
    source = FakeRepoSource(files, delays=delays)
    records = await _fetch(source, concurrency=4)
    assert [r.path for r in records] == list(files)
    assert [r.content for r in records] == [str(i) for i in range(10)]


@pytest.mark.asyncio
async def test_concurrency_is_bounded() -> None:
    files = {f"f{i}.txt": b"x" for i in range(20)}
    source = FakeRepoSource(files, delays={p: 0.01 for p in files})
    await _fetch(source, concurrency=3)
    assert source.max_in_flight == 3


@pytest.mark.asyncio
async def test_excluded_files_are_not_downloaded() -> None:
    source = FakeRepoSource(
        {"logo.png": b"png", "big.txt": b"x" * 100, "a.md": b"# A"},
        sizes={"big.txt": 60 * 1024},
    )
    records = await _fetch(source)
    assert source.raw_calls == ["a.md"]
    assert records[0].decision.reason is SkipReason.BINARY
    assert records[1].decision.reason is SkipReason.TOO_LARGE
    assert records[2].is_markdown


@pytest.mark.asyncio
async def test_payload_over_cap_is_too_large_despite_metadata() -> None:
    source = FakeRepoSource({"grew.txt": b"x" * 200}, sizes={"grew.txt": 10})
    records = await _fetch(source, max_bytes=100)
    assert records[0].decision.reason is SkipReason.TOO_LARGE


@pytest.mark.asyncio
async def test_directories_are_not_files() -> None:
    source = FakeRepoSource({"src/a.py": b"a"}, dirs=["src"])
    records = await _fetch(source)
    assert [r.path for r in records] == ["src/a.py"]


@pytest.mark.asyncio
async def test_cancel_aborts_in_flight_and_queued_fetches() -> None:
    files = {f"f{i}.txt": b"x" for i in range(10)}
    source = FakeRepoSource(files, delays={p: 5.0 for p in files})
    snapshot = await source.get_tree(REF, source.commit_id)
    cancel = CancellationSignal()
    fetcher = ContentFetcher(source, concurrency=2)

    task = asyncio.create_task(fetcher.fetch_all(REF, snapshot, cancel))
    await asyncio.sleep(0.05)
    cancel.cancel()

    with pytest.raises(OperationCancelledError):
        await asyncio.wait_for(task, timeout=1)
    await asyncio.sleep(0.01)
    assert source.in_flight == 0
    assert len(source.raw_calls) == 2


@pytest.mark.asyncio
async def test_each_blob_is_classified_once(monkeypatch: pytest.MonkeyPatch) -> None:
    from repo_flattener.services import content_fetcher

    seen: list[str] = []
    real_classify = content_fetcher.classify

    def _counting(path: str, size: int, max_bytes: int):
        seen.append(path)
        return real_classify(path, size, max_bytes)

    monkeypatch.setattr(content_fetcher, "classify", _counting)
    source = FakeRepoSource({"a.md": b"# A", "logo.png": b"png", "b.py": b"b"}, dirs=["src"])
    await _fetch(source)

    assert seen == ["a.md", "logo.png", "b.py"]
