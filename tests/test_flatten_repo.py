"""Tests for the end-to-end flatten use case over a fake repository source."""

from __future__ import annotations

import asyncio

import pytest

from repo_flattener.domain.cancellation import CancellationSignal
from repo_flattener.domain.exceptions import (
    CommitNotFoundError,
    InvalidUrlError,
    OperationCancelledError,
    RepoNotFoundError,
    TreeUnavailableError,
)
from repo_flattener.services.container_serializer import parse
from repo_flattener.services.flatten_repo import FlattenRepoUseCase
from tests.fakes import FakeRepoSource

URL = "https://github.com/acme/widgets"


def _widgets_source() -> FakeRepoSource:
    return FakeRepoSource(
        {
            "README.md": b"# Widgets\n" + b"a" * 1014,
            "logo.png": b"\x89PNG" + b"\x00" * (40 * 1024 - 4),
            "dist/bundle.min.js": b"!" * (80 * 1024),
        },
        dirs=["dist"],
    )


@pytest.mark.asyncio
async def test_widgets_scenario() -> None:
    """README rendered, logo skipped as binary, bundle skipped as too large."""
    use_case = FlattenRepoUseCase(_widgets_source())
    result = await use_case.execute(URL)

    assert [f.path for f in result.rendered] == ["README.md"]
    assert [f.path for f in result.skipped_large] == ["dist/bundle.min.js"]
    assert [f.path for f in result.skipped_binary] == ["logo.png"]
    assert result.skipped_ignored == ()
    assert result.rendered[0].is_markdown
    assert result.tree_text.split("\n")[0] == "widgets"


@pytest.mark.asyncio
async def test_head_resolution_uses_two_round_trips() -> None:
    source = _widgets_source()
    await FlattenRepoUseCase(source).execute(URL)
    assert source.calls == ["latest", f"tree:{source.commit_id}"]
    assert source.raw_calls == ["README.md"]


@pytest.mark.asyncio
async def test_specific_revision_is_resolved() -> None:
    source = FakeRepoSource({"a.txt": b"a"}, revisions={"v1.0": "1111"})
    result = await FlattenRepoUseCase(source).execute(URL, revision="v1.0")
    assert result.commit_id == "1111"
    assert source.calls == ["commit:v1.0", "tree:1111"]


@pytest.mark.asyncio
async def test_container_round_trips_through_pipeline() -> None:
    source = FakeRepoSource({"weird.xml": b"<a><![CDATA[x]]></a>", "b.txt": b"b"})
    result = await FlattenRepoUseCase(source).execute(URL)
    docs = parse(result.container_text)
    assert [d.content for d in docs] == ["<a><![CDATA[x]]></a>", "b"]
    assert all(d.repo == URL for d in docs)


@pytest.mark.asyncio
async def test_fetch_errors_do_not_fail_the_run() -> None:
    source = FakeRepoSource({"a.txt": b"a", "b.txt": b"b"}, failing={"a.txt"})
    result = await FlattenRepoUseCase(source).execute(URL)
    assert [f.path for f in result.rendered] == ["b.txt"]
    assert [f.path for f in result.skipped_fetch_error] == ["a.txt"]


@pytest.mark.asyncio
async def test_truncated_tree_is_flagged() -> None:
    source = FakeRepoSource({"a.txt": b"a"}, truncated=True)
    result = await FlattenRepoUseCase(source).execute(URL)
    assert result.tree_truncated


# ── Fatal errors ─────────────────────────────────────────────


@pytest.mark.asyncio
async def test_invalid_url_fails_before_any_request() -> None:
    source = FakeRepoSource({})
    with pytest.raises(InvalidUrlError):
        await FlattenRepoUseCase(source).execute("https://example.com/nope")
    assert source.calls == []


@pytest.mark.asyncio
async def test_missing_repo() -> None:
    with pytest.raises(RepoNotFoundError):
        await FlattenRepoUseCase(FakeRepoSource({}, missing_repo=True)).execute(URL)


@pytest.mark.asyncio
async def test_unknown_revision() -> None:
    with pytest.raises(CommitNotFoundError):
        await FlattenRepoUseCase(FakeRepoSource({})).execute(URL, revision="deadbeef")


@pytest.mark.asyncio
async def test_tree_unavailable() -> None:
    source = FakeRepoSource({"a.txt": b"a"}, tree_fails=True)
    with pytest.raises(TreeUnavailableError):
        await FlattenRepoUseCase(source).execute(URL)
    assert source.raw_calls == []


@pytest.mark.asyncio
async def test_cancel_before_start_issues_no_requests() -> None:
    source = FakeRepoSource({"a.txt": b"a"})
    cancel = CancellationSignal()
    cancel.cancel()
    with pytest.raises(OperationCancelledError):
        await FlattenRepoUseCase(source).execute(URL, cancel=cancel)
    assert source.calls == []


@pytest.mark.asyncio
async def test_cancel_mid_fetch_returns_no_partial_result() -> None:
    files = {f"f{i}.txt": b"x" for i in range(6)}
    source = FakeRepoSource(files, delays={p: 5.0 for p in files})
    cancel = CancellationSignal()
    task = asyncio.create_task(FlattenRepoUseCase(source).execute(URL, cancel=cancel))
    await asyncio.sleep(0.05)
    cancel.cancel()
    with pytest.raises(OperationCancelledError):
        await asyncio.wait_for(task, timeout=1)


@pytest.mark.asyncio
async def test_list_commits() -> None:
    source = FakeRepoSource({})
    commits = await FlattenRepoUseCase(source).list_commits(URL, page_size=5)
    assert commits[0].id == source.commit_id
    assert commits[0].author.name == "Ada"
    assert source.calls == ["list:5"]
