"""API routes — thin controllers that delegate to the use case."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from sse_starlette.sse import EventSourceResponse

from repo_flattener.domain.cancellation import CancellationSignal
from repo_flattener.domain.entities import FileRecord, SearchOutcome
from repo_flattener.domain.exceptions import RepoFlattenerError
from repo_flattener.infrastructure.config import Settings
from repo_flattener.interface.dependencies import (
    get_app_settings,
    get_preferences,
    get_result_cache,
    get_use_case,
)
from repo_flattener.interface.error_handlers import status_for
from repo_flattener.interface.schemas import (
    CommitSchema,
    ErrorResponse,
    FlattenRequest,
    FlattenResponse,
    SearchOptionsSchema,
    SearchRequest,
    SearchResponse,
    SnapshotRequest,
)
from repo_flattener.services.file_tree import build_file_tree
from repo_flattener.services.flatten_repo import FlattenRepoUseCase
from repo_flattener.services.incremental_discloser import IncrementalDiscloser
from repo_flattener.services.markdown_document import render_markdown_document
from repo_flattener.services.preferences import PreferencesStore
from repo_flattener.services.result_cache import ResultCache
from repo_flattener.services.search_indexer import SearchIndexer, SearchOptions, search

logger = logging.getLogger(__name__)

router = APIRouter()

_FLATTEN_RESPONSES: dict[int | str, dict[str, Any]] = {
    422: {"model": ErrorResponse, "description": "Invalid GitHub URL"},
    404: {"model": ErrorResponse, "description": "Repository or revision not found"},
    429: {"model": ErrorResponse, "description": "GitHub API rate limit exceeded"},
    502: {"model": ErrorResponse, "description": "Tree listing unavailable or upstream failure"},
}


def _search_options(schema: SearchOptionsSchema, settings: Settings) -> SearchOptions:
    return SearchOptions(
        case_sensitive=schema.case_sensitive,
        whole_word=schema.whole_word,
        regex=schema.regex,
        file_types=tuple(schema.file_types),
        max_files=settings.search_max_files,
        max_results=min(schema.max_results, settings.search_max_results),
    )


@router.post("/flatten", response_model=FlattenResponse, responses=_FLATTEN_RESPONSES)
async def flatten(
    body: FlattenRequest,
    use_case: FlattenRepoUseCase = Depends(get_use_case),
    cache: ResultCache = Depends(get_result_cache),
    preferences: PreferencesStore = Depends(get_preferences),
) -> FlattenResponse:
    """Flatten a public GitHub repository at a revision."""
    result = await cache.flatten(use_case, body.github_url, body.revision)
    preferences.add_last_used_repo(body.github_url)
    return FlattenResponse.from_result(result, build_file_tree(result.rendered), body.filter)


@router.post(
    "/flatten/container",
    response_class=PlainTextResponse,
    responses=_FLATTEN_RESPONSES,
)
async def flatten_container(
    body: SnapshotRequest,
    use_case: FlattenRepoUseCase = Depends(get_use_case),
    cache: ResultCache = Depends(get_result_cache),
) -> PlainTextResponse:
    """Return the tagged container text for all rendered files."""
    result = await cache.flatten(use_case, body.github_url, body.revision)
    return PlainTextResponse(result.container_text, media_type="application/xml")


@router.post(
    "/flatten/document",
    response_class=PlainTextResponse,
    responses=_FLATTEN_RESPONSES,
)
async def flatten_document(
    body: FlattenRequest,
    use_case: FlattenRepoUseCase = Depends(get_use_case),
    cache: ResultCache = Depends(get_result_cache),
) -> PlainTextResponse:
    """Return the human-navigable Markdown document."""
    result = await cache.flatten(use_case, body.github_url, body.revision)
    return PlainTextResponse(
        render_markdown_document(result, body.filter), media_type="text/markdown"
    )


@router.post("/flatten/stream")
async def flatten_stream(
    body: SnapshotRequest,
    use_case: FlattenRepoUseCase = Depends(get_use_case),
    cache: ResultCache = Depends(get_result_cache),
    settings: Settings = Depends(get_app_settings),
) -> EventSourceResponse:
    """Flatten, then stream rendered files in batches over SSE."""
    return EventSourceResponse(
        _flatten_event_stream(body, use_case, cache, settings.disclosure_batch_size),
        sep="\n",
    )


def _file_payload(record: FileRecord) -> dict[str, Any]:
    return {
        "path": record.path,
        "size": record.size,
        "is_markdown": record.is_markdown,
        "content": record.content,
    }


async def _flatten_event_stream(
    body: SnapshotRequest,
    use_case: FlattenRepoUseCase,
    cache: ResultCache,
    batch_size: int,
) -> AsyncIterator[dict[str, str]]:
    """Async generator yielding ``result``, ``batch``… and ``done`` events.

    Closing the stream fires the cancellation signal, which abandons any
    fetches still in flight.
    """
    cancel = CancellationSignal()
    discloser: IncrementalDiscloser | None = None
    try:
        try:
            result = await cache.flatten(use_case, body.github_url, body.revision, cancel)
        except RepoFlattenerError as exc:
            yield {
                "event": "error",
                "data": json.dumps({"status": status_for(exc), "message": str(exc)}),
            }
            return

        yield {
            "event": "result",
            "data": json.dumps(
                {
                    "owner": result.owner,
                    "name": result.name,
                    "commit_id": result.commit_id,
                    "total": len(result.rendered),
                    "tree_text": result.tree_text,
                }
            ),
        }

        batches: asyncio.Queue[tuple[FileRecord, ...]] = asyncio.Queue()
        discloser = IncrementalDiscloser(batches.put_nowait, batch_size=batch_size)
        discloser.reset(result)
        sent = 0
        while sent < len(result.rendered):
            revealed = await batches.get()
            fresh = revealed[sent:]
            if not fresh:
                continue
            sent = len(revealed)
            yield {
                "event": "batch",
                "data": json.dumps(
                    {
                        "revealed": sent,
                        "total": len(result.rendered),
                        "files": [_file_payload(f) for f in fresh],
                    }
                ),
            }

        yield {"event": "done", "data": json.dumps({"revealed": sent})}
    finally:
        if discloser is not None:
            discloser.close()
        cancel.cancel()


@router.get("/commits", response_model=list[CommitSchema])
async def list_commits(
    github_url: str = Query(..., min_length=1),
    per_page: int | None = Query(default=None, ge=1, le=100),
    use_case: FlattenRepoUseCase = Depends(get_use_case),
    settings: Settings = Depends(get_app_settings),
) -> list[CommitSchema]:
    """List recent commits of a repository for revision selection."""
    commits = await use_case.list_commits(github_url, per_page or settings.commit_page_size)
    return [CommitSchema.from_commit(c) for c in commits]


@router.post("/search", response_model=SearchResponse, responses=_FLATTEN_RESPONSES)
async def search_repo(
    body: SearchRequest,
    use_case: FlattenRepoUseCase = Depends(get_use_case),
    cache: ResultCache = Depends(get_result_cache),
    settings: Settings = Depends(get_app_settings),
) -> SearchResponse:
    """Search the rendered files of a repository snapshot."""
    result = await cache.flatten(use_case, body.github_url, body.revision)
    options = _search_options(body.options, settings)
    outcome = search(body.query, result.rendered, options)
    return SearchResponse.from_outcome(outcome, options)


@router.websocket("/ws/search")
async def search_socket(
    websocket: WebSocket,
    use_case: FlattenRepoUseCase = Depends(get_use_case),
    cache: ResultCache = Depends(get_result_cache),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """Live search: debounced, last-query-wins results pushed as they land.

    The first message opens a snapshot (``{"github_url", "revision"}``);
    later messages are ``{"query", "options"}``.
    """
    await websocket.accept()
    outcomes: asyncio.Queue[SearchOutcome] = asyncio.Queue()
    indexer = SearchIndexer(
        outcomes.put_nowait,
        options=_search_options(SearchOptionsSchema(), settings),
        debounce_s=settings.search_debounce_ms / 1000,
    )

    async def _sender() -> None:
        while True:
            outcome = await outcomes.get()
            response = SearchResponse.from_outcome(outcome, indexer.options)
            await websocket.send_json({"type": "results", **response.model_dump()})

    sender = asyncio.create_task(_sender())
    try:
        try:
            opening = SnapshotRequest.model_validate(await websocket.receive_json())
            result = await cache.flatten(use_case, opening.github_url, opening.revision)
        except (ValueError, RepoFlattenerError) as exc:
            await websocket.send_json({"type": "error", "message": str(exc)})
            await websocket.close(code=1008)
            return

        await websocket.send_json(
            {"type": "ready", "commit_id": result.commit_id, "files": len(result.rendered)}
        )
        indexer.set_files(result.rendered)
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                message = None
            if not isinstance(message, dict):
                await websocket.send_json({"type": "error", "message": "Expected a JSON object."})
                continue
            try:
                options = SearchOptionsSchema.model_validate(message.get("options") or {})
            except ValidationError as exc:
                await websocket.send_json({"type": "error", "message": str(exc)})
                continue
            indexer.set_query(str(message.get("query", "")), _search_options(options, settings))
    except WebSocketDisconnect:
        logger.debug("Search socket closed")
    finally:
        indexer.close()
        sender.cancel()
