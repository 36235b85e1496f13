"""Pydantic request / response DTOs for the API boundary."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from repo_flattener.domain.entities import (
    CommitInfo,
    FileRecord,
    ProcessResult,
    SearchOutcome,
)
from repo_flattener.services.document_assembler import filter_table_of_contents
from repo_flattener.services.file_tree import FileTreeNode, file_stats
from repo_flattener.services.search_indexer import SearchOptions, highlight


class SnapshotRequest(BaseModel):
    """Repository URL plus optional revision; names one snapshot."""

    github_url: str
    revision: str | None = None

    @field_validator("github_url")
    @classmethod
    def _must_be_github(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            msg = "github_url must not be empty."
            raise ValueError(msg)
        if "github.com" not in stripped.lower():
            msg = (
                f"Invalid URL: '{stripped}'. "
                "Only public GitHub repository URLs are supported."
            )
            raise ValueError(msg)
        return stripped

    @field_validator("revision")
    @classmethod
    def _blank_revision_is_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()


class FlattenRequest(SnapshotRequest):
    """Request body for ``POST /flatten`` and ``POST /flatten/document``.

    ``filter`` narrows the table of contents to paths containing it.
    """

    filter: str = ""


class FileEntry(BaseModel):
    path: str
    size: int
    reason: str | None = None
    is_markdown: bool = False

    @classmethod
    def from_record(cls, record: FileRecord) -> FileEntry:
        reason = record.decision.reason
        return cls(
            path=record.path,
            size=record.size,
            reason=reason.value if reason else None,
            is_markdown=record.is_markdown,
        )


class TocItem(BaseModel):
    anchor: str
    path: str
    size: int


class StatsSchema(BaseModel):
    total_files: int
    total_size: int
    file_types: dict[str, int]
    largest_file: str | None


class TreeNodeSchema(BaseModel):
    name: str
    path: str
    is_dir: bool
    size: int | None = None
    children: list[TreeNodeSchema] = []

    @classmethod
    def from_node(cls, node: FileTreeNode) -> TreeNodeSchema:
        return cls(
            name=node.name,
            path=node.path,
            is_dir=node.is_dir,
            size=node.size,
            children=[cls.from_node(c) for c in node.children],
        )


class FlattenResponse(BaseModel):
    """Successful response from ``POST /flatten``."""

    owner: str
    name: str
    commit_id: str
    tree_text: str
    tree_truncated: bool
    table_of_contents: list[TocItem]
    rendered: list[FileEntry]
    skipped_binary: list[FileEntry]
    skipped_large: list[FileEntry]
    skipped_ignored: list[FileEntry]
    skipped_fetch_error: list[FileEntry]
    stats: StatsSchema
    file_tree: list[TreeNodeSchema]

    @classmethod
    def from_result(
        cls, result: ProcessResult, file_tree: list[FileTreeNode], toc_filter: str = ""
    ) -> FlattenResponse:
        stats = file_stats(result.rendered)

        def entries(records: tuple[FileRecord, ...]) -> list[FileEntry]:
            return [FileEntry.from_record(r) for r in records]

        return cls(
            owner=result.owner,
            name=result.name,
            commit_id=result.commit_id,
            tree_text=result.tree_text,
            tree_truncated=result.tree_truncated,
            table_of_contents=[
                TocItem(anchor=t.anchor, path=t.path, size=t.size)
                for t in filter_table_of_contents(result.table_of_contents, toc_filter)
            ],
            rendered=entries(result.rendered),
            skipped_binary=entries(result.skipped_binary),
            skipped_large=entries(result.skipped_large),
            skipped_ignored=entries(result.skipped_ignored),
            skipped_fetch_error=entries(result.skipped_fetch_error),
            stats=StatsSchema(
                total_files=stats.total_files,
                total_size=stats.total_size,
                file_types=stats.file_types,
                largest_file=stats.largest_file.path if stats.largest_file else None,
            ),
            file_tree=[TreeNodeSchema.from_node(n) for n in file_tree],
        )


class SignatureSchema(BaseModel):
    name: str
    email: str
    date: str


class CommitSchema(BaseModel):
    id: str
    message: str
    author: SignatureSchema
    committer: SignatureSchema

    @classmethod
    def from_commit(cls, commit: CommitInfo) -> CommitSchema:
        return cls(
            id=commit.id,
            message=commit.message,
            author=SignatureSchema(
                name=commit.author.name, email=commit.author.email, date=commit.author.date
            ),
            committer=SignatureSchema(
                name=commit.committer.name,
                email=commit.committer.email,
                date=commit.committer.date,
            ),
        )


class SearchOptionsSchema(BaseModel):
    case_sensitive: bool = False
    whole_word: bool = False
    regex: bool = False
    file_types: list[str] = []
    max_results: int = Field(default=100, ge=1, le=100)


class SearchRequest(SnapshotRequest):
    """Request body for ``POST /search``."""

    query: str
    options: SearchOptionsSchema = SearchOptionsSchema()


class MatchSchema(BaseModel):
    line: int
    column: int
    text: str
    context: str
    highlighted: str | None = None


class SearchResultSchema(BaseModel):
    path: str
    score: int
    matches: list[MatchSchema]


class SearchResponse(BaseModel):
    query: str
    files_scanned: int
    truncated: bool
    error: str | None = None
    results: list[SearchResultSchema]

    @classmethod
    def from_outcome(
        cls, outcome: SearchOutcome, options: SearchOptions | None = None
    ) -> SearchResponse:
        """With *options*, each match also carries its context with hits in ``<mark>``."""

        def marked(context: str) -> str | None:
            return highlight(context, outcome.query, options) if options else None

        return cls(
            query=outcome.query,
            files_scanned=outcome.files_scanned,
            truncated=outcome.truncated,
            error=outcome.error,
            results=[
                SearchResultSchema(
                    path=r.file.path,
                    score=r.score,
                    matches=[
                        MatchSchema(
                            line=m.line,
                            column=m.column,
                            text=m.text,
                            context=m.context,
                            highlighted=marked(m.context),
                        )
                        for m in r.matches
                    ],
                )
                for r in outcome.results
            ],
        )


class NavigateRequest(BaseModel):
    path: str


class NavigationResponse(BaseModel):
    current_path: str
    history: list[str]
    current_index: int
    can_go_back: bool
    can_go_forward: bool
    moved: bool | None = None


class PreferencesUpdate(BaseModel):
    """Partial update for ``PATCH /preferences``; unset fields are left alone."""

    theme: Literal["light", "dark", "auto"] | None = None
    sidebar_collapsed: bool | None = None
    sidebar_pinned: bool | None = None
    view_mode: Literal["human", "llm"] | None = None
    compact_view: bool | None = None
    show_line_numbers: bool | None = None
    font_size: int | None = Field(default=None, ge=6, le=72)
    code_theme: str | None = None
    auto_save: bool | None = None


class ErrorResponse(BaseModel):
    """Standard error envelope returned on all failure paths."""

    status: str = "error"
    message: str
