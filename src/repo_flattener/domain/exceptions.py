"""Domain exception hierarchy.

Fatal errors abort a whole flatten run and map to an HTTP status code at the
interface layer.  ``FileFetchError`` is the one per-file error: the content
fetcher catches it and degrades that single file instead of failing the batch.
"""

from __future__ import annotations


class RepoFlattenerError(Exception):
    """Base exception for the entire application."""


# ── Input validation ────────────────────────────────────────────────────────


class InvalidUrlError(RepoFlattenerError):
    """The supplied URL does not point to a GitHub repository."""


# ── Snapshot resolution ─────────────────────────────────────────────────────


class RepoNotFoundError(RepoFlattenerError):
    """Commit lookup for the repository returned a non-2xx response."""


class CommitNotFoundError(RepoFlattenerError):
    """The requested revision could not be resolved to a commit."""


class TreeUnavailableError(RepoFlattenerError):
    """The recursive tree listing for the commit could not be fetched."""


class RateLimitError(RepoFlattenerError):
    """GitHub API rate limit exceeded (429 / 403 with rate-limit header)."""


class UpstreamError(RepoFlattenerError):
    """Network failure or unexpected status from the upstream service."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


# ── Per-file errors ─────────────────────────────────────────────────────────


class FileFetchError(RepoFlattenerError):
    """Raw content for a single file could not be retrieved."""


# ── Cancellation ────────────────────────────────────────────────────────────


class OperationCancelledError(RepoFlattenerError):
    """The caller fired the cancellation signal for this run."""
