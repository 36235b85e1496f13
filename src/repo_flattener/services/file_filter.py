"""File classification — decide from metadata alone whether a file is rendered."""

from __future__ import annotations

from repo_flattener.domain.entities import INCLUDE, InclusionDecision, SkipReason

MAX_BYTES = 50 * 1024

VCS_DIRS: frozenset[str] = frozenset({".git"})

BINARY_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp", ".svg", ".ico",
        ".pdf", ".zip", ".tar", ".gz", ".bz2", ".xz", ".7z", ".rar",
        ".mp3", ".mp4", ".mov", ".avi", ".mkv", ".wav", ".ogg", ".flac",
        ".ttf", ".otf", ".eot", ".woff", ".woff2",
        ".so", ".dll", ".dylib", ".class", ".jar", ".exe", ".bin",
    }
)

MARKDOWN_EXTENSIONS: frozenset[str] = frozenset(
    {".md", ".markdown", ".mdown", ".mkd", ".mkdn"}
)


def _ends_with_any(path: str, extensions: frozenset[str]) -> bool:
    lower = path.lower()
    return any(lower.endswith(ext) for ext in extensions)


def in_vcs_dir(path: str) -> bool:
    """Return *True* if any directory segment is version-control metadata."""
    return any(part in VCS_DIRS for part in path.split("/")[:-1])


def has_binary_extension(path: str) -> bool:
    return _ends_with_any(path, BINARY_EXTENSIONS)


def is_markdown(path: str) -> bool:
    return _ends_with_any(path, MARKDOWN_EXTENSIONS)


def classify(path: str, size: int, max_bytes: int = MAX_BYTES) -> InclusionDecision:
    """Pre-filter a blob by path and declared size.

    Checks run in a fixed order and the first match wins: VCS metadata,
    size cap, binary extension.
    """
    if in_vcs_dir(path):
        return InclusionDecision.excluded(SkipReason.IGNORED)
    if size > max_bytes:
        return InclusionDecision.excluded(SkipReason.TOO_LARGE)
    if has_binary_extension(path):
        return InclusionDecision.excluded(SkipReason.BINARY)
    return INCLUDE
