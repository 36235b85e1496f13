"""Directory tree and aggregate statistics over classified files."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from repo_flattener.domain.entities import FileRecord


@dataclass(slots=True)
class FileTreeNode:
    """A directory or file in the nested view built from flat paths."""

    name: str
    path: str
    is_dir: bool
    size: int | None = None
    children: list[FileTreeNode] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class FileStats:
    total_files: int
    total_size: int
    file_types: dict[str, int]
    largest_file: FileRecord | None


def _extension(path: str) -> str:
    name = path.rsplit("/", maxsplit=1)[-1]
    dot = name.rfind(".")
    return name[dot:].lower() if dot > 0 else ""


def build_file_tree(files: Sequence[FileRecord]) -> list[FileTreeNode]:
    """Nest *files* by path segment, keeping first-seen order at each level."""
    root = FileTreeNode(name="", path="", is_dir=True)
    for record in files:
        parts = record.path.split("/")
        current = root
        for depth, part in enumerate(parts):
            is_last = depth == len(parts) - 1
            child = next((c for c in current.children if c.name == part), None)
            if child is None:
                child = FileTreeNode(
                    name=part,
                    path="/".join(parts[: depth + 1]),
                    is_dir=not is_last,
                    size=record.size if is_last else None,
                )
                current.children.append(child)
            current = child
    return root.children


def file_stats(files: Sequence[FileRecord]) -> FileStats:
    file_types: dict[str, int] = {}
    largest: FileRecord | None = None
    for record in files:
        ext = _extension(record.path)
        file_types[ext] = file_types.get(ext, 0) + 1
        if largest is None or record.size > largest.size:
            largest = record
    return FileStats(
        total_files=len(files),
        total_size=sum(f.size for f in files),
        file_types=file_types,
        largest_file=largest,
    )
