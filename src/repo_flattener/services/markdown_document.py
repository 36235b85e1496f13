"""Human-navigable aggregate document, rendered as Markdown."""

from __future__ import annotations

from typing import Sequence

from repo_flattener.domain.entities import FileRecord, ProcessResult
from repo_flattener.services.document_assembler import bytes_human, filter_table_of_contents


def _fence_for(text: str) -> str:
    """Return a backtick fence longer than any run inside *text*."""
    longest = run = 0
    for ch in text:
        run = run + 1 if ch == "`" else 0
        longest = max(longest, run)
    return "`" * max(3, longest + 1)


def _language_hint(path: str) -> str:
    name = path.rsplit("/", maxsplit=1)[-1]
    dot = name.rfind(".")
    return name[dot + 1 :].lower() if dot > 0 else ""


def _skipped_section(title: str, files: Sequence[FileRecord]) -> list[str]:
    if not files:
        return []
    lines = [f"### {title} ({len(files)})", ""]
    lines.extend(f"- `{f.path}` ({bytes_human(f.size)})" for f in files)
    lines.append("")
    return lines


def render_markdown_document(result: ProcessResult, toc_filter: str = "") -> str:
    """Render the whole result as one Markdown document.

    Markdown files are inlined verbatim; everything else goes in a fenced
    block whose fence cannot collide with the file's own backticks.
    *toc_filter* narrows the table of contents only; every file section
    is still rendered.
    """
    lines: list[str] = [
        f"# {result.full_name}",
        "",
        f"Commit: `{result.commit_id}`",
        "",
        f"- Rendered files: {len(result.rendered)}",
        f"- Skipped binaries: {len(result.skipped_binary)}",
        f"- Skipped large files: {len(result.skipped_large)}",
        f"- Skipped ignored: {len(result.skipped_ignored)}",
        f"- Fetch errors: {len(result.skipped_fetch_error)}",
        "",
    ]
    if result.tree_truncated:
        lines += ["> The tree listing was truncated upstream; some files are missing.", ""]

    lines += ["## Directory tree", "", "```", result.tree_text, "```", ""]

    lines += ["## Table of contents", ""]
    lines.extend(
        f"- [{entry.path}](#{entry.anchor}) ({bytes_human(entry.size)})"
        for entry in filter_table_of_contents(result.table_of_contents, toc_filter)
    )
    lines.append("")

    lines += ["## Files", ""]
    for record, entry in zip(result.rendered, result.table_of_contents):
        content = record.content or ""
        lines += [f'<a id="{entry.anchor}"></a>', "", f"### {record.path}", ""]
        if record.is_markdown:
            lines += [content, ""]
        else:
            fence = _fence_for(content)
            lines += [f"{fence}{_language_hint(record.path)}", content, fence, ""]

    skipped = (
        _skipped_section("Skipped binaries", result.skipped_binary)
        + _skipped_section("Skipped large files", result.skipped_large)
        + _skipped_section("Skipped ignored files", result.skipped_ignored)
        + _skipped_section("Fetch errors", result.skipped_fetch_error)
    )
    if skipped:
        lines += ["## Skipped", "", *skipped]

    return "\n".join(lines).rstrip("\n") + "\n"
