"""Container serializer — frame rendered files into one tagged text document.

Format::

    <documents>
    <document index="1" path="src/app.py" bytes="120" repo="https://github.com/o/r">
    <![CDATA[...file content...]]>
    </document>
    </documents>

Attribute values escape ``" ' < &``.  A ``]]>`` inside file content is split
across two CDATA sections so it cannot close the section early.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Iterable

from repo_flattener.domain.entities import FileRecord

CDATA_OPEN = "<![CDATA["
CDATA_CLOSE = "]]>"
_CDATA_SPLIT = "]]]]><![CDATA[>"

_ATTR_ESCAPES: dict[str, str] = {
    '"': "&quot;",
    "'": "&apos;",
    "<": "&lt;",
    "&": "&amp;",
}
_ATTR_RE = re.compile(r"[\"'<&]")

_DOCUMENT_RE = re.compile(
    r'<document index="(?P<index>\d+)" path="(?P<path>[^"]*)" '
    r'bytes="(?P<bytes>\d+)" repo="(?P<repo>[^"]*)">\n'
    r"(?P<body>(?:<!\[CDATA\[(?:(?!\]\]>).)*\]\]>)+)\n</document>",
    re.DOTALL,
)
_CDATA_RE = re.compile(r"<!\[CDATA\[((?:(?!\]\]>).)*)\]\]>", re.DOTALL)


@dataclass(frozen=True, slots=True)
class ContainerDocument:
    """One file recovered from container text."""

    index: int
    path: str
    bytes: int
    repo: str
    content: str


def escape_attr(value: str) -> str:
    return _ATTR_RE.sub(lambda m: _ATTR_ESCAPES[m.group()], value)


def frame_cdata(text: str) -> str:
    """Wrap *text* in CDATA, splitting any embedded terminator."""
    return CDATA_OPEN + text.replace(CDATA_CLOSE, _CDATA_SPLIT) + CDATA_CLOSE


def serialize(rendered: Iterable[FileRecord], repo: str) -> str:
    """Produce the container text for *rendered* files in their given order."""
    repo_attr = escape_attr(repo)
    lines: list[str] = ["<documents>"]
    for idx, record in enumerate(rendered, start=1):
        lines.append(
            f'<document index="{idx}" path="{escape_attr(record.path)}" '
            f'bytes="{record.size}" repo="{repo_attr}">'
        )
        lines.append(frame_cdata(record.content or ""))
        lines.append("</document>")
    lines.append("</documents>")
    return "\n".join(lines)


def parse(container_text: str) -> list[ContainerDocument]:
    """Split container text back into its documents.

    Adjacent CDATA sections inside one document are concatenated, which
    undoes the terminator splitting done by :func:`frame_cdata`.
    """
    documents: list[ContainerDocument] = []
    for match in _DOCUMENT_RE.finditer(container_text):
        content = "".join(_CDATA_RE.findall(match["body"]))
        documents.append(
            ContainerDocument(
                index=int(match["index"]),
                path=html.unescape(match["path"]),
                bytes=int(match["bytes"]),
                repo=html.unescape(match["repo"]),
                content=content,
            )
        )
    return documents
