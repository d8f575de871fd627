from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from doclint.analysis.content import MarkdownCache
from doclint.analysis.fs_walk import display_path
from doclint.analysis.graph import DocGraph

logger = logging.getLogger(__name__)

CONTENT_ORDERS = ("deps", "alpha")
CONTENT_FORMATS = ("markdown", "json")
DEFAULT_SEPARATOR = "\\n\\n"

_ESCAPES = (("\\n", "\n"), ("\\t", "\t"), ("\\r", "\r"))


@dataclass(frozen=True)
class ContentEntry:
    file: str
    depth: int
    content: str

    @property
    def word_count(self) -> int:
        return len(self.content.split())

    @property
    def line_count(self) -> int:
        return len(self.content.split("\n"))

    def to_payload(self) -> dict[str, object]:
        return {
            "file": self.file,
            "depth": self.depth,
            "content": self.content,
            "wordCount": self.word_count,
            "lineCount": self.line_count,
        }


def decode_separator(value: str) -> str:
    for escaped, literal in _ESCAPES:
        value = value.replace(escaped, literal)
    return value


def ordered_files(
    graph: DocGraph, order: str, only: Sequence[Path] | None = None
) -> list[Path]:
    files = graph.dependency_order() if order == "deps" else graph.alphabetical_order()
    if only:
        wanted = set(only)
        files = [path for path in files if path in wanted]
    return files


def collect_entries(
    graph: DocGraph, cache: MarkdownCache, files: Sequence[Path], base_path: Path
) -> list[ContentEntry]:
    entries = []
    for path in files:
        entries.append(
            ContentEntry(
                file=display_path(path, base_path),
                depth=graph.depth_of(path) or 0,
                content=cache.content(path),
            )
        )
        logger.info("✓ %s", display_path(path, base_path))
    return entries


def render_markdown(entries: Sequence[ContentEntry], separator: str) -> str:
    """Contents joined by ``separator``; one trailing newline is dropped from each file."""
    chunks = []
    for entry in entries:
        content = entry.content
        if content.endswith("\n"):
            content = content[:-1]
        chunks.append(content)
    return separator.join(chunks)


def render_json(entries: Sequence[ContentEntry]) -> str:
    return json.dumps([entry.to_payload() for entry in entries], indent=2)
