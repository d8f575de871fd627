"""Markdown content provider.

Reads a markdown file once per invocation and exposes its raw text, its links
(with source position and literal text) and its headings. Parsing is delegated
to markdown-it-py; this module only maps tokens back onto source positions.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from urllib.parse import unquote

from markdown_it import MarkdownIt
from markdown_it.token import Token

from doclint.analysis.slug import unique_slugs
from doclint.exceptions import ContentReadError

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIXES = (".md", ".markdown")

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")
_FRONTMATTER_FENCES = ("---",)
_FRONTMATTER_CLOSERS = ("---", "...")


@dataclass(frozen=True)
class LinkRef:
    target: str
    line: int
    column: int
    end_column: int | None = None
    literal: str | None = None

    @property
    def is_web(self) -> bool:
        lowered = self.target.lower()
        return lowered.startswith("http://") or lowered.startswith("https://")

    @property
    def has_scheme(self) -> bool:
        return bool(_SCHEME_RE.match(self.target))

    @property
    def is_anchor_only(self) -> bool:
        return self.target.startswith("#")


@dataclass(frozen=True)
class Heading:
    text: str
    level: int
    line: int
    column: int


@dataclass(frozen=True)
class MarkdownDocument:
    path: Path
    text: str
    links: tuple[LinkRef, ...]
    headings: tuple[Heading, ...]

    @property
    def heading_slugs(self) -> frozenset[str]:
        return frozenset(unique_slugs([heading.text for heading in self.headings]))


def is_markdown_path(path: str | Path) -> bool:
    return str(path).lower().endswith(MARKDOWN_SUFFIXES)


def split_target(target: str) -> tuple[str, str | None]:
    """``"guide.md#setup"`` -> ``("guide.md", "setup")``; file part percent-decoded."""
    file_part, sep, anchor = target.partition("#")
    file_part = file_part.split("?", 1)[0]
    return unquote(file_part), (anchor if sep else None)


@lru_cache(maxsize=1)
def _parser() -> MarkdownIt:
    md = MarkdownIt("commonmark")
    # Keep hrefs exactly as written so they can be found again in the source.
    md.normalizeLink = lambda url: url
    return md


def _frontmatter_end(lines: list[str]) -> int | None:
    """Index of the closing fence of a leading YAML block, or None."""
    if not lines or lines[0].strip() not in _FRONTMATTER_FENCES:
        return None
    for idx in range(1, len(lines)):
        if lines[idx].strip() in _FRONTMATTER_CLOSERS:
            return idx
    return None


def frontmatter_block(text: str) -> str | None:
    """Raw YAML between the frontmatter fences, or None if the file has none."""
    lines = text.splitlines()
    end = _frontmatter_end(lines)
    if end is None:
        return None
    return "\n".join(lines[1:end])


def _blank_frontmatter(lines: list[str]) -> list[str]:
    end = _frontmatter_end(lines)
    if end is None:
        return lines
    return [""] * (end + 1) + lines[end + 1 :]


def _literal_start(line: str, close_bracket: int) -> int:
    depth = 0
    for idx in range(close_bracket, -1, -1):
        char = line[idx]
        if char == "]":
            depth += 1
        elif char == "[":
            depth -= 1
            if depth == 0:
                return idx
    return len(line) - len(line.lstrip())


def _link_text(children: list[Token], start: int) -> str:
    parts: list[str] = []
    for child in children[start + 1 :]:
        if child.type == "link_close":
            break
        if child.type in ("text", "code_inline"):
            parts.append(child.content)
    return "".join(parts)


class _Locator:
    """Finds successive links of one inline block in the raw source lines."""

    def __init__(self, lines: list[str], start: int, end: int):
        self.lines = lines
        self.end = min(end, len(lines))
        self.line = start
        self.col = 0

    def _advance(self, line: int, col: int) -> None:
        self.line = line
        self.col = col

    def _search(self, needles: tuple[str, ...]) -> tuple[int, int, str] | None:
        for line_index in range(self.line, self.end):
            text = self.lines[line_index]
            offset = self.col if line_index == self.line else 0
            hits = [
                (pos, needle)
                for needle in needles
                if (pos := text.find(needle, offset)) >= 0
            ]
            if hits:
                pos, needle = min(hits)
                return line_index, pos, needle
        return None

    def inline_link(self, href: str) -> LinkRef | None:
        found = self._search((f"](<{href}>", f"]({href}"))
        if found is None:
            return None
        line_index, pos, needle = found
        text = self.lines[line_index]
        close = text.find(")", pos + len(needle))
        end = close + 1 if close >= 0 else len(text)
        start = _literal_start(text, pos)
        self._advance(line_index, end)
        return LinkRef(
            target=href,
            line=line_index + 1,
            column=start + 1,
            end_column=end + 1,
            literal=text[start:end],
        )

    def autolink(self, href: str) -> LinkRef | None:
        found = self._search((f"<{href}>",))
        if found is None:
            return None
        line_index, pos, needle = found
        end = pos + len(needle)
        self._advance(line_index, end)
        return LinkRef(
            target=href,
            line=line_index + 1,
            column=pos + 1,
            end_column=end + 1,
            literal=needle,
        )

    def reference_link(self, href: str, label: str) -> LinkRef | None:
        found = self._search((f"[{label}]",))
        if found is None:
            return None
        line_index, pos, needle = found
        text = self.lines[line_index]
        end = pos + len(needle)
        if text[end : end + 1] == "[":
            close = text.find("]", end)
            if close >= 0:
                end = close + 1
        self._advance(line_index, end)
        return LinkRef(
            target=href,
            line=line_index + 1,
            column=pos + 1,
            end_column=end + 1,
            literal=text[pos:end],
        )

    def fallback(self, href: str) -> LinkRef:
        return LinkRef(target=href, line=self.line + 1, column=1)


def _heading_part(child: Token) -> str:
    if child.type in ("text", "code_inline"):
        return child.content
    if child.type in ("softbreak", "hardbreak"):
        return " "
    return ""


def _extract(lines: list[str], tokens: list[Token]) -> tuple[list[LinkRef], list[Heading]]:
    links: list[LinkRef] = []
    headings: list[Heading] = []
    for index, token in enumerate(tokens):
        if token.type == "heading_open" and token.map and index + 1 < len(tokens):
            inline = tokens[index + 1]
            text = "".join(_heading_part(child) for child in inline.children or [])
            source = lines[token.map[0]] if token.map[0] < len(lines) else ""
            headings.append(
                Heading(
                    text=text,
                    level=int(token.tag[1:]),
                    line=token.map[0] + 1,
                    column=len(source) - len(source.lstrip()) + 1,
                )
            )
            continue
        if token.type != "inline" or not token.map or not token.children:
            continue
        locator = _Locator(lines, token.map[0], token.map[1])
        children = token.children
        for child_index, child in enumerate(children):
            if child.type != "link_open":
                continue
            href = str(child.attrGet("href") or "")
            if child.markup == "autolink":
                ref = locator.autolink(href)
            else:
                ref = locator.inline_link(href)
                if ref is None:
                    ref = locator.reference_link(href, _link_text(children, child_index))
            links.append(ref if ref is not None else locator.fallback(href))
    return links, headings


def parse_markdown(path: Path, text: str) -> MarkdownDocument:
    lines = _blank_frontmatter(text.splitlines())
    tokens = _parser().parse("\n".join(lines))
    links, headings = _extract(lines, tokens)
    return MarkdownDocument(
        path=path,
        text=text,
        links=tuple(links),
        headings=tuple(headings),
    )


class MarkdownCache:
    """Write-once, per-invocation cache of parsed markdown documents.

    Keys are canonical paths. Read failures are cached as well so a broken file
    is reported once and never re-read. Two workers racing on the same path
    both parse it and store equal results.
    """

    def __init__(self) -> None:
        self._documents: dict[Path, MarkdownDocument] = {}
        self._failures: dict[Path, ContentReadError] = {}

    def document(self, path: Path | str) -> MarkdownDocument:
        key = Path(path).resolve()
        cached = self._documents.get(key)
        if cached is not None:
            return cached
        failure = self._failures.get(key)
        if failure is not None:
            raise failure
        logger.debug("parsing %s", key)
        try:
            text = key.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            error = ContentReadError(key, f"not valid UTF-8 ({exc.reason})")
            self._failures[key] = error
            raise error from exc
        except OSError as exc:
            error = ContentReadError(key, exc.strerror or str(exc))
            self._failures[key] = error
            raise error from exc
        document = parse_markdown(key, text)
        self._documents.setdefault(key, document)
        return self._documents[key]

    def content(self, path: Path | str) -> str:
        return self.document(path).text

    def links(self, path: Path | str) -> tuple[LinkRef, ...]:
        return self.document(path).links

    def headings(self, path: Path | str) -> tuple[Heading, ...]:
        return self.document(path).headings

    def heading_slugs(self, path: Path | str) -> frozenset[str]:
        return self.document(path).heading_slugs

    def markdown_targets(self, path: Path | str) -> list[str]:
        """Relative markdown file targets of a document, anchors stripped, in source order."""
        targets: list[str] = []
        for link in self.links(path):
            if link.is_anchor_only or link.has_scheme:
                continue
            file_part, _anchor = split_target(link.target)
            if file_part and is_markdown_path(file_part):
                targets.append(file_part)
        return targets

    def stats(self) -> dict[str, int]:
        return {
            "cached_files": len(self._documents),
            "cache_size": sum(len(doc.text) for doc in self._documents.values()),
            "failures": len(self._failures),
        }
