"""YAML frontmatter metadata and JMESPath queries over it."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable

import jmespath
import yaml
from jmespath.exceptions import JMESPathError

from doclint.analysis.content import MarkdownCache, frontmatter_block
from doclint.exceptions import ContentReadError, FrontmatterError, InvalidQueryError

logger = logging.getLogger(__name__)


def parse_frontmatter(text: str, path: object = "<text>") -> dict[str, Any]:
    """Leading ``---`` YAML block as a mapping; empty when the file has none."""
    block = frontmatter_block(text)
    if block is None:
        return {}
    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        raise FrontmatterError(path, str(exc)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontmatterError(path, f"expected a mapping, got {type(data).__name__}")
    return data


class FrontmatterQuery:
    """Compiled JMESPath expression; a file matches when the result is truthy."""

    def __init__(self, query: str) -> None:
        self.query = query
        try:
            self._expression = jmespath.compile(query)
        except JMESPathError as exc:
            raise InvalidQueryError(query, str(exc)) from exc

    def matches(self, data: dict[str, Any]) -> bool:
        return bool(self._expression.search(data))

    def filter(self, cache: MarkdownCache, paths: Iterable[Path]) -> list[Path]:
        matched: list[Path] = []
        for path in paths:
            try:
                data = parse_frontmatter(cache.content(path), path)
                if self.matches(data):
                    matched.append(path)
            except (ContentReadError, FrontmatterError) as exc:
                logger.info("skipping %s", exc)
            except JMESPathError as exc:
                logger.info("skipping %s: %s", path, exc)
        logger.info("%d file(s) match frontmatter query %s", len(matched), self.query)
        return matched
