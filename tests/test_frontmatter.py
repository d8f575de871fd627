from __future__ import annotations

from pathlib import Path

import pytest

from doclint.analysis.content import MarkdownCache, frontmatter_block
from doclint.analysis.frontmatter import FrontmatterQuery, parse_frontmatter
from doclint.exceptions import FrontmatterError, InvalidQueryError


def test_frontmatter_block_is_the_leading_fence() -> None:
    assert frontmatter_block("---\ntitle: A\n---\n# A\n") == "title: A"
    assert frontmatter_block("---\ntitle: A\n...\n") == "title: A"
    assert frontmatter_block("# A\n---\ntitle: A\n---\n") is None
    assert frontmatter_block("---\nnever closed\n") is None


def test_parse_frontmatter() -> None:
    text = "---\ntitle: Guide\ntags: [api, beta]\ndraft: false\n---\n# Guide\n"
    assert parse_frontmatter(text) == {"title": "Guide", "tags": ["api", "beta"], "draft": False}
    assert parse_frontmatter("# No metadata\n") == {}
    assert parse_frontmatter("---\n---\nbody\n") == {}


def test_parse_frontmatter_rejects_bad_yaml_and_scalars() -> None:
    with pytest.raises(FrontmatterError):
        parse_frontmatter("---\ntitle: [unclosed\n---\n", "a.md")
    with pytest.raises(FrontmatterError) as excinfo:
        parse_frontmatter("---\njust a string\n---\n", "a.md")
    assert "mapping" in excinfo.value.reason


def test_query_matches_truthy_results() -> None:
    query = FrontmatterQuery("contains(tags, 'api')")
    assert query.matches({"tags": ["api"]})
    assert not query.matches({"tags": ["cli"]})
    assert FrontmatterQuery("status == 'stable'").matches({"status": "stable"})
    assert not FrontmatterQuery("title").matches({})


def test_invalid_query_is_rejected() -> None:
    with pytest.raises(InvalidQueryError):
        FrontmatterQuery("tags[?")


def test_filter_skips_unparseable_files(write_tree) -> None:
    root = write_tree(
        {
            "a.md": "---\ntags: [api]\n---\n# A\n",
            "b.md": "---\ntags: [cli]\n---\n# B\n",
            "c.md": "---\ntags: [api\n---\n# C\n",
            "d.md": "# D\n",
            "e.md": "---\ntags: 3\n---\n# E\n",
        }
    )
    paths = [root / name for name in ("a.md", "b.md", "c.md", "d.md", "e.md")]
    matched = FrontmatterQuery("contains(tags, 'api')").filter(MarkdownCache(), paths)
    assert matched == [root / "a.md"]


def test_frontmatter_does_not_affect_links(tmp_path: Path) -> None:
    path = tmp_path / "a.md"
    path.write_text("---\nsee: '[x](x.md)'\n---\n[b](b.md)\n", encoding="utf-8")
    assert MarkdownCache().markdown_targets(path) == ["b.md"]
