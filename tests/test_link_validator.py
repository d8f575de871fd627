from __future__ import annotations

from pathlib import Path

import pytest

from doclint.analysis.content import MarkdownCache
from doclint.analysis.graph_builder import GraphAnalyzer
from doclint.analysis.link_validator import LinkValidator
from doclint.exceptions import InvalidOptionError


def _validate(root: Path, entry: str = "README.md", **kwargs):
    cache = MarkdownCache()
    graph = GraphAnalyzer(root, cache=cache).build_graph([entry])
    return LinkValidator(cache, root, **kwargs).validate(graph)


def test_clean_tree_has_no_findings(write_tree) -> None:
    root = write_tree(
        {
            "README.md": "# Home\n\n[Guide](guide.md#getting-started) [Top](#home)\n",
            "guide.md": "# Getting Started\n\n[Back](README.md)\n",
        }
    )
    assert _validate(root) == []


def test_dead_link_reports_position(write_tree) -> None:
    root = write_tree({"README.md": "# Home\n\nSee [Missing](missing.md) here.\n"})
    [finding] = _validate(root)
    assert finding.rule == "dead-link"
    assert finding.severity == "error"
    assert finding.file == "README.md"
    assert (finding.line, finding.column) == (3, 5)
    assert finding.literal == "[Missing](missing.md)"
    assert "missing.md" in finding.message
    assert finding.resolved_path == str(root / "missing.md")


def test_dead_anchor_in_target_file(write_tree) -> None:
    root = write_tree(
        {
            "README.md": "[Guide](guide.md#nope) [Ok](guide.md#Install-Steps)\n",
            "guide.md": "# Install Steps\n",
        }
    )
    [finding] = _validate(root)
    assert finding.rule == "dead-anchor"
    assert "#nope" in finding.message


def test_anchor_only_link_checks_own_headings(write_tree) -> None:
    root = write_tree(
        {
            "README.md": "# Intro\n\n## Setup\n\n## Setup\n\n[a](#intro) [b](#setup-1) [c](#setup-2)\n",
        }
    )
    [finding] = _validate(root)
    assert finding.rule == "dead-anchor"
    assert "#setup-2" in finding.message
    assert "current file" in finding.message


def test_missing_file_with_anchor_is_only_a_dead_link(write_tree) -> None:
    root = write_tree({"README.md": "[x](gone.md#section)\n"})
    findings = _validate(root)
    assert [finding.rule for finding in findings] == ["dead-link"]


def test_non_markdown_targets_are_checked_for_existence(write_tree) -> None:
    root = write_tree({"README.md": "[logo](img/logo.png) [data](data.csv)\n", "data.csv": "a,b\n"})
    findings = _validate(root)
    assert [(finding.rule, finding.message) for finding in findings] == [
        ("dead-link", "Broken link: img/logo.png (file not found)")
    ]


def test_other_schemes_are_skipped(write_tree) -> None:
    root = write_tree({"README.md": "[m](mailto:a@b.c) [f](ftp://host/file.md)\n"})
    assert _validate(root) == []


@pytest.mark.parametrize(
    ("policy", "expected"),
    [
        ("ignore", []),
        ("validate", [("dead-link", "error")]),
        ("warn", [("dead-link", "warn"), ("dead-link", "warn")]),
        ("error", [("dead-link", "error"), ("dead-link", "error")]),
    ],
)
def test_external_link_policies(write_tree, policy: str, expected: list[tuple[str, str]]) -> None:
    root = write_tree({"README.md": "[ok](https://example.com/page)\n\n[bad](http://)\n"})
    findings = _validate(root, external_links=policy)
    assert [(finding.rule, finding.severity) for finding in findings] == expected


def test_malformed_external_url_message(write_tree) -> None:
    root = write_tree({"README.md": "[bad](http://)\n"})
    [finding] = _validate(root, external_links="validate")
    assert finding.message == "Malformed external URL: http://"


def test_rule_severities_downgrade_and_disable(write_tree) -> None:
    root = write_tree({"README.md": "[x](gone.md) [y](#nowhere)\n"})
    findings = _validate(root, severities={"dead-link": "warn", "dead-anchor": "off"})
    assert [(finding.rule, finding.severity) for finding in findings] == [("dead-link", "warn")]


def test_unreadable_file_is_its_own_finding(write_tree) -> None:
    root = write_tree({"README.md": "[bad](bad.md) [gone](gone.md)\n"})
    (root / "bad.md").write_bytes(b"\xff\xfe\xfd")
    findings = _validate(root)
    assert [(finding.file, finding.rule) for finding in findings] == [
        ("README.md", "dead-link"),
        ("bad.md", "unreadable-file"),
    ]


def test_findings_are_sorted_regardless_of_concurrency(write_tree) -> None:
    files = {"README.md": "".join(f"[n{index}](n{index}.md)\n" for index in range(20))}
    for index in range(20):
        files[f"n{index}.md"] = f"[gone](gone{index}.md)\n\n[also](#missing)\n"
    root = write_tree(files)
    sequential = _validate(root, max_concurrency=1)
    parallel = _validate(root, max_concurrency=8)
    assert sequential == parallel
    keys = [finding.sort_key() for finding in parallel]
    assert keys == sorted(keys)
    assert len(parallel) == 40


def test_unknown_external_policy_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(InvalidOptionError):
        LinkValidator(MarkdownCache(), tmp_path, external_links="fetch")


def test_anchor_to_multiline_setext_heading(write_tree) -> None:
    root = write_tree({"README.md": "Getting\nStarted\n===\n\n[x](#getting-started)\n"})
    assert _validate(root) == []
