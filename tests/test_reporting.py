from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from doclint.reporting import content_output, dependency_report, lint_report
from doclint.schema import CycleEntry, DependencyNode, DependencyReport, DependencyStats, Finding


def _finding(file: str, line: int, rule: str, severity: str = "error") -> Finding:
    return Finding(
        file=file,
        line=line,
        column=3,
        severity=severity,
        rule=rule,
        message=f"{rule} message",
    )


def _report() -> DependencyReport:
    return DependencyReport(
        file="README.md",
        outgoing=[
            DependencyNode(
                path="guide.md",
                depth=1,
                children=[
                    DependencyNode(
                        path="README.md", depth=2, is_cycle=True, cycle_back_to="README.md"
                    )
                ],
            ),
            DependencyNode(path="api.md", depth=1),
        ],
        cycles=[CycleEntry(from_file="guide.md", to_file="README.md")],
        stats=DependencyStats(outgoing_direct=2, outgoing_total=3, cycles_detected=1),
    )


def test_text_groups_findings_by_file() -> None:
    text = lint_report.format_text(
        [
            _finding("README.md", 2, "dead-link"),
            _finding("README.md", 5, "dead-anchor", "warn"),
            _finding("guide.md", 1, "orphan-files"),
        ]
    )
    assert text.splitlines() == [
        "README.md",
        "  2:3 error dead-link message [dead-link]",
        "  5:3 warn dead-anchor message [dead-anchor]",
        "",
        "guide.md",
        "  1:3 error orphan-files message [orphan-files]",
    ]
    assert lint_report.format_summary(2, 1) == "2 error(s), 1 warning(s)"


def test_grep_and_json_formats() -> None:
    findings = [_finding("README.md", 2, "dead-link")]
    assert lint_report.format_grep(findings) == (
        "README.md:2:3: error: dead-link message [dead-link]"
    )
    [payload] = json.loads(lint_report.format_json(findings))
    assert payload == {
        "file": "README.md",
        "line": 2,
        "column": 3,
        "severity": "error",
        "rule": "dead-link",
        "message": "dead-link message",
    }


def test_dependency_tree_rendering() -> None:
    text = dependency_report.format_tree(_report(), show_incoming=False)
    lines = text.splitlines()
    assert lines[1] == "README.md"
    assert "Outgoing (3 files referenced by this):" in lines
    start = lines.index("Outgoing (3 files referenced by this):")
    assert lines[start + 1 : start + 4] == [
        "├── guide.md",
        "│   └── README.md [cycle detected]",
        "└── api.md",
    ]
    assert "1 cycle detected:" in lines
    assert "  - guide.md → README.md" in lines
    assert not any(line.startswith("Incoming") for line in lines)


def test_dependency_list_rendering() -> None:
    lines = dependency_report.format_list(_report()).splitlines()
    assert lines[lines.index("Incoming:") + 1] == "None"
    outgoing = lines.index("Outgoing:")
    assert lines[outgoing + 1 : outgoing + 4] == ["- guide.md", "- README.md", "- api.md"]
    assert "Total: 0 incoming, 3 outgoing" in lines
    assert "1 cycle(s) detected" in lines


def test_dependency_json_uses_from_to_pairs() -> None:
    payload = json.loads(dependency_report.format_json(_report()))
    assert payload["cycles"] == [{"from": "guide.md", "to": "README.md"}]
    assert payload["outgoing"][0]["children"][0]["is_cycle"] is True


def test_content_rendering() -> None:
    entries = [
        content_output.ContentEntry(file="b.md", depth=1, content="# B\n\nbody text\n"),
        content_output.ContentEntry(file="a.md", depth=0, content="# A\n"),
    ]
    separator = content_output.decode_separator("\\n---\\n")
    assert separator == "\n---\n"
    assert content_output.render_markdown(entries, separator) == "# B\n\nbody text\n---\n# A"
    payload = json.loads(content_output.render_json(entries))
    assert payload[0] == {
        "file": "b.md",
        "depth": 1,
        "content": "# B\n\nbody text\n",
        "wordCount": 4,
        "lineCount": 4,
    }


def test_decode_separator_handles_tabs() -> None:
    assert content_output.decode_separator("\\t|\\r\\n") == "\t|\r\n"


def test_finding_rejects_unknown_rule() -> None:
    with pytest.raises(ValidationError):
        _finding("README.md", 1, "dead-links")
