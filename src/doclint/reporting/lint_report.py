from __future__ import annotations

import json
from typing import Sequence

import typer

from doclint.schema import Finding

LINT_FORMATS = ("text", "json", "grep")


def _style(text: str, colors: bool, **kwargs: object) -> str:
    return typer.style(text, **kwargs) if colors else text


def format_location(finding: Finding) -> str:
    return f"{finding.line}:{finding.column}" if finding.line > 0 else "-"


def format_text(findings: Sequence[Finding], *, colors: bool = False) -> str:
    """Findings grouped by file, one ``location severity message [rule]`` line each."""
    grouped: dict[str, list[Finding]] = {}
    for finding in findings:
        grouped.setdefault(finding.file, []).append(finding)
    lines: list[str] = []
    for file, entries in grouped.items():
        lines.append(_style(file, colors, underline=True))
        for finding in entries:
            severity = _style(
                finding.severity,
                colors,
                fg=typer.colors.RED if finding.severity == "error" else typer.colors.YELLOW,
            )
            rule = _style(f"[{finding.rule}]", colors, fg=typer.colors.BRIGHT_BLACK)
            lines.append(f"  {format_location(finding)} {severity} {finding.message} {rule}")
        lines.append("")
    return "\n".join(lines)


def format_summary(error_count: int, warning_count: int) -> str:
    return f"{error_count} error(s), {warning_count} warning(s)"


def format_grep(findings: Sequence[Finding]) -> str:
    return "\n".join(
        f"{finding.file}:{finding.line}:{finding.column}: "
        f"{finding.severity}: {finding.message} [{finding.rule}]"
        for finding in findings
    )


def format_json(findings: Sequence[Finding]) -> str:
    payload = [finding.model_dump(mode="json", exclude_none=True) for finding in findings]
    return json.dumps(payload, indent=2)
