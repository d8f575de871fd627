from __future__ import annotations

import json
from typing import Sequence

import typer

from doclint.schema import DependencyNode, DependencyReport

DEPENDENCY_FORMATS = ("tree", "list", "json")

_RULE_WIDTH = 50


def _style(text: str, colors: bool, **kwargs: object) -> str:
    return typer.style(text, **kwargs) if colors else text


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def tree_lines(nodes: Sequence[DependencyNode], prefix: str = "", *, colors: bool = False) -> list[str]:
    lines: list[str] = []
    for index, node in enumerate(nodes):
        last = index == len(nodes) - 1
        label = prefix + ("└── " if last else "├── ") + node.path
        if node.is_cycle:
            label += _style(" [cycle detected]", colors, fg=typer.colors.YELLOW)
        lines.append(label)
        if node.children and not node.is_cycle:
            lines.extend(
                tree_lines(node.children, prefix + ("    " if last else "│   "), colors=colors)
            )
    return lines


def flatten(nodes: Sequence[DependencyNode]) -> list[str]:
    """Unique paths in pre-order, not descending through cycle leaves."""
    seen: dict[str, None] = {}

    def visit(node: DependencyNode) -> None:
        seen.setdefault(node.path, None)
        if node.is_cycle:
            return
        for child in node.children:
            visit(child)

    for node in nodes:
        visit(node)
    return list(seen)


def _header(report: DependencyReport, colors: bool) -> list[str]:
    if colors:
        rule = typer.style("─" * _RULE_WIDTH, fg=typer.colors.BRIGHT_BLACK)
    else:
        rule = "-" * _RULE_WIDTH
    return ["", _style(report.file, colors, bold=True), rule, ""]


def format_tree(
    report: DependencyReport,
    *,
    show_incoming: bool = True,
    show_outgoing: bool = True,
    colors: bool = False,
) -> str:
    lines = _header(report, colors)
    stats = report.stats
    if show_incoming:
        if report.incoming:
            title = (
                f"Incoming ({_plural(stats.incoming_total, 'file')} "
                f"{'references' if stats.incoming_total == 1 else 'reference'} this):"
            )
            lines.append(_style(title, colors, fg=typer.colors.CYAN))
            lines.extend(tree_lines(report.incoming, colors=colors))
        else:
            lines.append(_style("Incoming:", colors, fg=typer.colors.CYAN))
            lines.append("None")
        lines.append("")
    if show_outgoing:
        if report.outgoing:
            title = f"Outgoing ({_plural(stats.outgoing_total, 'file')} referenced by this):"
            lines.append(_style(title, colors, fg=typer.colors.MAGENTA))
            lines.extend(tree_lines(report.outgoing, colors=colors))
        else:
            lines.append(_style("Outgoing:", colors, fg=typer.colors.MAGENTA))
            lines.append("None")
        lines.append("")
    if report.cycles:
        lines.append(
            _style(f"{_plural(len(report.cycles), 'cycle')} detected:", colors, fg=typer.colors.YELLOW)
        )
        for cycle in report.cycles:
            lines.append(f"  - {cycle.from_file} → {cycle.to_file}")
    return "\n".join(lines)


def format_list(
    report: DependencyReport,
    *,
    show_incoming: bool = True,
    show_outgoing: bool = True,
    colors: bool = False,
) -> str:
    lines = _header(report, colors)
    sections = (
        (show_incoming, "Incoming:", report.incoming, typer.colors.CYAN),
        (show_outgoing, "Outgoing:", report.outgoing, typer.colors.MAGENTA),
    )
    for shown, title, nodes, color in sections:
        if not shown:
            continue
        lines.append(_style(title, colors, fg=color))
        paths = flatten(nodes)
        if paths:
            lines.extend(f"- {path}" for path in paths)
        else:
            lines.append("None")
        lines.append("")
    lines.append(
        f"Total: {report.stats.incoming_total} incoming, {report.stats.outgoing_total} outgoing"
    )
    if report.cycles:
        lines.append(_style(f"{len(report.cycles)} cycle(s) detected", colors, fg=typer.colors.YELLOW))
    return "\n".join(lines)


def format_json(report: DependencyReport) -> str:
    return json.dumps(report.to_payload(), indent=2)
