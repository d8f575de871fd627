from __future__ import annotations

from pathlib import Path
from typing import Callable

from doclint.analysis.fs_walk import display_path
from doclint.analysis.graph import DocGraph
from doclint.exceptions import FileNotInGraphError, InvalidDepthError
from doclint.schema import CycleEntry, DependencyNode, DependencyReport, DependencyStats

Neighbours = Callable[[Path], list[Path]]


class DependencyAnalyzer:
    """Incoming and outgoing dependency trees of one file in a DocGraph.

    Each direction is expanded independently with its own ancestor path. An
    edge back to an ancestor becomes a cycle leaf (no children) and a cycle
    entry; ``A -> B`` and ``B -> A`` count as the same cycle.
    """

    def __init__(self, graph: DocGraph, base_path: Path | None = None) -> None:
        self.graph = graph
        self.base_path = Path(base_path).resolve() if base_path is not None else None

    def analyze(
        self,
        file: Path | str,
        include_incoming: bool = True,
        include_outgoing: bool = True,
        max_depth: int | None = None,
    ) -> DependencyReport:
        if max_depth is not None and max_depth < 0:
            raise InvalidDepthError(max_depth)
        path = self._resolve(file)
        if path not in self.graph:
            raise FileNotInGraphError(file)

        raw_cycles: list[tuple[Path, Path]] = []
        incoming: list[DependencyNode] = []
        outgoing: list[DependencyNode] = []
        if include_incoming:
            incoming = self._expand(
                path, 0, (path,), self._incoming, max_depth, raw_cycles, reverse=True
            )
        if include_outgoing:
            outgoing = self._expand(
                path, 0, (path,), self._outgoing, max_depth, raw_cycles, reverse=False
            )
        cycles = dedupe_cycles(raw_cycles)
        stats = DependencyStats(
            incoming_direct=len(incoming),
            incoming_total=len(tree_paths(incoming)),
            outgoing_direct=len(outgoing),
            outgoing_total=len(tree_paths(outgoing)),
            cycles_detected=len(cycles),
        )
        return DependencyReport(
            file=self._display(path),
            incoming=incoming,
            outgoing=outgoing,
            cycles=[
                CycleEntry(from_file=self._display(src), to_file=self._display(dst))
                for src, dst in cycles
            ],
            stats=stats,
        )

    def _resolve(self, file: Path | str) -> Path:
        candidate = Path(file)
        if not candidate.is_absolute() and self.base_path is not None:
            candidate = self.base_path / candidate
        return candidate.resolve()

    def _display(self, path: Path) -> str:
        if self.base_path is None:
            return path.as_posix()
        return display_path(path, self.base_path)

    def _outgoing(self, path: Path) -> list[Path]:
        return [dst for dst in self.graph.outgoing(path) if dst in self.graph]

    def _incoming(self, path: Path) -> list[Path]:
        return [src for src in self.graph.incoming(path) if src in self.graph]

    def _expand(
        self,
        path: Path,
        depth: int,
        ancestors: tuple[Path, ...],
        neighbours: Neighbours,
        max_depth: int | None,
        cycles: list[tuple[Path, Path]],
        *,
        reverse: bool,
    ) -> list[DependencyNode]:
        if max_depth is not None and depth >= max_depth:
            return []
        nodes: list[DependencyNode] = []
        for other in neighbours(path):
            if other in ancestors:
                cycles.append((other, path) if reverse else (path, other))
                nodes.append(
                    DependencyNode(
                        path=self._display(other),
                        depth=depth + 1,
                        is_cycle=True,
                        cycle_back_to=self._display(other),
                    )
                )
                continue
            children = self._expand(
                other,
                depth + 1,
                ancestors + (other,),
                neighbours,
                max_depth,
                cycles,
                reverse=reverse,
            )
            nodes.append(
                DependencyNode(path=self._display(other), depth=depth + 1, children=children)
            )
        return nodes


def dedupe_cycles(cycles: list[tuple[Path, Path]]) -> list[tuple[Path, Path]]:
    seen: set[frozenset[Path]] = set()
    unique: list[tuple[Path, Path]] = []
    for src, dst in cycles:
        key = frozenset((src, dst))
        if key in seen:
            continue
        seen.add(key)
        unique.append((src, dst))
    return unique


def tree_paths(nodes: list[DependencyNode]) -> list[str]:
    """Distinct paths of a dependency forest in pre-order."""
    seen: dict[str, None] = {}
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        seen.setdefault(node.path, None)
        stack.extend(reversed(node.children))
    return list(seen)
