from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Sequence

from doclint.analysis.content import MarkdownCache
from doclint.analysis.exclusion import ExclusionManager
from doclint.analysis.fs_walk import find_markdown_files
from doclint.analysis.graph import DocGraph
from doclint.exceptions import (
    ContentReadError,
    EntrypointNotFoundError,
    InvalidConfigError,
    InvalidDepthError,
    OutsideScopeError,
)

logger = logging.getLogger(__name__)

ORPHANS_SKIPPED_DEPTH_LIMITED = "depth-limited"


@dataclass(frozen=True)
class OrphanReport:
    files: tuple[Path, ...] = ()
    skipped: bool = False
    reason: str | None = None


@dataclass
class _TraversalContext:
    graph: DocGraph
    max_depth: int | None
    scope_root: Path
    # smallest depth each admitted node has been expanded from
    reached: dict[Path, int] = field(default_factory=dict)
    # excluded or missing paths; depth rejections are not remembered because a
    # later, shorter path may still reach the file within the bound
    rejected: set[Path] = field(default_factory=set)


def common_ancestor(paths: Sequence[Path]) -> Path:
    if len(paths) == 1:
        return paths[0].parent
    return Path(os.path.commonpath([str(path.parent) for path in paths]))


class GraphAnalyzer:
    """Builds a DocGraph by following relative markdown links from entrypoints.

    Traversal is a multi-source, depth-bounded DFS sharing one visited map.
    Every entrypoint is seeded at depth 0 before any link is followed, and
    a file keeps the depth of the path that reached it first. Excluded and
    missing files never become nodes. Files outside the scope root become
    nodes but their links are not followed (unless scope limiting is off).
    """

    def __init__(
        self,
        base_path: Path,
        *,
        cache: MarkdownCache | None = None,
        exclusions: ExclusionManager | None = None,
        scope_root: Path | None = None,
        scope_limit: bool = True,
    ) -> None:
        self.base_path = Path(base_path).resolve()
        self.cache = cache if cache is not None else MarkdownCache()
        self.exclusions = exclusions
        self.scope_root = scope_root
        self.scope_limit = scope_limit

    def resolve_entrypoint(self, entrypoint: Path | str) -> Path:
        candidate = Path(entrypoint)
        if not candidate.is_absolute():
            candidate = self.base_path / candidate
        if not candidate.is_file():
            raise EntrypointNotFoundError(entrypoint)
        return candidate.resolve()

    def resolve_scope(self, entrypoints: Sequence[Path]) -> Path:
        if self.scope_root is not None:
            explicit = Path(self.scope_root)
            if not explicit.is_absolute():
                explicit = self.base_path / explicit
            return explicit.resolve()
        return common_ancestor(entrypoints)

    def is_within_scope(self, path: Path, scope_root: Path) -> bool:
        if not self.scope_limit:
            return True
        return path == scope_root or path.is_relative_to(scope_root)

    def resolve_link(self, source: Path, target: str) -> Path:
        if target.startswith("/"):
            return (self.base_path / target.lstrip("/")).resolve()
        return (source.parent / target).resolve()

    def build_graph(
        self, entrypoints: Sequence[Path | str], max_depth: int | None = None
    ) -> DocGraph:
        if max_depth is not None and max_depth < 0:
            raise InvalidDepthError(max_depth)
        if not entrypoints:
            raise InvalidConfigError("at least one entrypoint is required")
        entries = [self.resolve_entrypoint(entry) for entry in entrypoints]
        scope_root = self.resolve_scope(entries)
        for entry in entries:
            if not self.is_within_scope(entry, scope_root):
                raise OutsideScopeError(entry, scope_root)

        graph = DocGraph(depth_limit=max_depth, scope_root=scope_root)
        context = _TraversalContext(graph=graph, max_depth=max_depth, scope_root=scope_root)
        # every entrypoint is a depth-0 root, even when another entrypoint links to it
        roots: list[tuple[Path, list[Path]]] = []
        for entry in entries:
            targets = self._visit(context, entry, 0)
            if targets is not None:
                roots.append((entry, targets))
            elif entry not in context.reached:
                logger.warning("entrypoint %s is excluded; nothing to traverse", entry)
        for entry, targets in roots:
            self._traverse(context, entry, targets)
        logger.debug(
            "graph built: nodes=%d edges=%d scope=%s depth=%s",
            len(graph),
            len(graph.edges()),
            scope_root,
            "unlimited" if max_depth is None else max_depth,
        )
        return graph

    def _traverse(self, context: _TraversalContext, entry: Path, targets: list[Path]) -> None:
        frames: list[tuple[Path, int, Iterator[Path]]] = [(entry, 0, iter(targets))]
        while frames:
            source, depth, pending = frames[-1]
            target = next(pending, None)
            if target is None:
                frames.pop()
                continue
            context.graph.add_edge(source, target)
            child_targets = self._visit(context, target, depth + 1)
            if child_targets:
                frames.append((target, depth + 1, iter(child_targets)))

    def _visit(self, context: _TraversalContext, path: Path, depth: int) -> list[Path] | None:
        """Admit ``path`` at ``depth``; return the link targets to expand, or None if nothing to do.

        Under a depth bound a node reached again by a shorter path is expanded
        again with the larger remaining budget. Its stored depth is unchanged.
        """
        if context.max_depth is not None and depth > context.max_depth:
            return None
        if path in context.rejected:
            return None
        reached = context.reached.get(path)
        if reached is not None:
            if context.max_depth is None or depth >= reached:
                return None
        elif self.exclusions is not None and self.exclusions.should_exclude(path):
            logger.debug("excluded %s", path)
            context.rejected.add(path)
            return None
        elif not path.is_file():
            context.rejected.add(path)
            return None
        context.reached[path] = depth
        context.graph.add_node(path, depth)
        if not self.is_within_scope(path, context.scope_root):
            logger.debug("outside scope, not expanded: %s", path)
            context.graph.mark_out_of_scope(path)
            return []
        if context.max_depth is not None and depth == context.max_depth:
            return []
        try:
            targets = self.cache.markdown_targets(path)
        except ContentReadError as exc:
            if reached is None:
                logger.warning("%s", exc)
            return []
        return [self.resolve_link(path, target) for target in targets]

    def find_orphans(self, graph: DocGraph) -> OrphanReport:
        """Markdown files under the graph's scope root that are not graph nodes.

        A depth-limited graph cannot tell an unlinked file from one beyond the
        bound, so detection is skipped and reported as such.
        """
        if graph.is_depth_limited:
            logger.warning(
                "orphan detection skipped: graph is depth-limited (depth=%s)",
                graph.depth_limit,
            )
            return OrphanReport(skipped=True, reason=ORPHANS_SKIPPED_DEPTH_LIMITED)
        root = graph.scope_root if graph.scope_root is not None else self.base_path
        reachable = set(graph.all_nodes())
        files = find_markdown_files(root, self.exclusions)
        return OrphanReport(files=tuple(path for path in files if path not in reachable))
