from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator


@dataclass(frozen=True)
class DocNode:
    path: Path
    depth: int


class DocGraph:
    """Directed graph of markdown files.

    Nodes are canonical paths with the depth at which traversal first found
    them. Edges are plain ``(src, dst)`` path pairs recorded in both directions
    whether or not ``dst`` is a node: broken, excluded and out-of-scope links
    stay queryable as dangling edges.
    """

    def __init__(
        self,
        *,
        depth_limit: int | None = None,
        scope_root: Path | None = None,
    ) -> None:
        self.depth_limit = depth_limit
        self.scope_root = scope_root
        self._nodes: dict[Path, DocNode] = {}
        # dict-as-ordered-set keeps insertion order for reproducible output
        self._outgoing: dict[Path, dict[Path, None]] = {}
        self._incoming: dict[Path, dict[Path, None]] = {}
        self._out_of_scope: dict[Path, None] = {}

    def __contains__(self, path: object) -> bool:
        return path in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Path]:
        return iter(self._nodes)

    @property
    def is_depth_limited(self) -> bool:
        return self.depth_limit is not None

    def add_node(self, path: Path, depth: int) -> None:
        if path not in self._nodes:
            self._nodes[path] = DocNode(path=path, depth=depth)

    def mark_out_of_scope(self, path: Path) -> None:
        self._out_of_scope.setdefault(path, None)

    def add_edge(self, src: Path, dst: Path) -> None:
        self._outgoing.setdefault(src, {})[dst] = None
        self._incoming.setdefault(dst, {})[src] = None

    def has_node(self, path: Path) -> bool:
        return path in self._nodes

    def all_nodes(self) -> list[Path]:
        return list(self._nodes)

    def node(self, path: Path) -> DocNode | None:
        return self._nodes.get(path)

    def depth_of(self, path: Path) -> int | None:
        node = self._nodes.get(path)
        return node.depth if node is not None else None

    def outgoing(self, path: Path) -> list[Path]:
        return list(self._outgoing.get(path, ()))

    def incoming(self, path: Path) -> list[Path]:
        return list(self._incoming.get(path, ()))

    def edges(self) -> list[tuple[Path, Path]]:
        return [(src, dst) for src, targets in self._outgoing.items() for dst in targets]

    def dangling_edges(self) -> list[tuple[Path, Path]]:
        return [(src, dst) for src, dst in self.edges() if dst not in self._nodes]

    def entrypoints(self) -> list[Path]:
        return sorted(path for path, node in self._nodes.items() if node.depth == 0)

    def out_of_scope(self) -> list[Path]:
        return list(self._out_of_scope)

    def alphabetical_order(self) -> list[Path]:
        return sorted(self._nodes)

    def dependency_order(self) -> list[Path]:
        """Linearization in which every file follows the files it links to.

        Post-order DFS from the depth-0 nodes, then from any node still
        unvisited (disconnected components), all in lexicographic order. The
        visited set covers in-progress nodes, so a cycle is broken at the edge
        that closes it and each node is emitted exactly once.
        """
        order: list[Path] = []
        visited: set[Path] = set()
        roots = self.entrypoints() + [
            path for path in self.alphabetical_order() if self._nodes[path].depth != 0
        ]
        for root in roots:
            if root in visited:
                continue
            visited.add(root)
            stack: list[tuple[Path, Iterator[Path]]] = [(root, iter(self._next_nodes(root)))]
            while stack:
                current, children = stack[-1]
                child = next(children, None)
                if child is None:
                    stack.pop()
                    order.append(current)
                    continue
                if child in visited:
                    continue
                visited.add(child)
                stack.append((child, iter(self._next_nodes(child))))
        return order

    def _next_nodes(self, path: Path) -> list[Path]:
        return sorted(dst for dst in self._outgoing.get(path, ()) if dst in self._nodes)
