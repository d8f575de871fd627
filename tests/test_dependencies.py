from __future__ import annotations

import json

import pytest

from doclint.analysis.content import MarkdownCache
from doclint.analysis.dependencies import DependencyAnalyzer, dedupe_cycles, tree_paths
from doclint.analysis.graph_builder import GraphAnalyzer
from doclint.exceptions import FileNotInGraphError


def _analyzer(root, entry="README.md") -> DependencyAnalyzer:
    graph = GraphAnalyzer(root, cache=MarkdownCache()).build_graph([entry])
    return DependencyAnalyzer(graph, root)


def test_outgoing_and_incoming_trees(write_tree) -> None:
    root = write_tree(
        {
            "README.md": "[guide](guide.md) [api](api.md)\n",
            "guide.md": "[install](install.md)\n",
            "api.md": "[install](install.md)\n",
            "install.md": "done\n",
        }
    )
    report = _analyzer(root).analyze("guide.md")
    assert report.file == "guide.md"
    assert [node.path for node in report.outgoing] == ["install.md"]
    assert report.outgoing[0].depth == 1
    assert report.outgoing[0].children == []
    assert [node.path for node in report.incoming] == ["README.md"]
    assert report.cycles == []
    assert report.stats.outgoing_direct == 1
    assert report.stats.incoming_total == 1

    install = _analyzer(root).analyze("install.md", include_outgoing=False)
    assert [node.path for node in install.incoming] == ["guide.md", "api.md"]
    assert [child.path for child in install.incoming[0].children] == ["README.md"]
    assert install.outgoing == []
    assert install.stats.incoming_direct == 2
    assert install.stats.incoming_total == 3


def test_cycle_leaves_and_deduplicated_entries(write_tree) -> None:
    root = write_tree(
        {
            "README.md": "[b](b.md)\n",
            "b.md": "[home](README.md)\n",
        }
    )
    report = _analyzer(root).analyze("README.md")
    [child] = report.outgoing
    assert child.path == "b.md"
    [leaf] = child.children
    assert leaf.is_cycle
    assert leaf.cycle_back_to == "README.md"
    assert leaf.children == []
    assert len(report.cycles) == 1
    assert report.stats.cycles_detected == 1


def test_three_file_cycle_is_reported_per_direction(write_tree) -> None:
    root = write_tree(
        {
            "README.md": "[b](b.md)\n",
            "b.md": "[c](c.md)\n",
            "c.md": "[home](README.md)\n",
        }
    )
    report = _analyzer(root).analyze("README.md")
    pairs = [(cycle.from_file, cycle.to_file) for cycle in report.cycles]
    assert pairs == [("README.md", "b.md"), ("c.md", "README.md")]


def test_max_depth_limits_tree(write_tree) -> None:
    root = write_tree(
        {
            "README.md": "[a](a.md)\n",
            "a.md": "[b](b.md)\n",
            "b.md": "[c](c.md)\n",
            "c.md": "end\n",
        }
    )
    analyzer = _analyzer(root)
    shallow = analyzer.analyze("README.md", max_depth=1)
    assert [node.path for node in shallow.outgoing] == ["a.md"]
    assert shallow.outgoing[0].children == []
    full = analyzer.analyze("README.md")
    assert tree_paths(full.outgoing) == ["a.md", "b.md", "c.md"]
    assert full.stats.outgoing_total == 3


def test_file_must_be_in_graph(write_tree) -> None:
    root = write_tree({"README.md": "home\n", "orphan.md": "alone\n"})
    with pytest.raises(FileNotInGraphError):
        _analyzer(root).analyze("orphan.md")


def test_report_is_json_serializable(write_tree) -> None:
    root = write_tree({"README.md": "[b](b.md)\n", "b.md": "[home](README.md)\n"})
    payload = json.loads(json.dumps(_analyzer(root).analyze("b.md").to_payload()))
    assert payload["file"] == "b.md"
    assert payload["cycles"][0].keys() == {"from", "to"}
    assert payload["stats"]["cycles_detected"] == 1


def test_dedupe_cycles_treats_reverse_pairs_as_one() -> None:
    assert dedupe_cycles([("a", "b"), ("b", "a"), ("a", "c"), ("a", "b")]) == [
        ("a", "b"),
        ("a", "c"),
    ]
