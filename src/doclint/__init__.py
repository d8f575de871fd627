"""doclint package root."""

from doclint.analysis.dependencies import DependencyAnalyzer
from doclint.analysis.graph import DocGraph
from doclint.analysis.graph_builder import GraphAnalyzer, OrphanReport
from doclint.analysis.link_validator import LinkValidator
from doclint.exceptions import DocLintError, ExitCode

__all__ = [
    "__version__",
    "DependencyAnalyzer",
    "DocGraph",
    "DocLintError",
    "ExitCode",
    "GraphAnalyzer",
    "LinkValidator",
    "OrphanReport",
]

__version__ = "0.1.0"
