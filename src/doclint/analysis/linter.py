from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from doclint.analysis.content import MarkdownCache
from doclint.analysis.exclusion import ExclusionManager
from doclint.analysis.fs_walk import display_path
from doclint.analysis.graph import DocGraph
from doclint.analysis.graph_builder import GraphAnalyzer, OrphanReport
from doclint.analysis.link_validator import LinkValidator
from doclint.config import RuntimeConfig
from doclint.schema import RULE_ORPHAN_FILES, Finding, LintSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LintResults:
    findings: tuple[Finding, ...]
    files_checked: int
    orphans: OrphanReport

    @property
    def error_count(self) -> int:
        return sum(1 for finding in self.findings if finding.severity == "error")

    @property
    def warning_count(self) -> int:
        return sum(1 for finding in self.findings if finding.severity == "warn")

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0

    @property
    def orphans_skipped(self) -> bool:
        return self.orphans.skipped

    def summary(self) -> LintSummary:
        return LintSummary(
            errors=self.error_count,
            warnings=self.warning_count,
            files_checked=self.files_checked,
            orphans_skipped=self.orphans.skipped,
            orphans_skipped_reason=self.orphans.reason,
        )


class DocLinter:
    """Runs graph construction, orphan detection and link validation for one base path."""

    def __init__(
        self,
        config: RuntimeConfig,
        base_path: Path,
        *,
        cache: MarkdownCache | None = None,
        cli_excludes: Sequence[str] | None = None,
    ) -> None:
        self.config = config
        self.cli_excludes = list(cli_excludes or ())
        self.base_path = Path(base_path).resolve()
        self.cache = cache if cache is not None else MarkdownCache()
        self.exclusions = self._build_exclusions()
        self.analyzer = GraphAnalyzer(
            self.base_path,
            cache=self.cache,
            exclusions=self.exclusions,
            scope_root=Path(config.scope_root) if config.scope_root else None,
            scope_limit=config.scope_limit,
        )

    def _build_exclusions(self) -> ExclusionManager:
        ignore_path = None
        if self.config.ignore_file:
            ignore_path = Path(self.config.ignore_file)
            if not ignore_path.is_absolute():
                ignore_path = self.base_path / ignore_path
        return ExclusionManager.from_options(
            self.base_path,
            config_patterns=self.config.exclude,
            cli_patterns=self.cli_excludes,
            ignore_path=ignore_path,
            respect_gitignore=self.config.respect_gitignore,
            exclude_hidden=self.config.exclude_hidden,
            use_builtin_patterns=self.config.use_builtin_excludes,
        )

    def build_graph(self, entrypoints: Sequence[Path | str] | None = None) -> DocGraph:
        roots = list(entrypoints) if entrypoints else self.config.entrypoints
        return self.analyzer.build_graph(roots, max_depth=self.config.max_depth)

    def orphan_findings(self, report: OrphanReport) -> list[Finding]:
        severity = self.config.rules.get(RULE_ORPHAN_FILES, "error")
        if severity == "off":
            return []
        return [
            Finding(
                file=display_path(path, self.base_path),
                line=1,
                column=1,
                severity=severity,
                rule=RULE_ORPHAN_FILES,
                message="Orphaned file: not reachable from any entrypoint",
                resolved_path=str(path),
            )
            for path in report.files
        ]

    def lint(self, entrypoints: Sequence[Path | str] | None = None) -> LintResults:
        graph = self.build_graph(entrypoints)
        logger.info("found %d reachable files", len(graph))

        orphans = self.analyzer.find_orphans(graph)
        if orphans.files:
            logger.info("found %d orphaned file(s)", len(orphans.files))

        validator = LinkValidator(
            self.cache,
            self.base_path,
            external_links=self.config.external_links,
            severities=self.config.rules,
            max_concurrency=self.config.max_concurrency,
        )
        findings = self.orphan_findings(orphans) + validator.validate(graph)
        findings.sort(key=Finding.sort_key)
        return LintResults(
            findings=tuple(findings),
            files_checked=len(graph),
            orphans=orphans,
        )
