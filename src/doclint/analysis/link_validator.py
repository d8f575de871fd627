from __future__ import annotations

import concurrent.futures
import logging
from pathlib import Path
from typing import Mapping
from urllib.parse import unquote, urlparse

from doclint.analysis.content import LinkRef, MarkdownCache, is_markdown_path, split_target
from doclint.analysis.fs_walk import display_path
from doclint.analysis.graph import DocGraph
from doclint.analysis.slug import slugify
from doclint.exceptions import ContentReadError, InvalidOptionError
from doclint.schema import (
    EXTERNAL_LINK_POLICIES,
    RULE_DEAD_ANCHOR,
    RULE_DEAD_LINK,
    RULE_UNREADABLE_FILE,
    Finding,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 10


class LinkValidator:
    """Checks every link of every graph node for a missing file or anchor.

    External ``http(s)`` links are never fetched; the policy decides whether
    they are ignored, checked for well-formedness, or flagged as unverified.
    Other URI schemes are skipped. Files are validated concurrently and the
    findings re-sorted, so output order does not depend on scheduling.
    """

    def __init__(
        self,
        cache: MarkdownCache,
        base_path: Path,
        *,
        external_links: str = "validate",
        severities: Mapping[str, str] | None = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        if external_links not in EXTERNAL_LINK_POLICIES:
            raise InvalidOptionError("external_links", external_links, EXTERNAL_LINK_POLICIES)
        self.cache = cache
        self.base_path = Path(base_path).resolve()
        self.external_links = external_links
        self.severities = dict(severities or {})
        self.max_concurrency = max(1, int(max_concurrency))

    def validate(self, graph: DocGraph) -> list[Finding]:
        files = graph.alphabetical_order()
        findings: list[Finding] = []
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_concurrency) as executor:
            for result in executor.map(self.validate_file, files):
                findings.extend(result)
        findings.sort(key=Finding.sort_key)
        logger.debug("validated %d files: %d findings", len(files), len(findings))
        return findings

    def validate_file(self, path: Path) -> list[Finding]:
        try:
            document = self.cache.document(path)
        except ContentReadError as exc:
            finding = self._finding(
                path,
                None,
                RULE_UNREADABLE_FILE,
                "error",
                f"Cannot read file: {exc.reason}",
            )
            return [finding] if finding is not None else []
        findings: list[Finding] = []
        for link in document.links:
            finding = self._check_link(path, document.heading_slugs, link)
            if finding is not None:
                findings.append(finding)
        return findings

    def resolve_target(self, source: Path, file_part: str) -> Path:
        if file_part.startswith("/"):
            return (self.base_path / file_part.lstrip("/")).resolve()
        return (source.parent / file_part).resolve()

    def _check_link(
        self, source: Path, own_slugs: frozenset[str], link: LinkRef
    ) -> Finding | None:
        if link.is_web:
            return self._check_external(source, link)
        if link.has_scheme:
            return None
        if link.is_anchor_only:
            anchor = unquote(link.target[1:])
            if anchor and slugify(anchor) not in own_slugs:
                return self._finding(
                    source,
                    link,
                    RULE_DEAD_ANCHOR,
                    "error",
                    f"Anchor #{anchor} not found in current file",
                )
            return None

        file_part, anchor = split_target(link.target)
        if not file_part:
            return None
        resolved = self.resolve_target(source, file_part)
        if not resolved.exists():
            return self._finding(
                source,
                link,
                RULE_DEAD_LINK,
                "error",
                f"Broken link: {file_part} (file not found)",
                resolved=resolved,
            )
        if not anchor or not resolved.is_file() or not is_markdown_path(resolved):
            return None
        try:
            target_slugs = self.cache.heading_slugs(resolved)
        except ContentReadError as exc:
            logger.debug("anchor check skipped for %s: %s", resolved, exc.reason)
            return None
        anchor = unquote(anchor)
        if slugify(anchor) not in target_slugs:
            return self._finding(
                source,
                link,
                RULE_DEAD_ANCHOR,
                "error",
                f"Anchor #{anchor} not found in {file_part}",
                resolved=resolved,
            )
        return None

    def _check_external(self, source: Path, link: LinkRef) -> Finding | None:
        policy = self.external_links
        if policy == "ignore":
            return None
        if policy == "validate":
            parsed = urlparse(link.target)
            if parsed.scheme.lower() in ("http", "https") and parsed.netloc:
                return None
            return self._finding(
                source,
                link,
                RULE_DEAD_LINK,
                "error",
                f"Malformed external URL: {link.target}",
            )
        return self._finding(
            source,
            link,
            RULE_DEAD_LINK,
            policy,
            f"External link not verified: {link.target}",
        )

    def _severity(self, rule: str, requested: str) -> str | None:
        configured = self.severities.get(rule, "error")
        if configured == "off":
            return None
        if configured == "warn":
            return "warn"
        return requested

    def _finding(
        self,
        source: Path,
        link: LinkRef | None,
        rule: str,
        severity: str,
        message: str,
        *,
        resolved: Path | None = None,
    ) -> Finding | None:
        effective = self._severity(rule, severity)
        if effective is None:
            return None
        return Finding(
            file=display_path(source, self.base_path),
            line=link.line if link is not None else 1,
            column=link.column if link is not None else 1,
            end_column=link.end_column if link is not None else None,
            severity=effective,
            rule=rule,
            message=message,
            literal=link.literal if link is not None else None,
            resolved_path=str(resolved) if resolved is not None else None,
        )
