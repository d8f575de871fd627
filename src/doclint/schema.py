from __future__ import annotations

from typing import Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict

Severity = Literal["error", "warn"]
RuleSeverity = Literal["error", "warn", "off"]
ExternalLinkPolicy = Literal["validate", "warn", "error", "ignore"]
Rule = Literal["orphan-files", "dead-link", "dead-anchor", "unreadable-file"]

RULE_ORPHAN_FILES = "orphan-files"
RULE_DEAD_LINK = "dead-link"
RULE_DEAD_ANCHOR = "dead-anchor"
RULE_UNREADABLE_FILE = "unreadable-file"

RULES: tuple[str, ...] = get_args(Rule)
RULE_SEVERITIES = ("error", "warn", "off")
EXTERNAL_LINK_POLICIES = ("validate", "warn", "error", "ignore")


class Finding(BaseModel):
    model_config = ConfigDict(frozen=True)

    file: str
    line: int
    column: int
    end_column: Optional[int] = None
    severity: Severity
    rule: Rule
    message: str
    literal: Optional[str] = None
    resolved_path: Optional[str] = None

    def sort_key(self) -> tuple[str, int, int, str, str]:
        return (self.file, self.line, self.column, self.rule, self.message)


class CycleEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    from_file: str
    to_file: str

    def as_pair(self) -> Dict[str, str]:
        return {"from": self.from_file, "to": self.to_file}


class DependencyNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    depth: int
    children: List["DependencyNode"] = []
    is_cycle: bool = False
    cycle_back_to: Optional[str] = None


class DependencyStats(BaseModel):
    incoming_direct: int = 0
    incoming_total: int = 0
    outgoing_direct: int = 0
    outgoing_total: int = 0
    cycles_detected: int = 0


class DependencyReport(BaseModel):
    file: str
    incoming: List[DependencyNode] = []
    outgoing: List[DependencyNode] = []
    cycles: List[CycleEntry] = []
    stats: DependencyStats = DependencyStats()

    def to_payload(self) -> Dict[str, object]:
        payload = self.model_dump(mode="json", exclude={"cycles"})
        payload["cycles"] = [cycle.as_pair() for cycle in self.cycles]
        return payload


class LintSummary(BaseModel):
    errors: int
    warnings: int
    files_checked: int
    orphans_skipped: bool = False
    orphans_skipped_reason: Optional[str] = None


DependencyNode.model_rebuild()
