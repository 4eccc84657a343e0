# Pydantic data models for convention findings: Severity, Finding, Diagnostics, BatchResult.

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from cleansweep.syntax.nodes import Span


class Severity(str, Enum):
    """Finding severity, ordered info < warning < error."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def at_least(self, other: "Severity") -> bool:
        return self.rank >= other.rank


_SEVERITY_RANK = {Severity.INFO: 0, Severity.WARNING: 1, Severity.ERROR: 2}

PARSE_ERROR_RULE_ID = "parse-error"


class Finding(BaseModel):
    """A single convention violation reported by a rule (e.g. too many parameters)."""

    rule_id: str
    severity: Severity = Severity.WARNING
    message: str
    span: Span
    suggestion: Optional[str] = None

    model_config = {"frozen": True}


class Diagnostics(BaseModel):
    """Ordered findings for one analyzed file."""

    path: Path
    language: Optional[str] = None
    findings: tuple[Finding, ...] = ()

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @property
    def parse_failed(self) -> bool:
        return any(f.rule_id == PARSE_ERROR_RULE_ID for f in self.findings)


class BatchResult(BaseModel):
    """Diagnostics for a multi-file run, in input order."""

    diagnostics: tuple[Diagnostics, ...] = ()
    skipped: tuple[Path, ...] = Field(default=(), description="not analyzed due to cancellation")
    unreadable: tuple[Path, ...] = ()

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @property
    def cancelled(self) -> bool:
        return bool(self.skipped)

    @property
    def findings(self) -> list[Finding]:
        return [f for d in self.diagnostics for f in d.findings]

    def has_findings_at(self, severity: Severity) -> bool:
        return any(f.severity.at_least(severity) for f in self.findings)
