"""Dataclasses describing findings emitted by checks."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

SEVERITIES = ("info", "low", "medium", "high", "critical")
CONFIDENCES = ("low", "medium", "high")

_SEVERITY_RANK = {name: index + 1 for index, name in enumerate(SEVERITIES)}


@dataclass
class Location:
    file: str
    line: int = 0
    column: Optional[int] = None


@dataclass
class Finding:
    check: str
    id: str
    title: str
    severity: str
    message: str = ""
    locations: List[Location] = field(default_factory=list)
    confidence: str = "medium"
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def primary_file(self) -> str:
        if self.locations and self.locations[0].file:
            return self.locations[0].file
        return ""

    @property
    def primary_line(self) -> Optional[int]:
        return self.locations[0].line if self.locations else None


@dataclass
class CheckOptions:
    """Options every check adapter accepts."""

    patterns: List[str] = field(default_factory=list)
    timeout_ms: Optional[int] = None
    since: Optional[str] = None
    target_url: Optional[str] = None


@dataclass
class CheckResult:
    findings: List[Finding] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def severity_rank(severity: Optional[str]) -> int:
    return _SEVERITY_RANK.get(str(severity or "").lower(), 0)


def normalize_findings(check: str, findings: Sequence[Finding]) -> Tuple[List[Finding], List[str]]:
    """Coerce severity and confidence onto the fixed scales.

    Unknown severities become ``info`` and unknown confidences become ``low``.
    Every rewrite is reported as a warning; findings are never dropped.
    """
    normalized: List[Finding] = []
    warnings: List[str] = []
    for finding in findings:
        severity = str(finding.severity or "").lower()
        confidence = str(finding.confidence or "").lower()
        if severity not in SEVERITIES:
            warnings.append(
                f"{check}: unknown severity '{finding.severity}' on finding {finding.id}; using info"
            )
            severity = "info"
        if confidence not in CONFIDENCES:
            warnings.append(
                f"{check}: unknown confidence '{finding.confidence}' on finding {finding.id}; using low"
            )
            confidence = "low"
        if severity != finding.severity or confidence != finding.confidence:
            finding = replace(finding, severity=severity, confidence=confidence)
        normalized.append(finding)
    return normalized, warnings
