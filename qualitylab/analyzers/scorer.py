"""Aggregate and rank findings for summaries and CI gating."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from ..utils.findings import CONFIDENCES, SEVERITIES, severity_rank

THRESHOLDS = ("none",) + SEVERITIES
TOP_LIMIT = 10


def _severity(finding: Mapping[str, Any]) -> str:
    return str(finding.get("severity") or "info").lower()


def summarize(findings: Iterable[Mapping[str, Any]]) -> Dict[str, int]:
    counts = {severity: 0 for severity in reversed(SEVERITIES)}
    for finding in findings:
        severity = _severity(finding)
        if severity in counts:
            counts[severity] += 1
    return counts


def top_findings(findings: Iterable[Mapping[str, Any]], limit: int = TOP_LIMIT) -> List[Mapping[str, Any]]:
    """Highest severity first, then highest confidence; stable for ties."""

    def rank(finding: Mapping[str, Any]):
        confidence = str(finding.get("confidence") or "").lower()
        confidence_rank = CONFIDENCES.index(confidence) + 1 if confidence in CONFIDENCES else 0
        return (-severity_rank(_severity(finding)), -confidence_rank)

    return sorted(findings, key=rank)[:limit]


def threshold_met(findings: Iterable[Mapping[str, Any]], threshold: str) -> bool:
    """Whether any finding is at or above ``threshold``; ``none`` never triggers."""
    threshold_rank = severity_rank(threshold)
    if threshold_rank == 0:
        return False
    return any(severity_rank(_severity(f)) >= threshold_rank for f in findings)


def _line_items(findings: List[Mapping[str, Any]]) -> str:
    if not findings:
        return "- No findings"
    lines = []
    for finding in findings:
        location = f" ({finding['file']})" if finding.get("file") else ""
        lines.append(
            f"- [{_severity(finding).upper()}] {finding.get('title')}{location} (id: {finding.get('id')})"
        )
    return "\n".join(lines)


def render_markdown_summary(findings: List[Mapping[str, Any]]) -> str:
    counts = summarize(findings)
    return (
        "### Quality Lab Summary\n\n"
        f"Critical: {counts['critical']} | High: {counts['high']}\n\n"
        f"Findings: {len(findings)} (critical: {counts['critical']}, high: {counts['high']}, "
        f"medium: {counts['medium']}, low: {counts['low']}, info: {counts['info']})\n\n"
        f"Top {TOP_LIMIT}:\n\n{_line_items(top_findings(findings))}\n\n"
        "Artifacts: qualitylab-report/report.json\n"
    )
