"""Dependency audit via ``npm audit``."""

from __future__ import annotations

import json
from typing import Any, Dict, List

from ..clients.process import run_command
from ..packs.probe import has_file
from ..utils.findings import CheckOptions, CheckResult, Finding

AUDIT_COMMAND = ("npm", "audit", "--json")


def map_severity(value: Any) -> str:
    text = str(value or "").lower()
    if "critical" in text:
        return "critical"
    if "high" in text:
        return "high"
    if "moderate" in text or "medium" in text:
        return "medium"
    if "low" in text:
        return "low"
    return "info"


def confidence_from_severity(severity: str) -> str:
    text = str(severity or "").lower()
    if text in ("critical", "high"):
        return "high"
    if text in ("medium", "moderate"):
        return "medium"
    return "low"


def _via_titles(via: Any) -> List[str]:
    entries = via if isinstance(via, list) else [via]
    titles = []
    for entry in entries:
        if isinstance(entry, str):
            titles.append(entry)
        elif isinstance(entry, dict) and entry.get("title"):
            titles.append(entry["title"])
    return titles


def normalize_npm_audit(report: Dict[str, Any]) -> List[Finding]:
    """Map npm v7+ ``vulnerabilities`` or npm v6 ``advisories`` onto findings."""
    findings: List[Finding] = []
    if not isinstance(report, dict):
        return findings

    vulnerabilities = report.get("vulnerabilities")
    if isinstance(vulnerabilities, dict):
        for name, vuln in vulnerabilities.items():
            vuln = vuln or {}
            severity = map_severity(vuln.get("severity"))
            via = vuln.get("via") or []
            findings.append(
                Finding(
                    check="sca",
                    id=f"{name}@{vuln.get('range') or vuln.get('fixAvailable') or '*'}",
                    title=f"SCA: {name} {vuln.get('severity')}",
                    severity=severity,
                    message="; ".join(_via_titles(via)),
                    confidence=confidence_from_severity(severity),
                    meta={
                        "package": name,
                        "severity": vuln.get("severity"),
                        "range": vuln.get("range"),
                        "fixAvailable": vuln.get("fixAvailable"),
                        "via": via if isinstance(via, list) else [via],
                    },
                )
            )
    elif isinstance(report.get("advisories"), dict):
        for advisory in report["advisories"].values():
            severity = map_severity(advisory.get("severity"))
            findings.append(
                Finding(
                    check="sca",
                    id=str(advisory.get("id")),
                    title=f"SCA: {advisory.get('module_name')} {advisory.get('severity')}",
                    severity=severity,
                    message=advisory.get("title") or "",
                    confidence=confidence_from_severity(severity),
                    meta={
                        "module": advisory.get("module_name"),
                        "vulnerable_versions": advisory.get("vulnerable_versions"),
                        "recommendation": advisory.get("recommendation"),
                        "url": advisory.get("url"),
                    },
                )
            )
    return findings


def run(base_dir: str, options: CheckOptions) -> CheckResult:
    if not has_file(base_dir, "package.json"):
        return CheckResult(warnings=["SCA: package.json not found"])

    result = run_command(AUDIT_COMMAND, cwd=base_dir, timeout_ms=options.timeout_ms)
    # npm audit exits non-zero whenever vulnerabilities exist; stdout still carries the report.
    if result.code != 0 and not result.stdout.strip():
        return CheckResult(warnings=[w for w in ("SCA: npm audit failed", result.stderr.strip()) if w])

    try:
        report = json.loads(result.stdout or "{}")
    except json.JSONDecodeError as exc:
        return CheckResult(warnings=[f"SCA: failed to parse npm audit JSON: {exc}"])

    return CheckResult(findings=normalize_npm_audit(report))
