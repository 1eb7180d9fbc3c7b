"""Static analysis with the semgrep OWASP Top Ten ruleset."""

from __future__ import annotations

import json
from typing import List, Sequence, Tuple

from ..clients.process import run_command
from ..utils.findings import CheckOptions, CheckResult, Finding, Location
from ..utils.paths import command_targets

RULESET = "p/owasp-top-ten"


def build_command(patterns: Sequence[str] | None = None) -> Tuple[str, ...]:
    targets = command_targets(patterns)
    return ("semgrep", "--config", RULESET, "--json", *targets)


def map_severity(value) -> str:
    text = str(value or "").lower()
    if text == "error":
        return "high"
    if text in ("warning", "warn"):
        return "medium"
    return "info"


def parse_results(data: dict) -> List[Finding]:
    results = data.get("results") if isinstance(data, dict) else None
    findings: List[Finding] = []
    for result in results if isinstance(results, list) else []:
        if not isinstance(result, dict):
            continue
        extra = result.get("extra") or {}
        metadata = extra.get("metadata") or {}
        start = result.get("start") or {}
        findings.append(
            Finding(
                check="semgrep",
                id=result.get("check_id") or "semgrep",
                title=extra.get("message") or metadata.get("shortlink") or "Semgrep finding",
                severity=map_severity(extra.get("severity")),
                message=extra.get("message") or "",
                locations=[
                    Location(
                        file=result.get("path") or "",
                        line=start.get("line") or 0,
                        column=start.get("col") or 0,
                    )
                ],
                # limited ruleset
                confidence="medium",
                meta={"rule": result.get("check_id"), "metadata": metadata},
            )
        )
    return findings


def run(base_dir: str, options: CheckOptions) -> CheckResult:
    result = run_command(build_command(options.patterns), cwd=base_dir, timeout_ms=options.timeout_ms)
    if not result.stdout.strip():
        return CheckResult(warnings=[w for w in ("semgrep: CLI produced no output", result.stderr.strip()) if w])
    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        return CheckResult(warnings=[f"semgrep: failed to parse JSON: {exc}"])
    return CheckResult(findings=parse_results(data))
