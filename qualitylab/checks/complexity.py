"""Cyclomatic complexity via ESLint's built-in ``complexity`` rule."""

from __future__ import annotations

import json
from typing import List, Sequence, Tuple

from ..clients.process import run_command
from ..utils.findings import CheckOptions, CheckResult, Finding, Location
from ..utils.paths import command_targets, relative_to

MAX_COMPLEXITY = 10
COMPLEXITY_RULE = f'complexity: ["error", {{"max": {MAX_COMPLEXITY}}}]'


def build_command(patterns: Sequence[str] | None = None) -> Tuple[str, ...]:
    targets = command_targets(patterns)
    return ("npx", "-y", "eslint", "--format", "json", "--rule", COMPLEXITY_RULE, *targets)


def parse_eslint_report(reports: list, base_dir: str) -> List[Finding]:
    findings: List[Finding] = []
    for report in reports if isinstance(reports, list) else []:
        if not isinstance(report, dict) or not isinstance(report.get("messages"), list):
            continue
        file_path = relative_to(base_dir, report.get("filePath") or "")
        for message in report["messages"]:
            if message.get("ruleId") != "complexity" or (message.get("severity") or 0) < 1:
                continue
            line = message.get("line") or 0
            findings.append(
                Finding(
                    check="complexity",
                    id=f"complexity:{file_path}:{line}",
                    title="Cyclomatic complexity threshold exceeded",
                    severity="medium",
                    message=message.get("message") or "",
                    locations=[Location(file=file_path, line=line, column=message.get("column") or 0)],
                    confidence="medium",
                    meta={"ruleId": message.get("ruleId")},
                )
            )
    return findings


def run(base_dir: str, options: CheckOptions) -> CheckResult:
    result = run_command(build_command(options.patterns), cwd=base_dir, timeout_ms=options.timeout_ms)
    # ESLint exits 1 when the rule fires; only an empty stdout means it did not run.
    if not result.stdout.strip():
        return CheckResult(
            warnings=[
                w
                for w in ("complexity: eslint not available or produced no output", result.stderr.strip())
                if w
            ]
        )
    try:
        reports = json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        return CheckResult(warnings=[f"complexity: failed to parse eslint JSON: {exc}"])
    return CheckResult(findings=parse_eslint_report(reports, base_dir))
