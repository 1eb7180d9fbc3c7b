"""Secret scanning with gitleaks, falling back to built-in regex rules."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List

from ..clients.process import run_command
from ..packs.probe import bin_in_path
from ..utils.findings import CheckOptions, CheckResult, Finding, Location
from ..utils.paths import relative_to, walk_files

logger = logging.getLogger(__name__)

GITLEAKS_COMMAND = ("gitleaks", "detect", "--no-git", "--report-format", "json", "--report-path", "-")
MAX_FILES_ENV = "QUALITYLAB_SECRETS_MAX_FILES"
DEFAULT_MAX_SCAN_FILES = 2000
MAX_FILE_BYTES = 1024 * 1024
EXCERPT_LENGTH = 200


@dataclass(frozen=True)
class SecretRule:
    id: str
    severity: str
    pattern: re.Pattern


REGEX_RULES = (
    SecretRule("aws-access-key", "high", re.compile(r"AKIA[0-9A-Z]{16}")),
    SecretRule(
        "generic-password",
        "medium",
        re.compile(r"(password|passwd|pwd)\s*[:=]\s*[^\s\"']{6,}", re.IGNORECASE),
    ),
    SecretRule(
        "generic-secret",
        "medium",
        re.compile(r"(secret|api[_-]?key)\s*[:=]\s*[^\s\"']{6,}", re.IGNORECASE),
    ),
    SecretRule("private-key", "high", re.compile(r"-----BEGIN (RSA|DSA|EC|OPENSSH) PRIVATE KEY-----")),
)


def _gitleaks_finding(entry: dict) -> Finding:
    rule_id = entry.get("RuleID")
    if rule_id is not None and rule_id != "":
        finding_id = str(rule_id)
    else:
        finding_id = entry.get("Description") or "gitleaks"
    return Finding(
        check="secrets",
        id=finding_id,
        title=entry.get("Description") or "Potential secret",
        severity="high",
        message=entry.get("Secret") or entry.get("Match") or "Potential secret detected",
        locations=[
            Location(
                file=entry.get("File") or entry.get("Path") or entry.get("FilePath") or "",
                line=entry.get("StartLine") or entry.get("Line") or 0,
            )
        ],
        confidence="high",
        meta={"tags": entry.get("Tags") or [], "entropy": entry.get("Entropy"), "source": "gitleaks"},
    )


def run_gitleaks(base_dir: str, timeout_ms: int | None = None) -> CheckResult:
    result = run_command(GITLEAKS_COMMAND, cwd=base_dir, timeout_ms=timeout_ms)
    if result.code != 0 and not result.stdout.strip():
        return CheckResult(warnings=[w for w in ("secrets: gitleaks failed", result.stderr.strip()) if w])

    try:
        entries: Any = json.loads(result.stdout or "[]")
    except json.JSONDecodeError as exc:
        return CheckResult(warnings=[f"secrets: failed to parse gitleaks JSON: {exc}"])

    if not isinstance(entries, list):
        entries = []
    return CheckResult(findings=[_gitleaks_finding(e) for e in entries if isinstance(e, dict)])


def scan_file(path: str, base_dir: str) -> List[Finding]:
    try:
        if os.path.getsize(path) > MAX_FILE_BYTES:
            return []
        content = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError:
        return []

    relative = relative_to(base_dir, path)
    findings: List[Finding] = []
    for line_number, line in enumerate(content.splitlines(), start=1):
        for rule in REGEX_RULES:
            if rule.pattern.search(line):
                findings.append(
                    Finding(
                        check="secrets",
                        id=rule.id,
                        title=f"Secret pattern: {rule.id}",
                        severity=rule.severity,
                        message=f"Matched pattern {rule.id}",
                        locations=[Location(file=relative, line=line_number)],
                        confidence="low",
                        meta={"excerpt": line[:EXCERPT_LENGTH], "source": "regex"},
                    )
                )
    return findings


def max_scan_files() -> int:
    """File cap for the regex scanner; invalid values fall back to the default."""
    raw = os.getenv(MAX_FILES_ENV)
    if not raw:
        return DEFAULT_MAX_SCAN_FILES
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring invalid secrets file cap", extra={"value": raw, "env": MAX_FILES_ENV})
        return DEFAULT_MAX_SCAN_FILES
    return value if value > 0 else DEFAULT_MAX_SCAN_FILES


def regex_scan(base_dir: str, patterns: List[str] | None = None, max_files: int | None = None) -> List[Finding]:
    if max_files is None:
        max_files = max_scan_files()
    findings: List[Finding] = []
    for path in walk_files(base_dir, max_files=max_files, patterns=patterns):
        findings.extend(scan_file(path, base_dir))
    return findings


def run(base_dir: str, options: CheckOptions) -> CheckResult:
    warnings: List[str] = []
    if bin_in_path("gitleaks"):
        result = run_gitleaks(base_dir, options.timeout_ms)
        if result.findings or not result.warnings:
            return result
        # gitleaks ran but produced nothing usable; keep its warnings and scan with the regex rules
        warnings.extend(result.warnings)

    logger.debug("Using regex secret scanner", extra={"base_dir": base_dir})
    return CheckResult(findings=regex_scan(base_dir, options.patterns), warnings=warnings)
