"""API contract drift: code changed under API paths without an OpenAPI update."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional, Tuple

from ..clients.process import run_command
from ..utils.findings import CheckOptions, CheckResult, Finding, Location

SPEC_CANDIDATES = (
    "openapi.yaml",
    "openapi.yml",
    "openapi.json",
    "swagger.yaml",
    "swagger.yml",
    "swagger.json",
)
API_DIRS = ("src/", "app/", "api/", "routes/", "controllers/")
SOURCE_EXTENSIONS = (".ts", ".js", ".tsx", ".jsx", ".go", ".py", ".java", ".rb")
SPEC_SUFFIXES = tuple(SPEC_CANDIDATES)


def diff_command(since: str) -> Tuple[str, ...]:
    return ("git", "diff", "--name-only", since, "--", ".")


def discover_spec(base_dir: str) -> Optional[Path]:
    for name in SPEC_CANDIDATES:
        candidate = Path(base_dir) / name
        if candidate.exists():
            return candidate
    return None


def is_spec_change(path: str) -> bool:
    lowered = path.lower()
    return (
        "openapi" in lowered
        or "swagger" in lowered
        or "/spec/" in lowered
        or lowered.endswith(SPEC_SUFFIXES)
    )


def is_code_change(path: str) -> bool:
    lowered = path.lower()
    if is_spec_change(lowered) or "/spec" in lowered or lowered.endswith((".yaml", ".yml")):
        return False
    return any(d in lowered for d in API_DIRS) and lowered.endswith(SOURCE_EXTENSIONS)


def changed_files_since(base_dir: str, since: str, timeout_ms: Optional[int] = None) -> List[str]:
    result = run_command(diff_command(since), cwd=base_dir, timeout_ms=timeout_ms)
    if result.code != 0:
        return []
    return [line for line in result.stdout.splitlines() if line.strip()]


def _invalid_json_spec(spec: Path) -> Optional[Finding]:
    try:
        json.loads(spec.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        return Finding(
            check="contract",
            id="openapi-invalid-json",
            title="OpenAPI spec JSON is invalid",
            severity="high",
            message=str(exc),
            locations=[Location(file=spec.name, line=1)],
            confidence="high",
        )
    return None


def run(base_dir: str, options: CheckOptions) -> CheckResult:
    since = options.since
    if not since:
        return CheckResult(warnings=["contract: --since not provided; skipping drift assessment"])

    spec = discover_spec(base_dir)
    changed = changed_files_since(base_dir, since, options.timeout_ms)
    if not changed:
        return CheckResult()

    findings: List[Finding] = []
    if any(is_code_change(f) for f in changed) and not any(is_spec_change(f) for f in changed):
        findings.append(
            Finding(
                check="contract",
                id="openapi-drift",
                title="Potential OpenAPI drift: code changed, spec not updated",
                severity="medium",
                message="Detected code changes in API areas without corresponding OpenAPI spec changes.",
                confidence="medium",
                meta={"since": since, "specPresent": spec is not None, "changed": changed},
            )
        )
    if spec is not None and spec.suffix == ".json":
        invalid = _invalid_json_spec(spec)
        if invalid is not None:
            findings.append(invalid)
    return CheckResult(findings=findings)
