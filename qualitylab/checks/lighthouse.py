"""Web performance audit: Largest Contentful Paint from Lighthouse."""

from __future__ import annotations

import json
from typing import Optional, Tuple

from ..clients.process import run_command
from ..utils.findings import CheckOptions, CheckResult, Finding

LCP_AUDIT = "largest-contentful-paint"
LCP_GOOD_MS = 2500
LCP_POOR_MS = 4000
LIGHTHOUSE_ARGS = (
    "--output=json",
    "--quiet",
    "--only-categories=performance",
    "--chrome-flags=--headless,new-window,no-first-run,no-default-browser-check",
)


def build_command(url: str, use_npx: bool = False) -> Tuple[str, ...]:
    prefix = ("npx", "-y", "lighthouse") if use_npx else ("lighthouse",)
    return (*prefix, url, *LIGHTHOUSE_ARGS)


def classify_lcp(lcp_ms: Optional[float]) -> Tuple[str, str]:
    if lcp_ms is None:
        return "info", "LCP unavailable"
    if lcp_ms <= LCP_GOOD_MS:
        return "low", "Good LCP"
    if lcp_ms <= LCP_POOR_MS:
        return "medium", "Needs improvement"
    return "high", "Poor LCP"


def extract_lcp(report: dict) -> Optional[float]:
    audit = ((report or {}).get("audits") or {}).get(LCP_AUDIT) or {}
    value = audit.get("numericValue")
    return float(value) if isinstance(value, (int, float)) else None


def run(base_dir: str, options: CheckOptions) -> CheckResult:
    url = options.target_url
    if not url:
        return CheckResult(warnings=["lighthouse: missing URL; set QUALITYLAB_URL or pass --url"])

    result = run_command(build_command(url), cwd=base_dir, timeout_ms=options.timeout_ms)
    if result.code != 0 or not result.stdout.strip():
        result = run_command(build_command(url, use_npx=True), cwd=base_dir, timeout_ms=options.timeout_ms)
    if not result.stdout.strip():
        return CheckResult(
            warnings=[w for w in ("lighthouse: CLI produced no output", result.stderr.strip()) if w]
        )

    try:
        report = json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        return CheckResult(warnings=[f"lighthouse: failed to parse JSON: {exc}"])

    lcp = extract_lcp(report)
    severity, note = classify_lcp(lcp)
    return CheckResult(
        findings=[
            Finding(
                check="lighthouse",
                id="lcp",
                title="Largest Contentful Paint",
                severity=severity,
                message=f"{note}. LCP={round(lcp) if lcp is not None else 'n/a'} ms",
                confidence="high",
                meta={"lcp": lcp, "url": url},
            )
        ]
    )
