"""Run a resolved plan sequentially under an optional wall-clock budget."""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..checks.registry import GATE_EXEMPT_CHECKS, CheckAdapter, build_adapters
from ..clients.logging import get_logger, log_check
from ..config.settings import ScanOptions
from ..packs.registry import PlanItem
from ..utils.errors import CheckFailureError
from ..utils.findings import CheckOptions, Finding, normalize_findings
from ..utils.timing import elapsed_ms

logger = get_logger(__name__)

BUDGET_EXCEEDED = "time budget exceeded"


@dataclass
class SkippedItem:
    check: str
    reason: str


@dataclass
class RuntimeMetrics:
    duration_ms: int = 0
    executed: int = 0
    skipped: List[SkippedItem] = field(default_factory=list)


@dataclass
class ExecutionResult:
    findings: List[Finding] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    runtime: RuntimeMetrics = field(default_factory=RuntimeMetrics)

    def runtime_dict(self) -> Dict[str, Any]:
        return {
            "duration_ms": self.runtime.duration_ms,
            "executed": self.runtime.executed,
            "skipped": [{"check": s.check, "reason": s.reason} for s in self.runtime.skipped],
        }


def _invoke(
    adapters: Dict[str, CheckAdapter],
    item: PlanItem,
    base_dir: str,
    check_options: CheckOptions,
):
    adapter = adapters.get(item.check)
    if adapter is None:
        raise CheckFailureError(item.check, "no adapter registered")
    return adapter(item.cwd or base_dir, check_options)


def run_planned_checks(
    base_dir: str,
    plan: Sequence[PlanItem],
    options: Optional[ScanOptions] = None,
    adapters: Optional[Dict[str, CheckAdapter]] = None,
    run_id: Optional[str] = None,
) -> ExecutionResult:
    """Execute plan items in order.

    The budget is only consulted between items: once elapsed time reaches it,
    every remaining item is recorded as skipped. Items that are still
    scheduled get the remaining budget as their own timeout. Unavailable items
    are reported as warnings unless their check is gate-exempt, and an adapter
    raising is reported as a warning without stopping the plan.
    """
    options = options or ScanOptions()
    adapters = adapters if adapters is not None else build_adapters()
    budget_ms = options.time_budget_ms
    target_url = options.resolved_target_url()

    result = ExecutionResult()
    started = time.monotonic()

    for item in plan:
        elapsed = elapsed_ms(started)
        if budget_ms is not None and elapsed >= budget_ms:
            result.runtime.skipped.append(SkippedItem(check=item.check, reason=BUDGET_EXCEEDED))
            logger.warning(
                "Check skipped",
                extra={"run_id": run_id, "check": item.check, "reason": BUDGET_EXCEEDED},
            )
            continue

        if not item.available and item.check not in GATE_EXEMPT_CHECKS:
            result.warnings.append(f"{item.check}: not available - {item.reason or 'unavailable'}")
            logger.warning(
                "Check not available",
                extra={"run_id": run_id, "check": item.check, "reason": item.reason},
            )
            continue

        remaining = max(0, budget_ms - elapsed) if budget_ms is not None else None
        check_options = CheckOptions(
            patterns=list(options.paths),
            timeout_ms=remaining,
            since=options.since,
            target_url=target_url,
        )

        check_start = time.monotonic()
        try:
            check_result = _invoke(adapters, item, base_dir, check_options)
        except Exception as exc:
            result.warnings.append(f"{item.check}: execution error - {exc}")
            logger.error(
                "Check failed",
                extra={"run_id": run_id, "check": item.check, "error": str(exc)},
                exc_info=True,
            )
            continue

        findings, normalization_warnings = normalize_findings(item.check, check_result.findings)
        result.findings.extend(findings)
        result.warnings.extend(check_result.warnings or [])
        result.warnings.extend(normalization_warnings)
        result.runtime.executed += 1
        log_check(
            logger,
            run_id,
            item.check,
            len(findings),
            elapsed_ms(check_start),
            dict(Counter(f.severity for f in findings)),
        )

    result.runtime.duration_ms = elapsed_ms(started)
    return result
