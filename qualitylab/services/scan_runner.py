"""Orchestrates a single scan end-to-end."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..analyzers import scorer
from ..checks.registry import CheckAdapter, build_adapters
from ..clients.logging import get_logger, log_config_load, log_plan
from ..clients.state_store import FileStateStore
from ..config.config_loader import ConfigLoad, load_config
from ..config.settings import ScanOptions
from ..packs.registry import resolve_planned_checks
from ..utils.errors import InvalidTargetError
from ..utils.paths import derive_focused_cwd, rebase_patterns, relative_to
from ..utils.timing import timed
from ..writers.report_writer import finding_records, simplify_findings
from .check_executor import run_planned_checks
from .finding_state import StatefulFinding, attach_state, load_state
from .governance import evaluate_governance

logger = get_logger(__name__)

REPORT_VERSION = "0.1.0"


@dataclass
class ScanOutcome:
    report: Dict[str, Any]
    attached: List[StatefulFinding] = field(default_factory=list)
    state: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    store: Any = None


class ScanRunner:
    def __init__(
        self,
        store_factory: Optional[Callable[[Path], Any]] = None,
        adapters: Optional[Dict[str, CheckAdapter]] = None,
    ):
        self._store_factory = store_factory or FileStateStore
        self._adapters = build_adapters(adapters)

    def run(
        self,
        target_path: str,
        options: Optional[ScanOptions] = None,
        run_id: Optional[str] = None,
    ) -> ScanOutcome:
        options = options or ScanOptions()
        if run_id is None:
            run_id = str(uuid.uuid4())
        metrics: Dict[str, int] = {}

        resolved = Path(target_path).resolve()
        if not resolved.exists():
            raise InvalidTargetError(target_path)

        logger.info("Scan started", extra={"run_id": run_id, "target": str(resolved)})

        with timed("config_load", metrics):
            config_load = load_config(resolved)
            repo_root = config_load.root or (resolved if resolved.is_dir() else resolved.parent)
            store = self._store_factory(repo_root)
            governance = evaluate_governance(store, config_load.config, config_load.path)
            state = load_state(store)
        log_config_load(
            logger,
            run_id,
            metrics["duration_config_load"],
            str(config_load.path) if config_load.path else None,
            governance.current,
        )
        if governance.changed:
            logger.warning(
                "Policy change detected",
                extra={"run_id": run_id, "previous": governance.previous, "current": governance.current},
            )

        base_dir = str(repo_root)
        if options.paths:
            focused = derive_focused_cwd(base_dir, options.paths)
            if focused:
                prefix = relative_to(base_dir, focused)
                options = options.model_copy(update={"paths": rebase_patterns(options.paths, prefix)})
                base_dir = focused

        plan = resolve_planned_checks(base_dir, config_load.config.packs, config_load.config.checks, options)
        log_plan(logger, run_id, len(plan.plan), sum(1 for i in plan.plan if i.available), len(plan.warnings))

        execution = run_planned_checks(base_dir, plan.plan, options, adapters=self._adapters, run_id=run_id)

        attached = attach_state(execution.findings, state)

        rows = simplify_findings(attached)
        report = {
            "version": REPORT_VERSION,
            "run_id": run_id,
            "command": "scan",
            "target_path": target_path,
            "since": options.since,
            "config": self._config_section(config_load),
            "planned": [item.to_dict() for item in plan.plan],
            "findings": finding_records(attached),
            "summary": {
                "count": len(attached),
                "new": sum(1 for item in attached if item.is_new),
                "by_severity": scorer.summarize(rows),
                "generated_at": datetime.now(timezone.utc).isoformat(),
                "cost": {"cpu_minutes": execution.runtime.duration_ms / 60000},
            },
            "warnings": [*config_load.warnings, *plan.warnings, *execution.warnings],
            "runtime": execution.runtime_dict(),
            "governance": {"config_hash": governance.to_dict()},
        }
        logger.info(
            "Scan completed",
            extra={
                "run_id": run_id,
                "finding_count": len(attached),
                "executed": execution.runtime.executed,
                "duration_ms": execution.runtime.duration_ms,
            },
        )
        return ScanOutcome(report=report, attached=attached, state=state, store=store)

    @staticmethod
    def _config_section(config_load: ConfigLoad) -> Dict[str, Any]:
        return {
            "packs": list(config_load.config.packs),
            "checks": list(config_load.config.checks),
            "path": str(config_load.path) if config_load.path else None,
        }
