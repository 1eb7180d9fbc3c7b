"""Persist scan reports and carry finding state forward to the next run."""

from __future__ import annotations

import json
import time
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..analyzers import scorer
from ..clients.logging import get_logger, log_write
from ..services.finding_state import StatefulFinding, merge_state
from ..utils.timing import elapsed_ms

logger = get_logger(__name__)

REPORT_FILENAME = "report.json"
FINDINGS_FILENAME = "findings.json"
SUMMARY_FILENAME = "summary.md"


def simplify_findings(attached: Iterable[StatefulFinding]) -> List[Dict[str, Any]]:
    """Flat rows consumed by ``summary`` and ``fail-on``."""
    rows: List[Dict[str, Any]] = []
    for item in attached:
        finding = item.finding
        rows.append(
            {
                "check": finding.check,
                "id": finding.id,
                "title": finding.title,
                "severity": finding.severity,
                "confidence": finding.confidence,
                "file": finding.primary_file or None,
                "line": finding.primary_line,
                "message": finding.message,
                "key": item.key,
                "new": item.is_new,
            }
        )
    return rows


def finding_records(attached: Iterable[StatefulFinding]) -> List[Dict[str, Any]]:
    """Full finding payloads annotated with identity and prior state."""
    records = []
    for item in attached:
        record = asdict(item.finding)
        record["key"] = item.key
        record["state"] = item.prior
        records.append(record)
    return records


class ReportWriter:
    def __init__(self, out_dir: str | Path, store, run_id: Optional[str] = None):
        self._out_dir = Path(out_dir)
        self._store = store
        self._run_id = run_id

    def write(
        self,
        report: Dict[str, Any],
        attached: List[StatefulFinding],
        state: Dict[str, Dict[str, Any]],
    ) -> Dict[str, str]:
        """Write report files, then the merged finding state.

        Args:
            report: Report payload from ``ScanRunner.run``
            attached: Findings joined with their prior state
            state: State loaded at the start of the run

        Returns:
            Mapping of artifact name to written path.
        """
        start = time.monotonic()
        self._out_dir.mkdir(parents=True, exist_ok=True)
        rows = simplify_findings(attached)

        outputs = {
            "report": self._dump(REPORT_FILENAME, json.dumps(report, indent=2, default=str) + "\n"),
            "findings": self._dump(FINDINGS_FILENAME, json.dumps(rows, indent=2) + "\n"),
            "summary": self._dump(SUMMARY_FILENAME, scorer.render_markdown_summary(rows)),
        }
        log_write(logger, self._run_id, "report", len(rows), elapsed_ms(start))

        seen_at = report.get("summary", {}).get("generated_at") or ""
        merged = merge_state(attached, state, seen_at)
        if self._store.write_state(merged):
            log_write(logger, self._run_id, "state", len(merged), elapsed_ms(start))
        return outputs

    def _dump(self, name: str, text: str) -> str:
        path = self._out_dir / name
        path.write_text(text, encoding="utf-8")
        return str(path)


def read_findings(out_dir: str | Path) -> List[Dict[str, Any]]:
    """Simplified findings from a previous ``scan``; empty when absent or unreadable."""
    path = Path(out_dir) / FINDINGS_FILENAME
    try:
        rows = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.debug("Findings file unavailable", extra={"path": str(path), "error": str(exc)})
        return []
    if not isinstance(rows, list):
        return []
    return [row for row in rows if isinstance(row, dict)]
