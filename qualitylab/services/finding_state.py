"""Finding identity keys and the join against previously persisted state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from ..clients.state_store import open_store
from ..utils.findings import Finding

KEY_DELIMITER = "|"


@dataclass
class StatefulFinding:
    finding: Finding
    key: str
    prior: Optional[Dict[str, Any]] = None

    @property
    def is_new(self) -> bool:
        return self.prior is None


def key_for_finding(finding: Finding) -> str:
    """Identity of the underlying issue: check, finding id and primary file.

    Message and severity are deliberately excluded so the same issue keeps its
    key when its wording or rating changes between runs.
    """
    return KEY_DELIMITER.join((finding.check or "", finding.id or "", finding.primary_file))


def normalize_state(data: Any) -> Dict[str, Dict[str, Any]]:
    """Accept ``{"entries": [...]}`` or ``{"entries": {key: entry}}``.

    Entries without a usable string key are dropped.
    """
    if not isinstance(data, dict):
        return {}
    entries = data.get("entries")
    if isinstance(entries, list):
        return {
            entry["key"]: entry
            for entry in entries
            if isinstance(entry, dict) and isinstance(entry.get("key"), str) and entry["key"]
        }
    if isinstance(entries, dict):
        return {
            key: entry
            for key, entry in entries.items()
            if isinstance(key, str) and key and isinstance(entry, dict)
        }
    return {}


def load_state(source) -> Dict[str, Dict[str, Any]]:
    """Load prior entries from a repository root or a state store."""
    store = open_store(source)
    return normalize_state(store.read_state())


def attach_state(
    findings: Iterable[Finding],
    state: Dict[str, Dict[str, Any]],
) -> List[StatefulFinding]:
    attached: List[StatefulFinding] = []
    for finding in findings:
        key = key_for_finding(finding)
        attached.append(StatefulFinding(finding=finding, key=key, prior=state.get(key)))
    return attached


def merge_state(
    attached: Iterable[StatefulFinding],
    state: Dict[str, Dict[str, Any]],
    seen_at: str,
) -> Dict[str, Dict[str, Any]]:
    """State to persist after a run; entries not seen this run are kept as-is."""
    merged = {key: dict(entry) for key, entry in state.items()}
    for item in attached:
        entry = dict(item.prior or {})
        entry.update(
            {
                "key": item.key,
                "check": item.finding.check,
                "id": item.finding.id,
                "first_seen": entry.get("first_seen") or seen_at,
                "last_seen": seen_at,
            }
        )
        merged[item.key] = entry
    return merged
