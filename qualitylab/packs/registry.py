"""Pack definitions and plan resolution.

A pack bundles a default selection of checks with the rules that decide,
for one repository, whether each check can run and what it would invoke.
Resolution never fails: unknown packs and empty selections surface as
plan warnings.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..checks import complexity, contract, lighthouse, sca, secrets, semgrep
from ..config.settings import DEFAULT_PACK, ScanOptions
from .probe import any_file, bin_in_path, has_file

logger = logging.getLogger(__name__)

KNOWN_CHECKS = ("sca", "secrets", "complexity", "lighthouse", "semgrep", "contract")
CHECK_ALIASES = {
    "performance": "lighthouse",
    "static-analysis": "semgrep",
    "contract-drift": "contract",
}

ESLINT_LOCAL_BIN = "node_modules/.bin/eslint"
ESLINT_CONFIG_MARKERS = (".eslintrc", ".eslintrc.json", ".eslintrc.js")


@dataclass(frozen=True)
class PlanItem:
    check: str
    runner: str
    pack: str
    available: bool
    reason: str = ""
    command: Optional[Tuple[str, ...]] = None
    cwd: Optional[str] = None

    def __post_init__(self):
        if not self.available and not self.reason:
            raise ValueError(f"Unavailable plan item '{self.check}' needs a reason")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["command"] = list(self.command) if self.command is not None else None
        return data


@dataclass
class Plan:
    plan: List[PlanItem] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


PlanRule = Callable[[str, str, ScanOptions], PlanItem]


@dataclass(frozen=True)
class PackDefinition:
    pack_id: str
    default_checks: Tuple[str, ...]
    rules: Tuple[Tuple[str, PlanRule], ...]

    @property
    def known_checks(self) -> Tuple[str, ...]:
        return tuple(check for check, _ in self.rules)


def _item(
    check: str,
    runner: str,
    pack_id: str,
    base_dir: str,
    available: bool,
    reason: str,
    command: Optional[Sequence[str]],
) -> PlanItem:
    return PlanItem(
        check=check,
        runner=runner,
        pack=pack_id,
        available=available,
        reason="" if available else reason,
        command=tuple(command) if command is not None else None,
        cwd=base_dir,
    )


def _plan_sca(base_dir: str, pack_id: str, options: ScanOptions) -> PlanItem:
    available = has_file(base_dir, "package.json")
    return _item("sca", "npm-audit", pack_id, base_dir, available, "No package.json found", sca.AUDIT_COMMAND)


def _plan_secrets(base_dir: str, pack_id: str, options: ScanOptions) -> PlanItem:
    available = bin_in_path("gitleaks")
    return _item(
        "secrets",
        "gitleaks",
        pack_id,
        base_dir,
        available,
        "gitleaks binary not found in PATH",
        secrets.GITLEAKS_COMMAND,
    )


def _plan_complexity(
    base_dir: str,
    pack_id: str,
    options: ScanOptions,
    config_markers: Tuple[str, ...] = (),
) -> PlanItem:
    available = (
        has_file(base_dir, ESLINT_LOCAL_BIN)
        or bin_in_path("eslint")
        or any_file(base_dir, config_markers)
    )
    return _item(
        "complexity",
        "eslint-complexity",
        pack_id,
        base_dir,
        available,
        "ESLint not detected",
        complexity.build_command(options.paths),
    )


def _plan_lighthouse(base_dir: str, pack_id: str, options: ScanOptions) -> PlanItem:
    has_binary = bin_in_path("lighthouse")
    runnable = has_binary or bin_in_path("npx")
    url = options.resolved_target_url()
    available = bool(runnable and url)
    reason = "lighthouse not available" if url else "Missing target URL (set QUALITYLAB_URL)"
    command = lighthouse.build_command(url, use_npx=not has_binary) if url else None
    return _item("lighthouse", "lighthouse-cli", pack_id, base_dir, available, reason, command)


def _plan_semgrep(base_dir: str, pack_id: str, options: ScanOptions) -> PlanItem:
    available = bin_in_path("semgrep")
    return _item(
        "semgrep",
        "semgrep-security",
        pack_id,
        base_dir,
        available,
        "semgrep not found in PATH",
        semgrep.build_command(options.paths),
    )


def _plan_contract(base_dir: str, pack_id: str, options: ScanOptions) -> PlanItem:
    available = bool(options.since)
    return _item(
        "contract",
        "openapi-drift",
        pack_id,
        base_dir,
        available,
        "requires --since to assess drift",
        contract.diff_command(options.since or "HEAD~1"),
    )


PACKS: Dict[str, PackDefinition] = {
    "web-saas@1": PackDefinition(
        pack_id="web-saas@1",
        default_checks=("sca", "secrets", "complexity", "lighthouse"),
        rules=(
            ("sca", _plan_sca),
            ("secrets", _plan_secrets),
            ("complexity", partial(_plan_complexity, config_markers=ESLINT_CONFIG_MARKERS)),
            ("lighthouse", _plan_lighthouse),
        ),
    ),
    "api@1": PackDefinition(
        pack_id="api@1",
        default_checks=("sca", "secrets", "complexity"),
        rules=(
            ("sca", _plan_sca),
            ("secrets", _plan_secrets),
            ("complexity", _plan_complexity),
        ),
    ),
    "api-service@1": PackDefinition(
        pack_id="api-service@1",
        default_checks=("sca", "secrets", "complexity", "semgrep", "contract"),
        rules=(
            ("sca", _plan_sca),
            ("secrets", _plan_secrets),
            ("complexity", _plan_complexity),
            ("semgrep", _plan_semgrep),
            ("contract", _plan_contract),
        ),
    ),
}


def normalize_check_names(checks: Optional[Iterable[str]]) -> List[str]:
    """Lower-case, resolve aliases and drop duplicates, keeping first occurrence."""
    names: List[str] = []
    for check in checks or []:
        name = str(check).strip().lower()
        name = CHECK_ALIASES.get(name, name)
        if name and name not in names:
            names.append(name)
    return names


def resolve_pack(
    base_dir: str,
    pack_id: str,
    checks: Optional[Iterable[str]] = None,
    options: Optional[ScanOptions] = None,
) -> List[PlanItem]:
    pack = PACKS.get(pack_id)
    if pack is None:
        return []
    options = options or ScanOptions()
    requested = set(normalize_check_names(checks)) or set(pack.default_checks)
    return [rule(base_dir, pack.pack_id, options) for check, rule in pack.rules if check in requested]


def resolve_planned_checks(
    base_dir: str,
    packs: Optional[Iterable[str]] = None,
    checks: Optional[Iterable[str]] = None,
    options: Optional[ScanOptions] = None,
) -> Plan:
    result = Plan()
    checks = list(checks or [])
    unknown = [c for c in normalize_check_names(checks) if c not in KNOWN_CHECKS]
    if unknown:
        logger.warning("Ignoring unknown check names", extra={"checks": unknown})

    pack_ids = list(dict.fromkeys(packs or [])) or [DEFAULT_PACK]
    for pack_id in pack_ids:
        items = resolve_pack(base_dir, pack_id, checks, options)
        if not items:
            result.warnings.append(f"Unknown or empty pack: {pack_id}")
        result.plan.extend(items)

    if not result.plan:
        result.warnings.append("No checks planned.")
    return result
