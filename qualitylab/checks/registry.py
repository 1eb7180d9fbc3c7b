"""Table of check adapters keyed by check name."""

from __future__ import annotations

from typing import Callable, Dict

from ..utils.findings import CheckOptions, CheckResult
from . import complexity, contract, lighthouse, sca, secrets, semgrep

CheckAdapter = Callable[[str, CheckOptions], CheckResult]

ADAPTERS: Dict[str, CheckAdapter] = {
    "sca": sca.run,
    "secrets": secrets.run,
    "complexity": complexity.run,
    "lighthouse": lighthouse.run,
    "semgrep": semgrep.run,
    "contract": contract.run,
}

# These adapters carry their own fallback, so planned availability is only a hint.
GATE_EXEMPT_CHECKS = frozenset({"secrets", "complexity"})


def build_adapters(overrides: Dict[str, CheckAdapter] | None = None) -> Dict[str, CheckAdapter]:
    adapters = dict(ADAPTERS)
    if overrides:
        adapters.update(overrides)
    return adapters
