"""Policy drift detection through a hash of the effective configuration."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..clients.state_store import open_store
from ..config.settings import QualityLabConfig

logger = logging.getLogger(__name__)


@dataclass
class GovernanceResult:
    current: str
    previous: Optional[str] = None
    changed: bool = False

    def to_dict(self) -> dict:
        return {"current": self.current, "previous": self.previous, "changed": self.changed}


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def compute_config_hash(config: QualityLabConfig, config_path: Optional[str | Path] = None) -> str:
    """Hash the raw config file bytes, or the canonical effective config.

    Raw bytes are used when the file is readable, so edits that do not change
    the effective settings (comments, formatting) still change the hash.
    """
    if config_path is not None:
        try:
            return _sha256_hex(Path(config_path).read_bytes())
        except OSError as exc:
            logger.debug("Config file not readable for hashing", extra={"path": str(config_path), "error": str(exc)})
    canonical = json.dumps(config.model_dump(), sort_keys=True, separators=(",", ":"))
    return _sha256_hex(canonical.encode("utf-8"))


def read_previous_hash(source) -> Optional[str]:
    return open_store(source).read_config_hash()


def write_config_hash(source, digest: str) -> None:
    if not open_store(source).write_config_hash(digest):
        logger.warning("Config hash not persisted; next run will have no baseline")


def evaluate_governance(store, config: QualityLabConfig, config_path: Optional[str | Path] = None) -> GovernanceResult:
    """Compare the current hash with the last run's, then record the current one.

    A missing previous hash is "no signal", never "changed".
    """
    current = compute_config_hash(config, config_path)
    previous = read_previous_hash(store)
    write_config_hash(store, current)
    return GovernanceResult(
        current=current,
        previous=previous,
        changed=previous is not None and previous != current,
    )
