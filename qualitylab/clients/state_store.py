"""Per-repository persisted state: finding history and the config hash."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..config.settings import STATE_DIRNAME

logger = logging.getLogger(__name__)

STATE_FILENAME = "state.json"
CONFIG_HASH_FILENAME = ".config-hash"
STATE_VERSION = 1


class FileStateStore:
    """Reads and writes ``<repo>/.qualitylab/``.

    Reads never raise; a missing or unreadable file is reported as absent.
    Writes are best-effort and return whether they succeeded. No locking is
    done, so concurrent runs against one repository may race.
    """

    def __init__(self, repo_root: str | Path):
        self._dir = Path(repo_root) / STATE_DIRNAME

    @property
    def state_path(self) -> Path:
        return self._dir / STATE_FILENAME

    @property
    def config_hash_path(self) -> Path:
        return self._dir / CONFIG_HASH_FILENAME

    def read_state(self) -> Optional[Any]:
        try:
            return json.loads(self.state_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.debug("State file unavailable", extra={"path": str(self.state_path), "error": str(exc)})
            return None

    def write_state(self, entries: Dict[str, Dict[str, Any]]) -> bool:
        payload = {"version": STATE_VERSION, "entries": entries}
        return self._write(self.state_path, json.dumps(payload, indent=2, sort_keys=True) + "\n")

    def read_config_hash(self) -> Optional[str]:
        try:
            digest = self.config_hash_path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError):
            return None
        return digest or None

    def write_config_hash(self, digest: str) -> bool:
        return self._write(self.config_hash_path, f"{digest}\n")

    def _write(self, path: Path, text: str) -> bool:
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to persist state", extra={"path": str(path), "error": str(exc)})
            return False
        return True


class MemoryStateStore:
    """In-memory stand-in for :class:`FileStateStore`."""

    def __init__(self, state: Optional[Any] = None, config_hash: Optional[str] = None):
        self.state = state
        self.config_hash = config_hash

    def read_state(self) -> Optional[Any]:
        return self.state

    def write_state(self, entries: Dict[str, Dict[str, Any]]) -> bool:
        self.state = {"version": STATE_VERSION, "entries": dict(entries)}
        return True

    def read_config_hash(self) -> Optional[str]:
        return self.config_hash

    def write_config_hash(self, digest: str) -> bool:
        self.config_hash = digest
        return True


def open_store(source):
    """Accept a repository root or an existing store."""
    if isinstance(source, (str, Path)):
        return FileStateStore(source)
    return source
