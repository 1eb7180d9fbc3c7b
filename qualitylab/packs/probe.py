"""Capability probes used while planning.

Every probe answers a yes/no question about the local machine and never
raises: anything that prevents an answer counts as "not available".
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Mapping, Optional


def has_file(base_dir: str, relative: str) -> bool:
    try:
        return (Path(base_dir) / relative).exists()
    except (OSError, ValueError):
        return False


def bin_in_path(name: str, path: Optional[str] = None) -> bool:
    """Whether ``name`` resolves to an executable on ``path`` (default: $PATH)."""
    search_path = path if path is not None else os.environ.get("PATH", "")
    try:
        return shutil.which(name, path=search_path) is not None
    except (OSError, ValueError):
        return False


def has_env(name: str, environ: Optional[Mapping[str, str]] = None) -> bool:
    source = os.environ if environ is None else environ
    return bool(source.get(name))


def any_file(base_dir: str, candidates) -> bool:
    return any(has_file(base_dir, candidate) for candidate in candidates)
