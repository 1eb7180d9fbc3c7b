"""Locate and load ``.qualitylab.yml`` for a scan target."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from ..utils.errors import ConfigError
from .settings import CONFIG_FILENAME, QualityLabConfig

logger = logging.getLogger(__name__)

KNOWN_KEYS = ("packs", "checks")


@dataclass
class ConfigLoad:
    config: QualityLabConfig
    root: Optional[Path] = None
    path: Optional[Path] = None
    warnings: List[str] = field(default_factory=list)


def find_config_root(start_path: str | Path) -> Tuple[Optional[Path], Optional[Path]]:
    """Walk up from ``start_path`` looking for the config file.

    Returns ``(root, config_path)``, both ``None`` when no file is found.
    """
    directory = Path(start_path).resolve()
    if directory.is_file():
        directory = directory.parent
    elif not directory.exists():
        directory = Path.cwd()

    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / CONFIG_FILENAME
        if candidate.is_file():
            return candidate_dir, candidate
    return None, None


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(str(path), str(exc)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(str(path), "top-level value must be a mapping")
    return data


def validate_config(raw: Dict[str, Any]) -> Tuple[QualityLabConfig, List[str]]:
    """Validate known keys; invalid fields fall back to their defaults."""
    warnings: List[str] = []
    for key in raw:
        if key not in KNOWN_KEYS:
            warnings.append(f"Ignoring unknown key '{key}' in {CONFIG_FILENAME}.")

    values = {key: raw[key] for key in KNOWN_KEYS if raw.get(key) is not None}
    try:
        return QualityLabConfig.model_validate(values), warnings
    except ValidationError as exc:
        invalid = {str(error["loc"][0]) for error in exc.errors() if error.get("loc")}

    for key in KNOWN_KEYS:
        if key in invalid:
            warnings.append(
                f"Invalid '{key}' value; expected array of non-empty strings. Using default []."
            )
            values.pop(key, None)
    return QualityLabConfig.model_validate(values), warnings


def load_config(start_path: str | Path) -> ConfigLoad:
    root, config_path = find_config_root(start_path)
    if config_path is None:
        return ConfigLoad(
            config=QualityLabConfig(),
            warnings=[f"No {CONFIG_FILENAME} found; using defaults."],
        )

    try:
        raw = _read_yaml(config_path)
    except ConfigError as exc:
        logger.warning("Config could not be parsed", extra={"path": str(config_path), "error": str(exc)})
        return ConfigLoad(
            config=QualityLabConfig(),
            root=root,
            path=config_path,
            warnings=[f"{CONFIG_FILENAME} read/parse error: {exc}. Using defaults."],
        )

    config, warnings = validate_config(raw)
    return ConfigLoad(config=config, root=root, path=config_path, warnings=warnings)
