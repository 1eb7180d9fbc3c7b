"""Runtime configuration models."""

from __future__ import annotations

import os
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

CONFIG_FILENAME = ".qualitylab.yml"
STATE_DIRNAME = ".qualitylab"
DEFAULT_PACK = "web-saas@1"
DEFAULT_OUT_DIR = "qualitylab-report"
OUT_DIR_ENV = "QUALITYLAB_OUT_DIR"
TARGET_URL_ENV = "QUALITYLAB_URL"


class QualityLabConfig(BaseModel):
    """Effective contents of ``.qualitylab.yml`` after defaults are applied."""

    packs: List[str] = Field(default_factory=list)
    checks: List[str] = Field(default_factory=list)

    @field_validator("packs", "checks")
    @classmethod
    def _non_empty_strings(cls, value: List[str]) -> List[str]:
        if any(not item.strip() for item in value):
            raise ValueError("expected array of non-empty strings")
        return value


class ScanOptions(BaseModel):
    since: Optional[str] = None
    paths: List[str] = Field(default_factory=list)
    time_budget_ms: Optional[int] = Field(default=None, ge=0)
    target_url: Optional[str] = None

    def resolved_target_url(self) -> Optional[str]:
        return self.target_url or os.getenv(TARGET_URL_ENV) or None


def resolve_out_dir(out_dir: Optional[str] = None) -> str:
    """Explicit directory, else ``QUALITYLAB_OUT_DIR``, else the default."""
    return out_dir or os.getenv(OUT_DIR_ENV) or DEFAULT_OUT_DIR
