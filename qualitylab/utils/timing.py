"""Timing utilities for run stages and duration strings."""

from __future__ import annotations

import re
import time
from contextlib import contextmanager
from typing import Dict, Optional

_DURATION_PATTERN = re.compile(r"^(\d+)(ms|s|m|h)?$", re.IGNORECASE)
_UNIT_MS = {"ms": 1, "s": 1000, "m": 60 * 1000, "h": 60 * 60 * 1000}


@contextmanager
def timed(stage: str, metrics: Dict[str, int]):
    start = time.monotonic()
    try:
        yield
    finally:
        metrics[f"duration_{stage}"] = elapsed_ms(start)


def elapsed_ms(start: float) -> int:
    """Milliseconds since a ``time.monotonic()`` reading, never negative."""
    return max(0, int((time.monotonic() - start) * 1000))


def parse_duration_ms(value: str) -> Optional[int]:
    """Parse ``30s``, ``5m``, ``1h``, ``250ms`` or a bare number of seconds."""
    match = _DURATION_PATTERN.match(str(value).strip())
    if not match:
        return None
    unit = (match.group(2) or "s").lower()
    return int(match.group(1)) * _UNIT_MS[unit]


def format_duration(ms: Optional[int]) -> str:
    if ms is None:
        return "0s"
    seconds = ms // 1000
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"
