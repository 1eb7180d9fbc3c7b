"""Structured logging utilities."""

import json
import logging
import os
from typing import Any, Dict, Optional

LOG_LEVEL_ENV = "QUALITYLAB_LOG_LEVEL"
PACKAGE_LOGGER = "qualitylab"

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info", "taskName",
}


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def resolve_log_level() -> int:
    level = logging.getLevelName(os.getenv(LOG_LEVEL_ENV, "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def apply_log_level(level: Optional[int] = None) -> None:
    """Set the package logger level; module loggers inherit it.

    Called again after a ``.env`` file is loaded so its level takes effect.
    """
    logging.getLogger(PACKAGE_LOGGER).setLevel(resolve_log_level() if level is None else level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with JSON formatting configured.

    Handlers write to stderr so report output on stdout stays machine-readable.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.propagate = False
    return logger


apply_log_level()


def log_config_load(
    logger: logging.Logger,
    run_id: str,
    duration_ms: int,
    config_path: Optional[str] = None,
    config_hash: Optional[str] = None,
) -> None:
    """Log config load stage."""
    extra: Dict[str, Any] = {
        "run_id": run_id,
        "stage": "config_load",
        "duration_ms": duration_ms,
    }
    if config_path:
        extra["config_path"] = config_path
    if config_hash:
        extra["config_hash"] = config_hash
    logger.info("Config loaded", extra=extra)


def log_plan(
    logger: logging.Logger,
    run_id: str,
    planned: int,
    available: int,
    warning_count: int,
) -> None:
    """Log planning stage."""
    logger.info(
        "Checks planned",
        extra={
            "run_id": run_id,
            "stage": "plan",
            "planned": planned,
            "available": available,
            "warning_count": warning_count,
        },
    )


def log_check(
    logger: logging.Logger,
    run_id: Optional[str],
    check_name: str,
    finding_count: int,
    duration_ms: int,
    severity_breakdown: Optional[Dict[str, int]] = None,
) -> None:
    """Log check execution stage."""
    extra: Dict[str, Any] = {
        "run_id": run_id,
        "stage": check_name,
        "finding_count": finding_count,
        "duration_ms": duration_ms,
    }
    if severity_breakdown:
        extra["severity_breakdown"] = severity_breakdown
    logger.info(f"Check {check_name} completed", extra=extra)


def log_write(
    logger: logging.Logger,
    run_id: str,
    target: str,
    count: int,
    duration_ms: int,
) -> None:
    """Log write stage."""
    logger.info(
        f"Write to {target} completed",
        extra={
            "run_id": run_id,
            "stage": f"write_{target}",
            "count": count,
            "duration_ms": duration_ms,
        },
    )
