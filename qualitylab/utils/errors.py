"""Custom exception classes for scan errors."""

from __future__ import annotations


class QualityLabError(Exception):
    """Base exception for scan failures."""

    def __init__(self, message: str, run_id: str | None = None):
        super().__init__(message)
        self.run_id = run_id


class CheckFailureError(QualityLabError):
    """Raised when a check adapter fails in a way it cannot report as a warning."""

    def __init__(self, check_name: str, message: str, run_id: str | None = None):
        super().__init__(f"Check '{check_name}' failed: {message}", run_id=run_id)
        self.check_name = check_name


class ConfigError(QualityLabError):
    """Raised when a config file cannot be read or parsed."""

    def __init__(self, path: str, message: str):
        super().__init__(f"Invalid config {path}: {message}")
        self.path = path


class InvalidTargetError(QualityLabError):
    """Raised when the scan target does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Path not found: {path}")
        self.path = path
