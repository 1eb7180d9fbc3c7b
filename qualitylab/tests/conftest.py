"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Callable, Dict, List

import pytest

from qualitylab.clients.state_store import MemoryStateStore
from qualitylab.utils.findings import CheckOptions, CheckResult, Finding, Location

ENV_VARS = ("QUALITYLAB_URL", "QUALITYLAB_OUT_DIR", "QUALITYLAB_LOG_LEVEL", "QUALITYLAB_SECRETS_MAX_FILES")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep a developer's environment from leaking into plans."""
    # setenv first so teardown also removes values a loaded .env put there
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """Return an empty repository directory."""
    root = tmp_path / "repo"
    root.mkdir()
    return root


@pytest.fixture
def write_config(repo: Path) -> Callable[[str], Path]:
    """Write ``.qualitylab.yml`` into the test repository."""

    def _write(text: str) -> Path:
        path = repo / ".qualitylab.yml"
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def bin_dir(tmp_path: Path, monkeypatch) -> Path:
    """Replace PATH with a directory that starts out empty."""
    path = tmp_path / "bin"
    path.mkdir()
    monkeypatch.setenv("PATH", str(path))
    return path


@pytest.fixture
def make_executable(bin_dir: Path) -> Callable[[str], Path]:
    """Create a do-nothing executable on the isolated PATH."""

    def _make(name: str) -> Path:
        executable = bin_dir / name
        executable.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
        executable.chmod(0o755)
        return executable

    return _make


@pytest.fixture
def memory_store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def make_finding() -> Callable[..., Finding]:
    def _make(
        check: str = "sca",
        id: str = "lodash@<4.17.21",
        file: str | None = "package.json",
        severity: str = "high",
        **kwargs,
    ) -> Finding:
        locations = [Location(file=file, line=1)] if file is not None else []
        return Finding(
            check=check,
            id=id,
            title=kwargs.pop("title", f"{check} finding"),
            severity=severity,
            locations=locations,
            **kwargs,
        )

    return _make


class RecordingAdapter:
    """Adapter double that records each call and returns canned findings."""

    def __init__(self, findings: List[Finding] | None = None, warnings: List[str] | None = None, error=None):
        self.findings = findings or []
        self.warnings = warnings or []
        self.error = error
        self.calls: List[Dict] = []

    def __call__(self, base_dir: str, options: CheckOptions) -> CheckResult:
        self.calls.append({"base_dir": base_dir, "options": options})
        if self.error is not None:
            raise self.error
        return CheckResult(findings=list(self.findings), warnings=list(self.warnings))


@pytest.fixture
def recording_adapter() -> Callable[..., RecordingAdapter]:
    return RecordingAdapter
