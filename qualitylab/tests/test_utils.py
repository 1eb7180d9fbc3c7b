"""Unit tests for timing, path, finding and subprocess helpers."""

import subprocess
from unittest.mock import patch

import pytest

from qualitylab.clients.process import TIMEOUT_EXIT_CODE, run_command
from qualitylab.utils.findings import Finding, Location, normalize_findings, severity_rank
from qualitylab.utils.paths import (
    command_targets,
    derive_focused_cwd,
    matches_globs,
    rebase_patterns,
    relative_to,
    walk_files,
)
from qualitylab.utils.timing import format_duration, parse_duration_ms, timed


@pytest.mark.parametrize(
    "value,expected",
    [("250ms", 250), ("30s", 30_000), ("30", 30_000), ("5m", 300_000), ("1h", 3_600_000), ("2M", 120_000)],
)
def test_parse_duration(value, expected):
    assert parse_duration_ms(value) == expected


@pytest.mark.parametrize("value", ["", "fast", "-5s", "1.5m", "10d"])
def test_parse_duration_rejects(value):
    assert parse_duration_ms(value) is None


def test_format_duration():
    assert format_duration(None) == "0s"
    assert format_duration(999) == "0s"
    assert format_duration(61_000) == "1m1s"
    assert format_duration(3_723_000) == "1h2m3s"


def test_timed_records_stage():
    metrics = {}
    with timed("plan", metrics):
        pass
    assert metrics["duration_plan"] >= 0


def test_glob_matching():
    assert matches_globs("apps/api/src/index.ts", ["apps/api/**"])
    assert matches_globs("a.env", ["*.env"])
    assert not matches_globs("config/a.env", ["*.env"])
    assert matches_globs("config/a.env", ["**/*.env"])


def test_relative_to_inside_and_outside(tmp_path):
    base = tmp_path / "repo"
    (base / "src").mkdir(parents=True)
    assert relative_to(str(base), str(base / "src" / "a.js")) == "src/a.js"
    assert relative_to(str(base / "src"), str(tmp_path / "other.js")) == str(tmp_path / "other.js")


def test_walk_files_is_sorted_and_skips_vendor(repo):
    (repo / "b").mkdir()
    (repo / "b" / "z.txt").write_text("")
    (repo / "a.txt").write_text("")
    (repo / ".git").mkdir()
    (repo / ".git" / "config").write_text("")
    found = [relative_to(str(repo), p) for p in walk_files(str(repo))]
    assert found == ["a.txt", "b/z.txt"]


def test_derive_focused_cwd(repo):
    (repo / "apps" / "api").mkdir(parents=True)
    assert derive_focused_cwd(str(repo), ["apps/api/**", "lib/**"]) == str((repo / "apps" / "api").resolve())
    assert derive_focused_cwd(str(repo), ["missing/**"]) is None
    assert derive_focused_cwd(str(repo), ["**/*.ts"]) is None
    assert derive_focused_cwd(str(repo), ["apps/api"]) is None
    assert derive_focused_cwd(str(repo), []) is None


def test_rebase_patterns():
    assert rebase_patterns(["apps/api/**", "apps/api/src/*.ts", "apps/api", "docs/**"], "apps/api") == [
        "**",
        "src/*.ts",
        "**",
        "docs/**",
    ]
    assert rebase_patterns(["src/**"], ".") == ["src/**"]


def test_command_targets():
    assert command_targets(None) == (".",)
    assert command_targets(["**", "**/*"]) == (".",)
    assert command_targets(["src/a.js", "**"]) == ("src/a.js", ".")


def test_severity_rank_order():
    ranks = [severity_rank(s) for s in ("info", "low", "medium", "high", "critical")]
    assert ranks == [1, 2, 3, 4, 5]
    assert severity_rank("none") == 0
    assert severity_rank(None) == 0


def test_normalize_findings_lowercases_known_values():
    finding = Finding(check="semgrep", id="r1", title="t", severity="HIGH", confidence="Medium")
    (normalized,), warnings = normalize_findings("semgrep", [finding])
    assert (normalized.severity, normalized.confidence) == ("high", "medium")
    assert warnings == []
    assert finding.severity == "HIGH"


def test_normalize_findings_warns_on_unknown_values():
    finding = Finding(check="sca", id="x", title="t", severity="urgent", confidence="")
    (normalized,), warnings = normalize_findings("sca", [finding])
    assert normalized.severity == "info"
    assert normalized.confidence == "low"
    assert warnings == [
        "sca: unknown severity 'urgent' on finding x; using info",
        "sca: unknown confidence '' on finding x; using low",
    ]


def test_finding_primary_location():
    finding = Finding(check="c", id="i", title="t", severity="low", locations=[Location("a.py", 7)])
    assert (finding.primary_file, finding.primary_line) == ("a.py", 7)
    empty = Finding(check="c", id="i", title="t", severity="low")
    assert (empty.primary_file, empty.primary_line) == ("", None)


def test_run_command_collects_output(tmp_path):
    result = run_command(["sh", "-c", "echo out; echo err >&2; exit 3"], cwd=str(tmp_path))
    assert result.code == 3
    assert result.stdout.strip() == "out"
    assert result.stderr.strip() == "err"
    assert not result.timed_out


def test_run_command_missing_binary():
    result = run_command(["qualitylab-definitely-missing-binary"])
    assert result.code == -1
    assert result.stdout == ""
    assert result.stderr


def test_run_command_timeout_keeps_partial_output():
    expired = subprocess.TimeoutExpired(cmd=["npm"], timeout=1.5, output=b"partial", stderr=b"slow")
    with patch("qualitylab.clients.process.subprocess.run", side_effect=expired):
        result = run_command(["npm", "audit"], timeout_ms=1500)
    assert result.code == TIMEOUT_EXIT_CODE
    assert result.timed_out
    assert result.stdout == "partial"
    assert result.stderr == "slow\nCommand timed out after 1.5s"


def test_run_command_merges_env():
    with patch("qualitylab.clients.process.subprocess.run") as mock_run:
        mock_run.return_value = subprocess.CompletedProcess(args=[], returncode=0, stdout=b"", stderr=b"")
        run_command(["npm"], env={"CI": "1"}, timeout_ms=0)
    kwargs = mock_run.call_args.kwargs
    assert kwargs["env"]["CI"] == "1"
    assert "PATH" in kwargs["env"]
    assert kwargs["timeout"] is None
