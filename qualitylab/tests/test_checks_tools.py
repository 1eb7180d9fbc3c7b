"""Unit tests for the complexity, lighthouse, semgrep and contract checks."""

import json
from unittest.mock import patch

import pytest

from qualitylab.checks import complexity, contract, lighthouse, semgrep
from qualitylab.clients.process import CommandResult
from qualitylab.utils.findings import CheckOptions


def test_complexity_command_defaults_to_repo_root():
    command = complexity.build_command([])
    assert command[-1] == "."
    assert complexity.COMPLEXITY_RULE in command


def test_complexity_parses_only_rule_hits(repo):
    reports = [
        {
            "filePath": str(repo / "src" / "app.js"),
            "messages": [
                {"ruleId": "complexity", "severity": 2, "line": 4, "column": 1, "message": "too complex (14)"},
                {"ruleId": "no-unused-vars", "severity": 2, "line": 9},
                {"ruleId": "complexity", "severity": 0, "line": 20},
            ],
        },
        {"filePath": str(repo / "src" / "empty.js")},
        "junk",
    ]
    (finding,) = complexity.parse_eslint_report(reports, str(repo))
    assert finding.id == "complexity:src/app.js:4"
    assert finding.primary_file == "src/app.js"
    assert finding.severity == "medium"
    assert finding.message == "too complex (14)"


def test_complexity_without_output_is_a_warning(repo):
    missing = CommandResult(code=-1, stdout="", stderr="[Errno 2] No such file or directory: 'npx'")
    with patch("qualitylab.checks.complexity.run_command", return_value=missing):
        result = complexity.run(str(repo), CheckOptions())
    assert result.findings == []
    assert result.warnings[0] == "complexity: eslint not available or produced no output"


def test_complexity_run_parses_eslint_json(repo):
    output = json.dumps(
        [{"filePath": str(repo / "a.js"), "messages": [{"ruleId": "complexity", "severity": 2, "line": 1}]}]
    )
    with patch("qualitylab.checks.complexity.run_command", return_value=CommandResult(1, output, "")):
        result = complexity.run(str(repo), CheckOptions(patterns=["a.js"]))
    assert [f.id for f in result.findings] == ["complexity:a.js:1"]


@pytest.mark.parametrize(
    "lcp,expected",
    [
        (None, ("info", "LCP unavailable")),
        (1200, ("low", "Good LCP")),
        (2500, ("low", "Good LCP")),
        (2501, ("medium", "Needs improvement")),
        (4000, ("medium", "Needs improvement")),
        (4001, ("high", "Poor LCP")),
    ],
)
def test_lcp_classification(lcp, expected):
    assert lighthouse.classify_lcp(lcp) == expected


def test_extract_lcp():
    report = {"audits": {"largest-contentful-paint": {"numericValue": 3120.5}}}
    assert lighthouse.extract_lcp(report) == 3120.5
    assert lighthouse.extract_lcp({"audits": {}}) is None
    assert lighthouse.extract_lcp({}) is None


def test_lighthouse_needs_url(repo):
    result = lighthouse.run(str(repo), CheckOptions())
    assert result.warnings == ["lighthouse: missing URL; set QUALITYLAB_URL or pass --url"]


def test_lighthouse_retries_with_npx(repo):
    report = json.dumps({"audits": {"largest-contentful-paint": {"numericValue": 3000}}})
    outputs = [CommandResult(-1, "", "not found"), CommandResult(0, report, "")]
    with patch("qualitylab.checks.lighthouse.run_command", side_effect=outputs) as mock_run:
        result = lighthouse.run(str(repo), CheckOptions(target_url="https://example.test"))

    assert mock_run.call_args_list[1].args[0][:3] == ("npx", "-y", "lighthouse")
    (finding,) = result.findings
    assert (finding.check, finding.id, finding.severity) == ("lighthouse", "lcp", "medium")
    assert finding.message == "Needs improvement. LCP=3000 ms"
    assert finding.locations == []


def test_lighthouse_no_output_is_a_warning(repo):
    with patch("qualitylab.checks.lighthouse.run_command", return_value=CommandResult(1, "", "chrome missing")):
        result = lighthouse.run(str(repo), CheckOptions(target_url="https://example.test"))
    assert result.warnings == ["lighthouse: CLI produced no output", "chrome missing"]


def test_semgrep_severity_mapping():
    assert semgrep.map_severity("ERROR") == "high"
    assert semgrep.map_severity("warning") == "medium"
    assert semgrep.map_severity("INFO") == "info"


def test_semgrep_parses_results():
    data = {
        "results": [
            {
                "check_id": "javascript.express.security.audit.xss",
                "path": "src/server.js",
                "start": {"line": 12, "col": 5},
                "extra": {"message": "Possible XSS", "severity": "ERROR", "metadata": {"cwe": "CWE-79"}},
            },
            "junk",
        ]
    }
    (finding,) = semgrep.parse_results(data)
    assert finding.id == "javascript.express.security.audit.xss"
    assert finding.severity == "high"
    assert finding.primary_file == "src/server.js"
    assert finding.primary_line == 12
    assert semgrep.parse_results({"results": None}) == []


def test_semgrep_command_uses_owasp_ruleset():
    assert semgrep.build_command(["src/**"]) == ("semgrep", "--config", "p/owasp-top-ten", "--json", "src/**")


def test_semgrep_bad_json_is_a_warning(repo):
    with patch("qualitylab.checks.semgrep.run_command", return_value=CommandResult(0, "{oops", "")):
        result = semgrep.run(str(repo), CheckOptions())
    assert result.warnings[0].startswith("semgrep: failed to parse JSON")


def test_contract_change_classification():
    assert contract.is_spec_change("docs/openapi.yaml")
    assert contract.is_spec_change("api/spec/users.yml")
    assert contract.is_code_change("src/routes/users.ts")
    assert not contract.is_code_change("src/openapi.ts")
    assert not contract.is_code_change("docs/readme.md")
    assert not contract.is_code_change("scripts/build.js")


def test_contract_needs_since(repo):
    result = contract.run(str(repo), CheckOptions())
    assert result.warnings == ["contract: --since not provided; skipping drift assessment"]


def _diff(*paths):
    return CommandResult(0, "\n".join(paths) + "\n", "")


def test_contract_flags_code_change_without_spec_change(repo):
    with patch("qualitylab.checks.contract.run_command", return_value=_diff("src/routes/users.ts")) as mock_run:
        result = contract.run(str(repo), CheckOptions(since="HEAD~1"))

    mock_run.assert_called_once_with(contract.diff_command("HEAD~1"), cwd=str(repo), timeout_ms=None)
    (finding,) = result.findings
    assert finding.id == "openapi-drift"
    assert finding.severity == "medium"
    assert finding.meta["specPresent"] is False


def test_contract_quiet_when_spec_changes_too(repo):
    diff = _diff("openapi.yaml", "src/routes/users.ts")
    with patch("qualitylab.checks.contract.run_command", return_value=diff):
        result = contract.run(str(repo), CheckOptions(since="HEAD~1"))
    assert result.findings == []


def test_contract_reports_invalid_json_spec(repo):
    (repo / "openapi.json").write_text("{not json")
    with patch("qualitylab.checks.contract.run_command", return_value=_diff("src/app.ts")):
        result = contract.run(str(repo), CheckOptions(since="main"))
    assert [f.id for f in result.findings] == ["openapi-drift", "openapi-invalid-json"]
    assert result.findings[1].primary_file == "openapi.json"
    assert result.findings[1].severity == "high"


def test_contract_git_failure_means_no_changes(repo):
    failed = CommandResult(128, "", "fatal: bad revision")
    with patch("qualitylab.checks.contract.run_command", return_value=failed):
        result = contract.run(str(repo), CheckOptions(since="nope"))
    assert result.findings == []
