"""Command line entry point: ``scan``, ``summary`` and ``fail-on``."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .analyzers import scorer
from .clients.logging import apply_log_level, get_logger
from .config.config_loader import find_config_root
from .config.settings import DEFAULT_OUT_DIR, OUT_DIR_ENV, ScanOptions, resolve_out_dir
from .services.scan_runner import REPORT_VERSION, ScanRunner
from .utils.errors import InvalidTargetError, QualityLabError
from .utils.timing import format_duration, parse_duration_ms
from .writers.report_writer import ReportWriter, read_findings

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_MISSING_PATH = 2

OUT_DIR_HELP = f"Report directory (default: ${OUT_DIR_ENV} or {DEFAULT_OUT_DIR})"

EPILOG = """
Examples:
  qualitylab scan .
  qualitylab scan . --json > report.json
  qualitylab scan . --since HEAD~1
  qualitylab scan . --paths 'apps/api/**' --time-budget 5m
  qualitylab summary
  qualitylab fail-on high
"""


def _duration(value: str) -> int:
    parsed = parse_duration_ms(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"invalid duration '{value}' (e.g. 30s, 5m, 250ms)")
    return parsed


def _globs(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qualitylab",
        description="Plan and run repository quality checks.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {REPORT_VERSION}")
    subparsers = parser.add_subparsers(dest="command")

    scan = subparsers.add_parser("scan", help="Scan a repository and write reports")
    scan.add_argument("path", nargs="?", default=".", help="Repository or directory to scan (default: .)")
    scan.add_argument("--json", action="store_true", help="Print the full JSON report to stdout")
    scan.add_argument("--since", default=None, help="Git revision for change-based checks (e.g. HEAD~1)")
    scan.add_argument("--paths", type=_globs, default=[], help="Comma-separated globs to focus the scan")
    scan.add_argument("--time-budget", type=_duration, default=None, help="Stop starting checks after this long (e.g. 5m)")
    scan.add_argument("--url", default=None, help="Target URL for lighthouse (overrides QUALITYLAB_URL)")
    scan.add_argument("--out-dir", default=None, help=OUT_DIR_HELP)

    summary = subparsers.add_parser("summary", help="Print a Markdown summary of the last scan")
    summary.add_argument("--out-dir", default=None, help=OUT_DIR_HELP)

    fail_on = subparsers.add_parser("fail-on", help="Exit 1 when any finding meets the threshold")
    fail_on.add_argument("threshold", type=str.lower, choices=scorer.THRESHOLDS)
    fail_on.add_argument("--out-dir", default=None, help=OUT_DIR_HELP)
    return parser


def _load_env(target: Path) -> None:
    """Load ``.env`` from the repo root above ``target`` without overriding the environment."""
    root, _ = find_config_root(target)
    if root is None:
        root = target if target.is_dir() else target.parent
    load_dotenv(root / ".env", override=False)


def _short_hash(digest: Optional[str]) -> str:
    return digest[:6] if digest else "none"


def _render_text(report: dict, out_dir: Path) -> str:
    summary = report["summary"]
    runtime = report["runtime"]
    governance = report["governance"]["config_hash"]
    since = f" since {report['since']}" if report.get("since") else ""
    config_path = report["config"]["path"] or "<defaults>"
    planned = len(report["planned"])

    lines = [
        f"Scanned {report['target_path']}{since}. Findings: {summary['count']} ({summary['new']} new).",
        f"Config: {config_path}.",
        f"Policy hash: {_short_hash(governance['current'])}",
    ]
    if governance["changed"]:
        lines.append(
            "Policy change detected: .qualitylab.yml modified "
            f"(hash {_short_hash(governance['previous'])} -> {_short_hash(governance['current'])})"
        )
    lines.append(f"Planned checks: {planned}.")
    lines.append(
        f"Scan complete in {format_duration(runtime['duration_ms'])} "
        f"(approx {summary['cost']['cpu_minutes']:.2f} CPU-min)"
    )
    lines.append(f"Checks executed: {runtime['executed']}/{planned}")
    if runtime["skipped"]:
        skipped = ", ".join(f"{item['check']} ({item['reason']})" for item in runtime["skipped"])
        lines.append(f"Skipped: {skipped}")
    for warning in report["warnings"]:
        lines.append(f"Warning: {warning}")
    lines.append(f"Wrote reports to {out_dir}. Use --json for full payload.")
    return "\n".join(lines) + "\n"


def cmd_scan(args: argparse.Namespace, runner: Optional[ScanRunner] = None) -> int:
    target = Path(args.path).resolve()
    if not target.exists():
        print(f"Path not found: {args.path}", file=sys.stderr)
        return EXIT_MISSING_PATH

    options = ScanOptions(
        since=args.since,
        paths=args.paths,
        time_budget_ms=args.time_budget,
        target_url=args.url,
    )
    runner = runner or ScanRunner()
    try:
        outcome = runner.run(args.path, options)
    except InvalidTargetError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_MISSING_PATH

    out_dir = Path(resolve_out_dir(args.out_dir)).resolve()
    writer = ReportWriter(out_dir, outcome.store, run_id=outcome.report["run_id"])
    writer.write(outcome.report, outcome.attached, outcome.state)

    if args.json:
        sys.stdout.write(json.dumps(outcome.report, indent=2, default=str) + "\n")
    else:
        sys.stdout.write(_render_text(outcome.report, out_dir))
    return EXIT_OK


def cmd_summary(args: argparse.Namespace) -> int:
    rows = read_findings(resolve_out_dir(args.out_dir))
    sys.stdout.write(scorer.render_markdown_summary(rows))
    return EXIT_OK


def cmd_fail_on(args: argparse.Namespace) -> int:
    rows = read_findings(resolve_out_dir(args.out_dir))
    if scorer.threshold_met(rows, args.threshold):
        print(f"qualitylab: fail-on threshold '{args.threshold}' met", file=sys.stderr)
        return EXIT_ERROR
    print(f"qualitylab: fail-on threshold '{args.threshold}' not met")
    return EXIT_OK


COMMANDS = {
    "scan": cmd_scan,
    "summary": cmd_summary,
    "fail-on": cmd_fail_on,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return EXIT_OK

    try:
        _load_env(Path(getattr(args, "path", ".")).resolve())
        apply_log_level()
        return COMMANDS[args.command](args)
    except QualityLabError as exc:
        logger.error("Command failed", extra={"command": args.command, "error": str(exc)})
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR
    except OSError as exc:
        logger.error("Command failed", extra={"command": args.command, "error": str(exc)})
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
