"""
CLI commands that run guard checks.

Commands:
    driftguard check [ROOT]                   - Run every check
    driftguard check --only log-label         - Run selected checks
    driftguard application-metrics [ROOT]     - Run one guard group
    driftguard check --format json            - Output as JSON
"""

from __future__ import annotations

import argparse
from pathlib import Path

import structlog

from driftguard.cli.formatters import OutputFormat, print_report
from driftguard.cli.ux import console
from driftguard.config.loader import load_guard_config
from driftguard.core.errors import ConfigurationError, main_with_error_handling
from driftguard.runner import GROUPS, GuardRunner, select_checks

logger = structlog.get_logger()

GROUP_HELP = {
    "application-metrics": "Service registration, metric naming, dashboard and catalog coverage",
    "histogram-buckets": "Histogram bucket configuration co-located with the metric",
    "grafana-datasources": "Datasource UIDs, log labels and log template variables",
    "infrastructure-metrics": "Infrastructure labels in metric queries",
    "test-rigidity": "Test code that cannot fail",
}


def find_repo_root(start: Path) -> Path:
    """Nearest ancestor of ``start`` containing .git, else ``start`` itself."""
    start = start.resolve()
    for candidate in (start, *start.parents):
        if (candidate / ".git").exists():
            return candidate
    return start


def resolve_root(root: str | None) -> Path:
    if root is None:
        return find_repo_root(Path.cwd())
    path = Path(root).resolve()
    if not path.is_dir():
        raise ConfigurationError("Root is not a directory", {"root": root})
    return path


def check_command(
    root: str | None = None,
    only: list[str] | None = None,
    skip: list[str] | None = None,
    groups: list[str] | None = None,
    config_path: str | None = None,
    output_format: str = "text",
    title: str = "driftguard check",
) -> int:
    """
    Run the selected checks and print the report.

    Returns:
        Exit code (0 = clean, 1 = error violations, 2 = tooling failure)
    """
    resolved = resolve_root(root)
    config = load_guard_config(resolved, config_path)
    checks = select_checks(only=only, skip=skip, groups=groups)
    logger.debug("checks_selected", root=str(resolved), checks=checks)

    report = GuardRunner(resolved, config).run(checks)
    print_report(report, console, OutputFormat(output_format), title=title)
    return int(report.exit_code)


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        help="Repository root to validate (default: nearest ancestor containing .git)",
    )
    parser.add_argument("--config", "-c", dest="config_path", help="Guard configuration file")
    parser.add_argument(
        "--format",
        "-f",
        dest="output_format",
        choices=[f.value for f in OutputFormat],
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log extractor and rule progress to stderr"
    )
    parser.add_argument(
        "--log-format",
        choices=["console", "json"],
        help="Log renderer for stderr (or set DRIFTGUARD_LOG_FORMAT)",
    )


def register_check_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register check subcommand parser."""
    check_parser = subparsers.add_parser("check", help="Run consistency and test-rigidity checks")
    add_common_arguments(check_parser)
    check_parser.add_argument(
        "--only",
        action="append",
        metavar="CHECK",
        help="Run only this check (repeatable)",
    )
    check_parser.add_argument(
        "--skip",
        action="append",
        metavar="CHECK",
        help="Skip this check (repeatable)",
    )
    check_parser.add_argument(
        "--group",
        action="append",
        dest="groups",
        choices=GROUPS,
        help="Run only the checks of this group (repeatable)",
    )


def register_group_parsers(subparsers: argparse._SubParsersAction) -> None:
    """Register one standalone subcommand per guard group."""
    for group in GROUPS:
        group_parser = subparsers.add_parser(group, help=GROUP_HELP[group])
        add_common_arguments(group_parser)
        group_parser.set_defaults(groups=[group], only=None, skip=None)


@main_with_error_handling()
def handle_check_command(args: argparse.Namespace) -> int:
    """Handle check and guard-group commands from CLI args."""
    return check_command(
        root=args.root,
        only=getattr(args, "only", None),
        skip=getattr(args, "skip", None),
        groups=getattr(args, "groups", None),
        config_path=args.config_path,
        output_format=args.output_format,
        title=f"driftguard {args.command}",
    )
