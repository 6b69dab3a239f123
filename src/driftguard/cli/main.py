"""
driftguard command line entry point.

Usage:
    driftguard <command> [args]
"""

from __future__ import annotations

import argparse
import logging
from typing import Sequence

from driftguard import __version__
from driftguard.cli.check import handle_check_command, register_check_parser, register_group_parsers
from driftguard.cli.list_checks import handle_list_checks_command, register_list_checks_parser
from driftguard.config.settings import get_settings
from driftguard.core.errors import ExitCode
from driftguard.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="driftguard",
        description="Cross-artifact consistency validator for observability stacks",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    register_check_parser(subparsers)
    register_group_parsers(subparsers)
    register_list_checks_parser(subparsers)
    return parser


def _setup_logging(args: argparse.Namespace) -> None:
    settings = get_settings()
    level = logging.DEBUG if getattr(args, "verbose", False) else settings.log_level.upper()
    configure_logging(level, getattr(args, "log_format", None) or settings.log_format)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return ExitCode.TOOLING_FAILURE

    _setup_logging(args)

    if args.command == "list-checks":
        return handle_list_checks_command(args)

    return handle_check_command(args)


if __name__ == "__main__":
    raise SystemExit(main())
