"""CLI command listing every available check."""

from __future__ import annotations

import argparse

from driftguard.cli.ux import print_table
from driftguard.runner import all_checks


def list_checks_command() -> int:
    rows = [[check.name, check.group, check.description] for check in all_checks()]
    print_table("Checks", ["Check", "Group", "Description"], rows)
    return 0


def register_list_checks_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register list-checks subcommand parser."""
    subparsers.add_parser("list-checks", help="List every check with its group")


def handle_list_checks_command(args: argparse.Namespace) -> int:
    return list_checks_command()
