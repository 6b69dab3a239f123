"""
Output formatters for driftguard reports.

- text: Human-readable report (default)
- json: Machine-readable JSON
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from rich.console import Console

from .json_fmt import format_json
from .text import render_text, summary_line

if TYPE_CHECKING:
    from driftguard.runner import GuardReport


class OutputFormat(StrEnum):
    TEXT = "text"
    JSON = "json"


def print_report(
    report: GuardReport,
    console: Console,
    output_format: OutputFormat | str = OutputFormat.TEXT,
    title: str = "driftguard",
) -> None:
    """Write a report to the console in the requested format."""
    if OutputFormat(output_format) == OutputFormat.JSON:
        console.out(format_json(report), highlight=False)
    else:
        render_text(report, console, title=title)


__all__ = ["OutputFormat", "format_json", "print_report", "render_text", "summary_line"]
