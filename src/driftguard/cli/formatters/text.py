"""
Human-readable report: one finding per line with a severity tag, a hint line,
and a single machine-countable summary line at the end.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

from driftguard.models import Severity

if TYPE_CHECKING:
    from driftguard.runner import GuardReport

SEVERITY_STYLES = {
    Severity.ERROR: "error",
    Severity.WARNING: "warning",
    Severity.INFO: "info",
}


def summary_line(report: GuardReport) -> str:
    return (
        f"Summary: {report.error_count} error(s), {report.warning_count} warning(s), "
        f"{report.info_count} info across {len(report.checks)} check(s)"
    )


def render_text(report: GuardReport, console: Console, title: str = "driftguard") -> None:
    """Print the full report. Violations always precede the summary."""

    def emit(markup: str = "") -> None:
        console.print(markup, soft_wrap=True, highlight=False, emoji=False)

    emit(f"[bold]{escape(title)}[/bold] [muted]{escape(report.root)}[/muted]")
    emit()

    for notice in report.notices:
        emit(f"[muted]SKIP {escape(notice)}[/muted]")
    if report.notices:
        emit()

    for check, violations in report.by_check().items():
        emit(f"[highlight]{escape(check)}[/highlight] ({len(violations)})")
        for violation in violations:
            style = SEVERITY_STYLES[violation.severity]
            tag = escape(f"[{violation.severity.value.upper()}]")
            emit(
                f"  [{style}]{tag}[/{style}] "
                f"{escape(violation.location)}: {escape(violation.message)}"
            )
            if violation.hint:
                emit(f"      -> {escape(violation.hint)}")
        emit()

    if report.failures:
        emit("[error]Tooling failures[/error]")
        for failure in report.failures:
            tag = escape("[FAILURE]")
            emit(f"  [error]{tag}[/error] {escape(failure.path)}: {escape(failure.reason)}")
        emit()

    if not report.violations and not report.failures:
        emit("[success]No violations found[/success]")

    emit(summary_line(report))
