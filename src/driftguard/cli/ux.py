"""
CLI output utilities built on rich.

Environment handling:
- Respects NO_COLOR and FORCE_COLOR environment variables
- Plain text when stdout is not a terminal (CI logs, pipes)
"""

from __future__ import annotations

import os

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

# Nord color palette (https://www.nordtheme.com/)
DRIFTGUARD_THEME = Theme(
    {
        "info": "#88C0D0",  # Nord frost - light blue
        "success": "#A3BE8C",  # Nord aurora - green
        "warning": "#EBCB8B",  # Nord aurora - yellow
        "error": "#BF616A bold",  # Nord aurora - red
        "highlight": "#B48EAD",  # Nord aurora - purple
        "muted": "#D8DEE9",  # Nord snow storm - light grey
    }
)

console = Console(
    theme=DRIFTGUARD_THEME,
    force_terminal=os.environ.get("FORCE_COLOR") is not None,
    no_color=os.environ.get("NO_COLOR") is not None,
)


def error(message: str) -> None:
    """Print an error message."""
    console.print(f"[error]✗ {escape(message)}[/error]", soft_wrap=True)


def print_table(
    title: str,
    columns: list[str],
    rows: list[list[str]],
    show_header: bool = True,
) -> None:
    """Print a formatted table."""
    table = Table(title=title, show_header=show_header)

    for col in columns:
        table.add_column(col)

    for row in rows:
        table.add_row(*[escape(cell) for cell in row])

    console.print(table)
