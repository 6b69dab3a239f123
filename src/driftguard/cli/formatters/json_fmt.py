"""
JSON output formatter.

Produces structured JSON output for machine consumption. The document carries
no timestamps, so an unchanged tree yields byte-identical output.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from driftguard.runner import GuardReport


def format_json(report: GuardReport) -> str:
    """
    Format a guard report as JSON.

    Output structure:
    {
        "version": "1.0",
        "root": "/path/to/repo",
        "checks": [...],
        "violations": [{"check", "severity", "location", "message", "hint"}, ...],
        "notices": [...],
        "failures": [{"path", "reason"}, ...],
        "summary": {"errors", "warnings", "info", "checks", "exit_code"}
    }
    """
    output = {"version": "1.0", **report.to_dict()}
    return json.dumps(output, indent=2, sort_keys=True)
