"""
Block-boundary resolution by brace-depth counting.

This is an approximation, not a parser: braces inside string literals or
comments are counted like any other brace and can shift a block boundary.
Enforcement is likewise matched anywhere on a line, so "assert" inside a
comment such as `/* no assertion */` marks the block as enforcing. The scan is bounded so malformed input always terminates.
"""

from __future__ import annotations

import re
from typing import Sequence

from driftguard.models import CodeBlock

MAX_BLOCK_LINES = 30

# assert!, assert_eq!, debug_assert!, panic!, unreachable!
ENFORCEMENT_PATTERN = re.compile(r"assert|panic!|unreachable!")

OPEN_BRACE = re.compile(r"(?<!\\)\{")
CLOSE_BRACE = re.compile(r"(?<!\\)\}")


def brace_delta(line: str) -> int:
    """Unescaped opening minus closing braces on one line."""
    return len(OPEN_BRACE.findall(line)) - len(CLOSE_BRACE.findall(line))


def has_enforcement(line: str) -> bool:
    return ENFORCEMENT_PATTERN.search(line) is not None


def resolve_block(
    lines: Sequence[str],
    start: int,
    file: str = "",
    max_lines: int = MAX_BLOCK_LINES,
) -> CodeBlock:
    """
    Resolve the extent of the block opened on ``lines[start]``.

    Scanning starts at the arm line itself and stops on the first line where
    the depth returns to zero, or after ``max_lines`` lines.

    Args:
        lines: File content split into lines
        start: 0-based index of the line that opens the block
        file: File path recorded on the result
        max_lines: Lookahead bound

    Returns:
        CodeBlock with 1-based start/end lines
    """
    depth = 0
    enforced = False
    end = start
    for end in range(start, min(len(lines), start + max_lines)):
        line = lines[end]
        depth += brace_delta(line)
        if has_enforcement(line):
            enforced = True
        if depth <= 0:
            break

    return CodeBlock(file=file, start_line=start + 1, end_line=end + 1, has_enforcement=enforced)
