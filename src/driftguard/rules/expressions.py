"""
Token-level helpers for PromQL/LogQL expressions.

These are lexical approximations: they find identifiers and selector labels
without parsing the query language.
"""

from __future__ import annotations

import re
from typing import Iterable

QUOTED_PATTERN = re.compile(r'"(?:\\.|[^"\\])*"|\'(?:\\.|[^\'\\])*\'|`[^`]*`')
IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_:][A-Za-z0-9_:]*")
TEMPLATE_VAR_PATTERN = re.compile(r"\$\{[^}]*\}")
SELECTOR_PATTERN = re.compile(r"\{([^{}]*)\}")
MATCHER_PATTERN = re.compile(r"([A-Za-z_][A-Za-z0-9_]*)\s*(?:=~|!~|!=|=)")


def strip_quoted(expr: str) -> str:
    """Replace string literals with empty quotes."""
    return QUOTED_PATTERN.sub('""', expr)


def identifiers(expr: str) -> set[str]:
    """Every identifier-shaped token in the expression, quoted text included."""
    return set(IDENTIFIER_PATTERN.findall(expr))


def prefixed_metric_tokens(expr: str, prefixes: Iterable[str]) -> list[str]:
    """Identifiers outside string literals that start with ``<prefix>_``."""
    prefixes = sorted(prefixes)
    if not prefixes:
        return []
    alternation = "|".join(re.escape(p) for p in prefixes)
    pattern = re.compile(rf"(?<![A-Za-z0-9_:$])(?:{alternation})_[A-Za-z0-9_:]+")
    seen: list[str] = []
    for token in pattern.findall(strip_quoted(expr)):
        if token not in seen:
            seen.append(token)
    return seen


def selector_labels(expr: str) -> list[str]:
    """Label names used in ``{label="v", other=~"re"}`` selectors, in order of use."""
    expr = TEMPLATE_VAR_PATTERN.sub("$var", strip_quoted(expr))
    labels: list[str] = []
    for selector in SELECTOR_PATTERN.findall(expr):
        for label in MATCHER_PATTERN.findall(selector):
            if label not in labels:
                labels.append(label)
    return labels
