"""
Reporter/driver: runs extractors, builds the store, runs the selected rules
and detectors, and computes the exit status.

Severity policy and exit-code computation live here and nowhere else.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from driftguard.analyzer import TestRigidityAnalyzer
from driftguard.analyzer.detectors import BaseDetector, default_detectors
from driftguard.config.guard import GuardConfig
from driftguard.core.errors import ConfigurationError, ExitCode
from driftguard.extractors import get_extractors
from driftguard.extractors.base import ExtractionFailure
from driftguard.logging import bind_context
from driftguard.models import ArtifactKind, Violation
from driftguard.rules import BaseRule, default_rules
from driftguard.store import build_store

Check = BaseRule | BaseDetector

GROUPS = (
    "application-metrics",
    "histogram-buckets",
    "grafana-datasources",
    "infrastructure-metrics",
    "test-rigidity",
)


def all_checks() -> list[Check]:
    """Every rule and detector, in reporting order."""
    return [*default_rules(), *default_detectors()]


def check_names() -> list[str]:
    return [c.name for c in all_checks()]


def select_checks(
    only: Iterable[str] | None = None,
    skip: Iterable[str] | None = None,
    groups: Iterable[str] | None = None,
) -> list[str]:
    """
    Resolve check selection to an ordered list of check names.

    ``only`` and ``groups`` narrow the selection, ``skip`` removes from it.
    Unknown names are a configuration error.
    """
    checks = all_checks()
    known = [c.name for c in checks]

    only = list(only or [])
    skip = list(skip or [])
    groups = list(groups or [])

    unknown = sorted({n for n in only + skip if n not in known})
    if unknown:
        raise ConfigurationError("Unknown check", {"checks": ",".join(unknown)})
    unknown_groups = sorted(set(groups) - set(GROUPS))
    if unknown_groups:
        raise ConfigurationError("Unknown check group", {"groups": ",".join(unknown_groups)})

    selected = [
        c.name
        for c in checks
        if (not only or c.name in only)
        and (not groups or c.group in groups)
        and c.name not in skip
    ]
    return selected


def _natural_key(text: str) -> list[Any]:
    return [int(part) if part.isdigit() else part for part in re.split(r"(\d+)", text)]


@dataclass
class GuardReport:
    """Outcome of one run."""

    root: str
    checks: list[str] = field(default_factory=list)
    violations: list[Violation] = field(default_factory=list)
    notices: list[str] = field(default_factory=list)
    failures: list[ExtractionFailure] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(1 for v in self.violations if v.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for v in self.violations if v.is_warning)

    @property
    def info_count(self) -> int:
        return sum(1 for v in self.violations if v.is_info)

    @property
    def passed(self) -> bool:
        return self.exit_code == ExitCode.SUCCESS

    @property
    def exit_code(self) -> ExitCode:
        if self.failures:
            return ExitCode.TOOLING_FAILURE
        if self.error_count:
            return ExitCode.VIOLATIONS
        return ExitCode.SUCCESS

    def by_check(self) -> dict[str, list[Violation]]:
        grouped: dict[str, list[Violation]] = {}
        for violation in self.violations:
            grouped.setdefault(violation.check, []).append(violation)
        return grouped

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self.root,
            "checks": list(self.checks),
            "violations": [v.to_dict() for v in self.violations],
            "notices": list(self.notices),
            "failures": [f.to_dict() for f in self.failures],
            "summary": {
                "errors": self.error_count,
                "warnings": self.warning_count,
                "info": self.info_count,
                "checks": len(self.checks),
                "exit_code": int(self.exit_code),
            },
        }


class GuardRunner:
    """Single pass: extract, build store, validate, analyze."""

    def __init__(self, root: Path, config: GuardConfig):
        if not root.is_dir():
            raise ConfigurationError("Root is not a directory", {"root": str(root)})
        self.root = root
        self.config = config

    def run(self, checks: Iterable[str] | None = None) -> GuardReport:
        names = check_names()
        wanted = set(checks) if checks is not None else set(names)
        selected = [name for name in names if name in wanted]
        order = {name: index for index, name in enumerate(names)}
        rules = [r for r in default_rules() if r.name in wanted]
        detectors = [d for d in default_detectors() if d.name in wanted]

        report = GuardReport(root=self.root.as_posix(), checks=selected)
        log = bind_context(root=report.root)

        required: set[ArtifactKind] = set()
        for rule in rules:
            required |= rule.requires

        results = []
        for extractor in get_extractors(required, self.config):
            result = extractor.extract(self.root)
            log.debug(
                "extractor_completed",
                extractor=extractor.name,
                available=result.available,
                entities=len(result.entities),
            )
            results.append(result)
            report.notices.extend(result.notices)
            report.failures.extend(result.failures)

        store = build_store(
            results,
            services=self.config.services,
            log_backend=self.config.backends.logs,
            metrics_backend=self.config.backends.metrics,
            exempt_log_labels=self.config.exempt_log_labels,
        )

        for rule in rules:
            try:
                found = rule.validate(store)
            except Exception as e:
                log.error("rule_failed", rule=rule.name, error=str(e))
                report.failures.append(
                    ExtractionFailure(path=f"rule:{rule.name}", reason=f"internal error: {e}")
                )
                continue
            log.debug("rule_completed", rule=rule.name, violations=len(found))
            report.violations.extend(found)

        if detectors:
            analysis = TestRigidityAnalyzer(self.config, detectors).analyze(self.root)
            report.notices.extend(analysis.notices)
            report.failures.extend(analysis.failures)
            report.violations.extend(analysis.violations)

        report.violations.sort(
            key=lambda v: (order[v.check], _natural_key(v.location), v.message)
        )
        report.failures.sort(key=lambda f: (f.path, f.reason))

        log.info(
            "run_completed",
            checks=len(selected),
            errors=report.error_count,
            warnings=report.warning_count,
            failures=len(report.failures),
        )
        return report
