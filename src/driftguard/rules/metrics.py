"""
Rules joining service metric definitions with the registry, dashboards,
the catalog and histogram bucket registrations.
"""

from __future__ import annotations

import re

from driftguard.models import ArtifactKind, Severity, Violation, strip_histogram_suffix
from driftguard.rules.base import BaseRule
from driftguard.rules.expressions import identifiers, prefixed_metric_tokens
from driftguard.store import EntityStore

APPLICATION_METRICS = "application-metrics"


def similar_metrics(name: str, known: frozenset[str], limit: int = 3) -> list[str]:
    """Known metric names containing the stem of ``name`` (case-insensitive)."""
    stem = strip_histogram_suffix(name) or name
    stem = re.sub(r"_[^_]*$", "", stem).lower()
    if not stem:
        return []
    return sorted(m for m in known if stem in m.lower())[:limit]


class ServiceRegistrationRule(BaseRule):
    """Every service directory defining metrics must be in the registry."""

    name = "service-registration"
    description = "Metric-defining service directories are registered"
    group = APPLICATION_METRICS
    requires = frozenset({ArtifactKind.SOURCE})

    def validate(self, store: EntityStore) -> list[Violation]:
        if not store.has(ArtifactKind.SOURCE):
            return []

        violations = []
        for source in store.source_files:
            if store.registration_for_directory(source.service_directory) is None:
                violations.append(
                    self.violation(
                        source.path,
                        f"service directory '{source.service_directory}' defines metrics "
                        "but is not registered",
                        hint=(
                            f"add {{prefix, directory: {source.service_directory}, label}} "
                            "to the services registry"
                        ),
                    )
                )

        scanned = {s.service_directory for s in store.source_files}
        for service in store.services:
            if service.directory not in scanned:
                violations.append(
                    self.violation(
                        f"services[{service.prefix}]",
                        f"registered service '{service.label}' has no metrics file "
                        f"in directory '{service.directory}'",
                        severity=Severity.WARNING,
                        hint="remove the stale registration or fix its directory",
                    )
                )
        return violations


class MetricPrefixRule(BaseRule):
    """Metric names start with their service's registered prefix."""

    name = "metric-prefix"
    description = "Metric names use the owning service's prefix"
    group = APPLICATION_METRICS
    requires = frozenset({ArtifactKind.SOURCE})

    def validate(self, store: EntityStore) -> list[Violation]:
        violations = []
        for metric in store.metrics:
            service = store.registration_for_directory(metric.service_directory)
            if service is None or metric.owning_prefix == service.prefix:
                continue
            violations.append(
                self.violation(
                    metric.location,
                    f"metric '{metric.name}' must use prefix '{service.prefix}_' "
                    f"(service {service.label})",
                    hint=f"rename to '{service.prefix}_...'",
                )
            )
        return violations


class DashboardMetricExistsRule(BaseRule):
    """Service metrics queried by dashboards are defined in source."""

    name = "dashboard-metric-exists"
    description = "Dashboard queries reference defined metrics"
    group = APPLICATION_METRICS
    requires = frozenset({ArtifactKind.SOURCE, ArtifactKind.DASHBOARDS})

    def validate(self, store: EntityStore) -> list[Violation]:
        if not (store.has(ArtifactKind.SOURCE) and store.has(ArtifactKind.DASHBOARDS)):
            return []

        reported: set[tuple[str, str]] = set()
        violations = []
        for query in store.queries:
            if query.uses_backend(store.log_backend):
                continue
            for token in prefixed_metric_tokens(query.expr, store.prefixes):
                key = (query.dashboard_file, token)
                if key in reported or store.resolve_metric(token) is not None:
                    continue
                reported.add(key)
                similar = similar_metrics(token, store.metric_names)
                hint = (
                    f"similar metrics: {', '.join(similar)}"
                    if similar
                    else "define the metric in service source or fix the query"
                )
                violations.append(
                    self.violation(
                        query.location,
                        f"dashboard references undefined metric '{token}'",
                        hint=hint,
                    )
                )
        return violations


class DashboardCoverageRule(BaseRule):
    """Every defined metric is shown on at least one dashboard."""

    name = "dashboard-coverage"
    description = "Every defined metric is used by a dashboard"
    group = APPLICATION_METRICS
    requires = frozenset({ArtifactKind.SOURCE, ArtifactKind.DASHBOARDS})

    def validate(self, store: EntityStore) -> list[Violation]:
        if not store.has(ArtifactKind.DASHBOARDS):
            return []

        referenced: set[str] = set()
        for query in store.queries:
            for token in identifiers(query.expr):
                resolved = store.resolve_metric(token)
                if resolved is not None:
                    referenced.add(resolved)

        return [
            self.violation(
                metric.location,
                f"metric '{metric.name}' is not used in any dashboard",
                hint="add a dashboard panel that queries it",
            )
            for metric in store.metrics
            if metric.name not in referenced
        ]


class CatalogCoverageRule(BaseRule):
    """Every defined metric is documented in the catalog."""

    name = "catalog-coverage"
    description = "Every defined metric has a catalog entry"
    group = APPLICATION_METRICS
    requires = frozenset({ArtifactKind.SOURCE, ArtifactKind.CATALOG})

    def validate(self, store: EntityStore) -> list[Violation]:
        if not store.has(ArtifactKind.CATALOG):
            return []
        return [
            self.violation(
                metric.location,
                f"metric '{metric.name}' is not documented in the metric catalog",
                hint=f"add a '### `{metric.name}`' heading to the catalog",
            )
            for metric in store.metrics
            if metric.name not in store.documented_metrics
        ]


class HistogramBucketsRule(BaseRule):
    """Histograms have bucket boundaries registered in their own file."""

    name = "histogram-buckets"
    description = "Histograms have co-located bucket configuration"
    group = "histogram-buckets"
    requires = frozenset({ArtifactKind.SOURCE})

    def validate(self, store: EntityStore) -> list[Violation]:
        violations = []
        for metric in store.metrics:
            if metric.kind != "histogram":
                continue
            if any(b.matches(metric.name) for b in store.buckets_in_file(metric.defining_file)):
                continue

            elsewhere = sorted(
                {b.defining_file for b in store.bucket_configs if b.matches(metric.name)}
            )
            if elsewhere:
                hint = (
                    f"matching bucket config is in {', '.join(elsewhere)}; "
                    f"move it to {metric.defining_file}"
                )
            else:
                hint = (
                    f'add set_buckets_for_metric(Matcher::Prefix("{metric.name}"), ...) '
                    f"in {metric.defining_file}"
                )
            violations.append(
                self.violation(
                    metric.location,
                    f"histogram '{metric.name}' has no set_buckets_for_metric() "
                    "configuration in the same file",
                    hint=hint,
                )
            )
        return violations
