"""
Entity store.

Read-only after construction: ``build_store`` is the barrier between
extraction and validation, rules only ever see a fully populated store.
All joins are on plain string keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Iterable

from driftguard.extractors.base import ExtractionResult
from driftguard.models import (
    ArtifactKind,
    BucketConfig,
    CatalogEntry,
    DashboardQuery,
    DatasourceDefinition,
    DatasourceReference,
    LogLabel,
    Metric,
    MetricLabel,
    MetricSourceFile,
    ServiceRegistration,
    TemplateVariable,
    strip_histogram_suffix,
)


@dataclass(frozen=True)
class EntityStore:
    """All canonical entities of one run."""

    services: tuple[ServiceRegistration, ...] = ()
    source_files: tuple[MetricSourceFile, ...] = ()
    metrics: tuple[Metric, ...] = ()
    bucket_configs: tuple[BucketConfig, ...] = ()
    queries: tuple[DashboardQuery, ...] = ()
    datasource_references: tuple[DatasourceReference, ...] = ()
    template_variables: tuple[TemplateVariable, ...] = ()
    datasources: tuple[DatasourceDefinition, ...] = ()
    log_labels: tuple[LogLabel, ...] = ()
    metric_labels: tuple[MetricLabel, ...] = ()
    catalog_entries: tuple[CatalogEntry, ...] = ()
    available: frozenset[ArtifactKind] = frozenset()
    log_backend: str = "loki"
    metrics_backend: str = "prometheus"
    exempt_log_labels: frozenset[str] = frozenset({"level"})

    def has(self, kind: ArtifactKind) -> bool:
        """True if the artifact class was present for this run."""
        return kind in self.available

    @cached_property
    def metric_names(self) -> frozenset[str]:
        return frozenset(m.name for m in self.metrics)

    @cached_property
    def prefixes(self) -> tuple[str, ...]:
        return tuple(sorted(s.prefix for s in self.services))

    def registration_for_directory(self, directory: str) -> ServiceRegistration | None:
        for service in self.services:
            if service.directory == directory:
                return service
        return None

    def resolve_metric(self, name: str) -> str | None:
        """Known metric name for ``name``, honoring histogram suffixes."""
        if name in self.metric_names:
            return name
        base = strip_histogram_suffix(name)
        if base is not None and base in self.metric_names:
            return base
        return None

    def buckets_in_file(self, path: str) -> list[BucketConfig]:
        return [b for b in self.bucket_configs if b.defining_file == path]

    @cached_property
    def log_label_names(self) -> frozenset[str]:
        return frozenset(label.name for label in self.log_labels)

    @cached_property
    def metric_label_names(self) -> frozenset[str]:
        return frozenset(label.name for label in self.metric_labels)

    @cached_property
    def datasource_uids(self) -> frozenset[str]:
        return frozenset(d.uid for d in self.datasources)

    @cached_property
    def documented_metrics(self) -> frozenset[str]:
        return frozenset(e.metric_name for e in self.catalog_entries)

    def log_queries(self) -> list[DashboardQuery]:
        return [q for q in self.queries if q.uses_backend(self.log_backend)]

    def metric_queries(self) -> list[DashboardQuery]:
        return [q for q in self.queries if q.uses_backend(self.metrics_backend)]


def build_store(
    results: Iterable[ExtractionResult],
    services: Iterable[ServiceRegistration] = (),
    log_backend: str = "loki",
    metrics_backend: str = "prometheus",
    exempt_log_labels: Iterable[str] = ("level",),
) -> EntityStore:
    """Populate an EntityStore from extraction results."""
    results = list(results)
    available = frozenset(r.kind for r in results if r.available)

    def collect(entity_type):
        return tuple(e for r in results for e in r.of_type(entity_type))

    return EntityStore(
        services=tuple(services),
        source_files=collect(MetricSourceFile),
        metrics=collect(Metric),
        bucket_configs=collect(BucketConfig),
        queries=collect(DashboardQuery),
        datasource_references=collect(DatasourceReference),
        template_variables=collect(TemplateVariable),
        datasources=collect(DatasourceDefinition),
        log_labels=collect(LogLabel),
        metric_labels=collect(MetricLabel),
        catalog_entries=collect(CatalogEntry),
        available=available,
        log_backend=log_backend,
        metrics_backend=metrics_backend,
        exempt_log_labels=frozenset(exempt_log_labels),
    )
