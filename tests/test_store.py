"""Tests for the entity store."""

from driftguard.extractors.base import ExtractionResult
from driftguard.models import (
    ArtifactKind,
    BucketConfig,
    DashboardQuery,
    Metric,
    MetricKind,
    ServiceRegistration,
)
from driftguard.store import EntityStore, build_store


def _metric(name, kind=MetricKind.COUNTER, file="m.rs"):
    return Metric(name, kind, file, 1, "ac-service")


class TestBuildStore:
    """Test store population from extraction results."""

    def test_collects_entities_by_type(self):
        source = ExtractionResult(
            extractor="source",
            kind=ArtifactKind.SOURCE,
            entities=[_metric("ac_a_total"), BucketConfig("ac_b", "m.rs", 2)],
        )
        dashboards = ExtractionResult(
            extractor="dashboards",
            kind=ArtifactKind.DASHBOARDS,
            entities=[DashboardQuery("ac_a_total", "d.json", "panels[0].targets[0]")],
        )
        store = build_store(
            [source, dashboards],
            services=[ServiceRegistration("ac", "ac-service", "ac")],
        )

        assert store.metric_names == frozenset({"ac_a_total"})
        assert len(store.bucket_configs) == 1
        assert len(store.queries) == 1
        assert store.prefixes == ("ac",)
        assert store.available == frozenset({ArtifactKind.SOURCE, ArtifactKind.DASHBOARDS})

    def test_unavailable_results_not_marked_available(self):
        catalog = ExtractionResult(extractor="catalog", kind=ArtifactKind.CATALOG)
        catalog.skip("metric catalog not found: docs")
        store = build_store([catalog])
        assert not store.has(ArtifactKind.CATALOG)

    def test_exempt_labels_and_backends(self):
        store = build_store([], log_backend="logs", exempt_log_labels=["level", "stream"])
        assert store.log_backend == "logs"
        assert store.exempt_log_labels == frozenset({"level", "stream"})


class TestEntityStoreLookups:
    """Test joins on the store."""

    def test_resolve_metric_honors_histogram_suffixes(self):
        store = EntityStore(
            metrics=(_metric("ac_latency_seconds", MetricKind.HISTOGRAM), _metric("ac_x_count"))
        )
        assert store.resolve_metric("ac_latency_seconds") == "ac_latency_seconds"
        assert store.resolve_metric("ac_latency_seconds_bucket") == "ac_latency_seconds"
        assert store.resolve_metric("ac_latency_seconds_sum") == "ac_latency_seconds"
        # a real metric ending in a suffix resolves to itself
        assert store.resolve_metric("ac_x_count") == "ac_x_count"
        assert store.resolve_metric("ac_unknown_total") is None

    def test_buckets_in_file(self):
        store = EntityStore(
            bucket_configs=(BucketConfig("ac_a", "a.rs", 1), BucketConfig("ac_b", "b.rs", 1))
        )
        assert [b.matched_prefix for b in store.buckets_in_file("b.rs")] == ["ac_b"]

    def test_queries_split_by_backend(self):
        prom = DashboardQuery("up", "d.json", "p", datasource_type="prometheus")
        loki = DashboardQuery('{app="x"}', "d.json", "q", datasource_uid="loki")
        unknown = DashboardQuery("up", "d.json", "r")
        store = EntityStore(queries=(prom, loki, unknown))
        assert store.metric_queries() == [prom]
        assert store.log_queries() == [loki]

    def test_registration_for_directory(self):
        registration = ServiceRegistration("gc", "gc-service", "Global Controller")
        store = EntityStore(services=(registration,))
        assert store.registration_for_directory("gc-service") is registration
        assert store.registration_for_directory("mc-service") is None
