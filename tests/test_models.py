"""Tests for the canonical entity model."""

from driftguard.models import (
    BucketConfig,
    DashboardQuery,
    Metric,
    MetricKind,
    Severity,
    Violation,
    strip_histogram_suffix,
)


class TestMetric:
    """Test Metric derived fields."""

    def test_owning_prefix_is_text_before_first_underscore(self):
        metric = Metric(
            name="ac_token_issuance_total",
            kind=MetricKind.COUNTER,
            defining_file="crates/ac-service/src/observability/metrics.rs",
            defining_line=12,
            service_directory="ac-service",
        )
        assert metric.owning_prefix == "ac"
        assert metric.location == "crates/ac-service/src/observability/metrics.rs:12"

    def test_name_without_underscore(self):
        metric = Metric("up", MetricKind.GAUGE, "m.rs", 1, "svc")
        assert metric.owning_prefix == "up"


class TestHistogramSuffix:
    """Test histogram suffix handling."""

    def test_strips_known_suffixes(self):
        assert strip_histogram_suffix("foo_bucket") == "foo"
        assert strip_histogram_suffix("foo_count") == "foo"
        assert strip_histogram_suffix("foo_sum") == "foo"

    def test_returns_none_for_plain_names(self):
        assert strip_histogram_suffix("foo_total") is None
        assert strip_histogram_suffix("_bucket") is None


class TestBucketConfig:
    """Test BucketConfig prefix matching."""

    def test_prefix_match_not_equality(self):
        bucket = BucketConfig("ac_token_issuance", "metrics.rs", 7)
        assert bucket.matches("ac_token_issuance_duration_seconds")
        assert not bucket.matches("ac_key_rotation_duration_seconds")


class TestDashboardQuery:
    """Test DashboardQuery helpers."""

    def test_uses_backend_by_type_or_uid(self):
        by_type = DashboardQuery("up", "d.json", "panels[0].targets[0]", datasource_type="loki")
        by_uid = DashboardQuery("up", "d.json", "panels[0].targets[0]", datasource_uid="loki")
        neither = DashboardQuery("up", "d.json", "panels[0].targets[0]")
        assert by_type.uses_backend("loki")
        assert by_uid.uses_backend("loki")
        assert not neither.uses_backend("loki")

    def test_location_includes_panel_ref_and_path(self):
        query = DashboardQuery(
            "up",
            "infra/grafana/dashboards/gc.json",
            "panels[1].panels[0].targets[0]",
            panel_id=7,
            panel_title="Latency",
            ref_id="B",
        )
        assert query.location == (
            "infra/grafana/dashboards/gc.json panel 7 (Latency) refId=B "
            "[panels[1].panels[0].targets[0]]"
        )

    def test_location_without_panel(self):
        query = DashboardQuery("up", "d.json", "annotations.list[0]")
        assert query.location == "d.json [annotations.list[0]]"


class TestViolation:
    """Test Violation ordering and serialization."""

    def test_severity_flags(self):
        assert Violation("c", "l", "m").is_error
        assert Violation("c", "l", "m", severity=Severity.WARNING).is_warning
        assert Violation("c", "l", "m", severity=Severity.INFO).is_info

    def test_total_ordering(self):
        violations = [
            Violation("b", "x.rs:1", "m"),
            Violation("a", "y.rs:1", "m"),
            Violation("a", "x.rs:2", "m"),
        ]
        assert sorted(violations) == [
            Violation("a", "x.rs:2", "m"),
            Violation("a", "y.rs:1", "m"),
            Violation("b", "x.rs:1", "m"),
        ]

    def test_to_dict(self):
        violation = Violation(
            "metric-prefix", "m.rs:3", "bad", severity=Severity.WARNING, hint="fix"
        )
        assert violation.to_dict() == {
            "check": "metric-prefix",
            "severity": "warning",
            "location": "m.rs:3",
            "message": "bad",
            "hint": "fix",
        }

    def test_severity_rank(self):
        assert Severity.ERROR.rank < Severity.WARNING.rank < Severity.INFO.rank
