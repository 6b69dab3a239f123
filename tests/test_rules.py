"""Tests for the consistency rules."""

from driftguard.models import (
    ArtifactKind,
    BucketConfig,
    CatalogEntry,
    DashboardQuery,
    DatasourceDefinition,
    DatasourceReference,
    LogLabel,
    Metric,
    MetricKind,
    MetricLabel,
    MetricSourceFile,
    ServiceRegistration,
    Severity,
    TemplateVariable,
)
from driftguard.rules import (
    CatalogCoverageRule,
    DashboardCoverageRule,
    DashboardMetricExistsRule,
    DatasourceUidRule,
    HistogramBucketsRule,
    LogLabelRule,
    MetricLabelRule,
    MetricPrefixRule,
    ServiceRegistrationRule,
    TargetQueryFieldsRule,
    TemplateVariableRule,
    default_rules,
)
from driftguard.rules.expressions import prefixed_metric_tokens, selector_labels
from driftguard.rules.metrics import similar_metrics
from driftguard.store import EntityStore

AC = ServiceRegistration("ac", "ac-service", "ac-service")
METRICS_FILE = "crates/ac-service/src/observability/metrics.rs"

ALL_ARTIFACTS = frozenset(
    {
        ArtifactKind.SOURCE,
        ArtifactKind.DASHBOARDS,
        ArtifactKind.DATASOURCES,
        ArtifactKind.LOG_PIPELINE,
        ArtifactKind.METRICS_PIPELINE,
        ArtifactKind.CATALOG,
    }
)


def metric(name, kind=MetricKind.COUNTER, line=1, file=METRICS_FILE, directory="ac-service"):
    return Metric(name, kind, file, line, directory)


def prom_query(expr, **kwargs):
    kwargs.setdefault("json_path", "panels[0].targets[0]")
    return DashboardQuery(
        expr=expr,
        dashboard_file=kwargs.pop("dashboard_file", "d.json"),
        datasource_type="prometheus",
        datasource_uid="prometheus",
        **kwargs,
    )


def loki_query(expr, **kwargs):
    kwargs.setdefault("json_path", "panels[0].targets[0]")
    return DashboardQuery(
        expr=expr,
        dashboard_file=kwargs.pop("dashboard_file", "d.json"),
        datasource_type="loki",
        datasource_uid="loki",
        **kwargs,
    )


def store(**kwargs):
    kwargs.setdefault("services", (AC,))
    kwargs.setdefault("available", ALL_ARTIFACTS)
    return EntityStore(**kwargs)


class TestExpressions:
    """Test lexical query helpers."""

    def test_prefixed_tokens_ignore_quoted_text(self):
        expr = 'sum(rate(ac_requests_total{job="ac_fake"}[5m])) / ac_requests_total'
        assert prefixed_metric_tokens(expr, ["ac"]) == ["ac_requests_total"]

    def test_prefixed_tokens_require_token_boundary(self):
        expr = "rate(mac_requests_total[5m]) + $ac_var + gc_up"
        assert prefixed_metric_tokens(expr, ["ac", "gc"]) == ["gc_up"]

    def test_selector_labels(self):
        expr = 'sum by (pod) (rate({app="x", level=~"err.*", ns!="${ns}"} |= "{a=b}" [5m]))'
        assert selector_labels(expr) == ["app", "level", "ns"]

    def test_selector_labels_with_template_variables(self):
        assert selector_labels('{app=~"$app", pod=~"${pod:regex}"}') == ["app", "pod"]

    def test_similar_metrics(self):
        known = frozenset({"ac_token_issued_total", "ac_token_failed_total", "gc_up"})
        assert similar_metrics("ac_token_issuance_total", known) == []
        assert similar_metrics("ac_token_total", known) == [
            "ac_token_failed_total",
            "ac_token_issued_total",
        ]


class TestServiceRegistrationRule:
    """Test registry completeness."""

    def test_unregistered_directory(self):
        rule = ServiceRegistrationRule()
        violations = rule.validate(
            store(
                source_files=(
                    MetricSourceFile(METRICS_FILE, "ac-service"),
                    MetricSourceFile(
                        "crates/mc-service/src/observability/metrics.rs", "mc-service"
                    ),
                )
            )
        )
        assert len(violations) == 1
        assert violations[0].check == "service-registration"
        assert violations[0].location == "crates/mc-service/src/observability/metrics.rs"
        assert violations[0].is_error

    def test_stale_registration_is_warning(self):
        rule = ServiceRegistrationRule()
        gc = ServiceRegistration("gc", "gc-service", "gc-service")
        violations = rule.validate(
            store(services=(AC, gc), source_files=(MetricSourceFile(METRICS_FILE, "ac-service"),))
        )
        assert len(violations) == 1
        assert violations[0].location == "services[gc]"
        assert violations[0].severity == Severity.WARNING

    def test_source_unavailable(self):
        rule = ServiceRegistrationRule()
        assert rule.validate(store(available=frozenset())) == []


class TestMetricPrefixRule:
    """Test metric naming."""

    def test_wrong_prefix(self):
        violations = MetricPrefixRule().validate(
            store(metrics=(metric("ac_ok_total"), metric("auth_tokens_total", line=9)))
        )
        assert len(violations) == 1
        assert violations[0].location == f"{METRICS_FILE}:9"
        assert violations[0].message == (
            "metric 'auth_tokens_total' must use prefix 'ac_' (service ac-service)"
        )

    def test_unregistered_directory_not_reported_here(self):
        violations = MetricPrefixRule().validate(
            store(metrics=(metric("x_total", directory="mc-service"),))
        )
        assert violations == []


class TestDashboardMetricExistsRule:
    """Test dashboard references to undefined metrics."""

    def test_undefined_metric_with_similar_hint(self):
        violations = DashboardMetricExistsRule().validate(
            store(
                metrics=(metric("ac_token_requests_total"),),
                queries=(prom_query("rate(ac_token_total[5m])", panel_id=2, panel_title="Rate"),),
            )
        )
        assert len(violations) == 1
        assert violations[0].message == "dashboard references undefined metric 'ac_token_total'"
        assert violations[0].location == "d.json panel 2 (Rate) [panels[0].targets[0]]"
        assert violations[0].hint == "similar metrics: ac_token_requests_total"

    def test_reported_once_per_dashboard(self):
        violations = DashboardMetricExistsRule().validate(
            store(
                queries=(
                    prom_query("ac_gone_total", json_path="panels[0].targets[0]"),
                    prom_query("ac_gone_total", json_path="panels[1].targets[0]"),
                    prom_query("ac_gone_total", dashboard_file="e.json"),
                )
            )
        )
        assert [(v.location.split()[0]) for v in violations] == ["d.json", "e.json"]

    def test_histogram_suffix_resolves(self):
        violations = DashboardMetricExistsRule().validate(
            store(
                metrics=(metric("ac_latency_seconds", MetricKind.HISTOGRAM),),
                queries=(prom_query("rate(ac_latency_seconds_bucket[5m])"),),
            )
        )
        assert violations == []

    def test_histogram_suffix_without_base_metric(self):
        violations = DashboardMetricExistsRule().validate(
            store(
                metrics=(metric("ac_foo_bucket_total"),),
                queries=(prom_query("rate(ac_foo_bucket[5m])"),),
            )
        )
        assert [v.message for v in violations] == [
            "dashboard references undefined metric 'ac_foo_bucket'"
        ]

    def test_log_queries_and_foreign_names_ignored(self):
        violations = DashboardMetricExistsRule().validate(
            store(
                queries=(
                    loki_query('{app="ac-service"} |= "ac_missing_total"'),
                    loki_query("count_over_time(ac_fake_total[5m])"),
                    prom_query("process_cpu_seconds_total + up"),
                )
            )
        )
        assert violations == []

    def test_requires_source_and_dashboards(self):
        violations = DashboardMetricExistsRule().validate(
            store(
                available=frozenset({ArtifactKind.DASHBOARDS}),
                queries=(prom_query("ac_gone_total"),),
            )
        )
        assert violations == []


class TestDashboardCoverageRule:
    """Test that metrics appear on a dashboard."""

    def test_unused_metric(self):
        violations = DashboardCoverageRule().validate(
            store(
                metrics=(
                    metric("ac_used_total", line=1),
                    metric("ac_latency_seconds", MetricKind.HISTOGRAM, line=2),
                    metric("ac_unused_total", line=3),
                ),
                queries=(
                    prom_query("ac_used_total"),
                    prom_query("histogram_quantile(0.9, ac_latency_seconds_bucket)"),
                ),
            )
        )
        assert [v.location for v in violations] == [f"{METRICS_FILE}:3"]
        assert violations[0].message == "metric 'ac_unused_total' is not used in any dashboard"

    def test_count_suffix_covers_histogram(self):
        violations = DashboardCoverageRule().validate(
            store(
                metrics=(metric("ac_latency_seconds", MetricKind.HISTOGRAM),),
                queries=(prom_query("rate(ac_latency_seconds_count[5m])"),),
            )
        )
        assert violations == []

    def test_dashboards_unavailable(self):
        violations = DashboardCoverageRule().validate(
            store(
                available=frozenset({ArtifactKind.SOURCE}),
                metrics=(metric("ac_unused_total"),),
            )
        )
        assert violations == []


class TestCatalogCoverageRule:
    """Test that metrics are documented."""

    def test_undocumented_metric(self):
        violations = CatalogCoverageRule().validate(
            store(
                metrics=(metric("ac_a_total"), metric("ac_b_total", line=2)),
                catalog_entries=(CatalogEntry("ac_a_total", "docs/ac.md", 3),),
            )
        )
        assert len(violations) == 1
        assert "ac_b_total" in violations[0].message

    def test_catalog_unavailable(self):
        violations = CatalogCoverageRule().validate(
            store(available=frozenset({ArtifactKind.SOURCE}), metrics=(metric("ac_a_total"),))
        )
        assert violations == []


class TestHistogramBucketsRule:
    """Test co-located bucket configuration."""

    def test_missing_bucket_config(self):
        violations = HistogramBucketsRule().validate(
            store(metrics=(metric("ac_latency_seconds", MetricKind.HISTOGRAM, line=4),))
        )
        assert len(violations) == 1
        assert violations[0].location == f"{METRICS_FILE}:4"
        assert "set_buckets_for_metric" in violations[0].hint

    def test_bucket_config_in_other_file(self):
        violations = HistogramBucketsRule().validate(
            store(
                metrics=(metric("ac_latency_seconds", MetricKind.HISTOGRAM),),
                bucket_configs=(BucketConfig("ac_latency", "crates/ac-service/src/main.rs", 10),),
            )
        )
        assert len(violations) == 1
        assert "crates/ac-service/src/main.rs" in violations[0].hint

    def test_prefix_in_same_file_satisfies(self):
        violations = HistogramBucketsRule().validate(
            store(
                metrics=(
                    metric("ac_latency_seconds", MetricKind.HISTOGRAM),
                    metric("ac_requests_total"),
                ),
                bucket_configs=(BucketConfig("ac_latency", METRICS_FILE, 10),),
            )
        )
        assert violations == []


class TestDatasourceUidRule:
    """Test datasource UID references."""

    def test_undefined_uid_reported_once_per_dashboard(self):
        violations = DatasourceUidRule().validate(
            store(
                datasources=(DatasourceDefinition("prometheus", "ds.yaml"),),
                datasource_references=(
                    DatasourceReference("prometheus", "d.json", "panels[0].datasource"),
                    DatasourceReference("prom-old", "d.json", "panels[1].datasource"),
                    DatasourceReference("prom-old", "d.json", "panels[2].datasource"),
                ),
            )
        )
        assert len(violations) == 1
        assert violations[0].location == "d.json [panels[1].datasource]"
        assert violations[0].hint == "defined UIDs: prometheus"

    def test_requires_datasources(self):
        violations = DatasourceUidRule().validate(
            store(
                available=frozenset({ArtifactKind.DASHBOARDS}),
                datasource_references=(DatasourceReference("x", "d.json", "datasource"),),
            )
        )
        assert violations == []


class TestLogLabelRule:
    """Test log query labels against the log pipeline."""

    LABELS = (LogLabel("app", "p.yaml"), LogLabel("namespace", "p.yaml"))

    def test_unknown_label_grouped_by_dashboard(self):
        violations = LogLabelRule().validate(
            store(
                log_labels=self.LABELS,
                queries=(
                    loki_query('{app="x", job="y"}', panel_id=1, panel_title="Logs"),
                    loki_query('{job="z"}', panel_id=1, panel_title="Logs"),
                ),
                template_variables=(
                    TemplateVariable("app", "d.json", queried_label="app", stream='{job="a"}'),
                ),
            )
        )
        assert len(violations) == 1
        assert violations[0].location == "d.json"
        assert violations[0].message == (
            "log query uses label 'job' not produced by the log pipeline "
            "(used in: panel 1 (Logs), variable app)"
        )
        assert violations[0].hint == "valid labels: app, namespace"

    def test_exempt_label(self):
        violations = LogLabelRule().validate(
            store(log_labels=self.LABELS, queries=(loki_query('{app="x", level="error"}'),))
        )
        assert violations == []

    def test_metric_queries_ignored(self):
        violations = LogLabelRule().validate(
            store(log_labels=self.LABELS, queries=(prom_query('up{job="x"}'),))
        )
        assert violations == []

    def test_pipeline_unavailable(self):
        violations = LogLabelRule().validate(
            store(
                available=frozenset({ArtifactKind.DASHBOARDS}),
                queries=(loki_query('{job="y"}'),),
            )
        )
        assert violations == []


class TestTemplateVariableRule:
    """Test log template variables."""

    def test_name_mismatch_and_unknown_label(self):
        violations = TemplateVariableRule().validate(
            store(
                log_labels=(LogLabel("pod", "p.yaml"),),
                template_variables=(
                    TemplateVariable("pod", "d.json", queried_label="container"),
                ),
            )
        )
        assert [v.message for v in violations] == [
            "variable 'pod' queries label 'container'",
            "variable 'pod' queries label 'container' not produced by the log pipeline",
        ]
        assert violations[0].location == "d.json variable 'pod'"

    def test_name_mismatch_checked_without_pipeline(self):
        violations = TemplateVariableRule().validate(
            store(
                available=frozenset({ArtifactKind.DASHBOARDS}),
                template_variables=(
                    TemplateVariable("pod", "d.json", queried_label="container"),
                ),
            )
        )
        assert [v.message for v in violations] == ["variable 'pod' queries label 'container'"]

    def test_matching_variable(self):
        violations = TemplateVariableRule().validate(
            store(
                log_labels=(LogLabel("app", "p.yaml"),),
                template_variables=(TemplateVariable("app", "d.json", queried_label="app"),),
            )
        )
        assert violations == []


class TestMetricLabelRule:
    """Test infrastructure labels in metric queries."""

    LABELS = (MetricLabel("job", "p.yaml"), MetricLabel("instance", "p.yaml"))

    def test_docker_and_kubernetes_labels(self):
        violations = MetricLabelRule().validate(
            store(
                metric_labels=self.LABELS,
                queries=(
                    prom_query('up{name="ac", job="x"}'),
                    prom_query('up{pod=~"ac-.*", custom="y"}'),
                    prom_query('up{pod="ac-0"}'),
                ),
            )
        )
        assert [(v.severity, v.message) for v in violations] == [
            (Severity.INFO, "Docker label 'name' will not match in Kubernetes"),
            (
                Severity.WARNING,
                "label 'pod' is not exposed by the metrics scrape configuration",
            ),
        ]
        assert violations[0].hint == "use namespace/pod labels instead"

    def test_known_kubernetes_label(self):
        labels = self.LABELS + (MetricLabel("namespace", "p.yaml"),)
        violations = MetricLabelRule().validate(
            store(metric_labels=labels, queries=(prom_query('up{namespace="dt"}'),))
        )
        assert violations == []

    def test_docker_label_reported_even_when_scraped(self):
        labels = self.LABELS + (MetricLabel("name", "p.yaml"),)
        violations = MetricLabelRule().validate(
            store(
                metric_labels=labels,
                queries=(prom_query('container_memory_usage_bytes{name="gc"}'),),
            )
        )
        assert [(v.severity, v.message) for v in violations] == [
            (Severity.INFO, "Docker label 'name' will not match in Kubernetes"),
        ]


class TestTargetQueryFieldsRule:
    """Test editorMode and range/instant on metric targets."""

    def test_each_missing_field_reported(self):
        violations = TargetQueryFieldsRule().validate(
            store(
                queries=(
                    prom_query("up", is_target=True, json_path="panels[0].targets[0]"),
                    prom_query(
                        "up",
                        is_target=True,
                        has_editor_mode=True,
                        range=True,
                        instant=True,
                        json_path="panels[1].targets[0]",
                    ),
                )
            )
        )
        assert [(v.location, v.message) for v in violations] == [
            ("d.json [panels[0].targets[0]]", "missing editorMode"),
            ("d.json [panels[0].targets[0]]", "missing range or instant"),
            ("d.json [panels[1].targets[0]]", "both range and instant"),
        ]

    def test_non_targets_and_log_targets_ignored(self):
        violations = TargetQueryFieldsRule().validate(
            store(
                queries=(
                    prom_query("up", json_path="annotations.list[0]"),
                    loki_query('{app="x"}', is_target=True),
                )
            )
        )
        assert violations == []


class TestDefaultRules:
    """Test the rule registry."""

    def test_fixed_order(self):
        assert [rule.name for rule in default_rules()] == [
            "service-registration",
            "metric-prefix",
            "dashboard-metric-exists",
            "dashboard-coverage",
            "catalog-coverage",
            "histogram-buckets",
            "datasource-uid",
            "log-label",
            "template-variable",
            "metric-label",
            "target-query-fields",
        ]
