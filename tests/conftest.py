"""Root test configuration and miniature repository fixtures."""

import json
import logging
import textwrap
from pathlib import Path

import pytest
import structlog

from driftguard.config.settings import get_settings


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep the developer's environment out of config resolution."""
    for var in ("DRIFTGUARD_CONFIG_PATH", "DRIFTGUARD_LOG_LEVEL", "DRIFTGUARD_LOG_FORMAT"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def write_file(tmp_path):
    """Write a (dedented) file below tmp_path and return its path."""

    def _write(relpath: str, content: str | dict) -> Path:
        path = tmp_path / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, dict):
            path.write_text(json.dumps(content, indent=2))
        else:
            path.write_text(textwrap.dedent(content))
        return path

    return _write


SERVICES_CONFIG = """\
services:
  - prefix: ac
    directory: ac-service
    label: ac-service
"""

AC_METRICS_RS = """\
use metrics::{counter, histogram};
use metrics_exporter_prometheus::{Matcher, PrometheusBuilder};

pub fn init_metrics_recorder() -> PrometheusBuilder {
    PrometheusBuilder::new()
        .set_buckets_for_metric(
            Matcher::Prefix("ac_token_issuance".to_string()),
            &[0.005, 0.01, 0.05, 0.1],
        )
        .unwrap()
}

pub fn record_token_issuance(duration: f64) {
    histogram!("ac_token_issuance_duration_seconds").record(duration);
    counter!("ac_token_issuance_total", "status" => "ok").increment(1);
}
"""

PROMETHEUS = {"type": "prometheus", "uid": "prometheus"}
LOKI = {"type": "loki", "uid": "loki"}

AC_DASHBOARD = {
    "title": "AC Service",
    "uid": "ac-service",
    "panels": [
        {
            "id": 1,
            "title": "Token rate",
            "type": "timeseries",
            "datasource": PROMETHEUS,
            "targets": [
                {
                    "refId": "A",
                    "datasource": PROMETHEUS,
                    "expr": 'sum(rate(ac_token_issuance_total{namespace="dark-tower"}[5m]))',
                    "editorMode": "code",
                    "range": True,
                }
            ],
        },
        {
            "id": 2,
            "title": "Latency",
            "type": "row",
            "panels": [
                {
                    "id": 3,
                    "title": "p99",
                    "type": "timeseries",
                    "datasource": PROMETHEUS,
                    "targets": [
                        {
                            "refId": "A",
                            "expr": (
                                "histogram_quantile(0.99, sum by (le) "
                                "(rate(ac_token_issuance_duration_seconds_bucket[5m])))"
                            ),
                            "editorMode": "code",
                            "range": True,
                        }
                    ],
                }
            ],
        },
        {
            "id": 4,
            "title": "Errors",
            "type": "logs",
            "datasource": LOKI,
            "targets": [{"refId": "A", "expr": '{app="ac-service", level="error"}'}],
        },
    ],
    "templating": {
        "list": [
            {
                "name": "app",
                "type": "query",
                "datasource": LOKI,
                "query": {"label": "app", "stream": '{namespace="dark-tower"}', "type": 1},
            }
        ]
    },
}

DATASOURCES_YAML = """\
apiVersion: 1
datasources:
  - name: Prometheus
    type: prometheus
    uid: prometheus
  - name: Loki
    type: loki
    uid: loki
"""

PROMTAIL_YAML = """\
apiVersion: v1
kind: ConfigMap
metadata:
  name: promtail-config
data:
  promtail.yaml: |
    server:
      http_listen_port: 9080
    scrape_configs:
      - job_name: kubernetes-pods
        kubernetes_sd_configs:
          - role: pod
        pipeline_stages:
          - json:
              expressions:
                level: level
          - labels:
              level:
        relabel_configs:
          - source_labels: [__meta_kubernetes_namespace]
            target_label: namespace
          - source_labels: [__meta_kubernetes_pod_label_app]
            target_label: app
          - source_labels: [__meta_kubernetes_pod_name]
            action: replace
            target_label: pod
          - source_labels: [__meta_kubernetes_namespace]
            action: keep
            regex: dark-tower
          - source_labels: [__meta_kubernetes_pod_node_name]
            target_label: __tmp_node
"""

PROMETHEUS_YAML = """\
apiVersion: v1
kind: ConfigMap
metadata:
  name: prometheus-config
data:
  prometheus.yml: |
    global:
      scrape_interval: 15s
    scrape_configs:
      - job_name: kubernetes-pods
        kubernetes_sd_configs:
          - role: pod
        relabel_configs:
          - source_labels: [__meta_kubernetes_pod_label_app]
            target_label: app
"""

CATALOG_MD = """\
# AC Service metrics

### `ac_token_issuance_total`
Tokens issued, by status.

### `ac_token_issuance_duration_seconds`
Token issuance latency.
"""

ENV_TEST_RS = """\
#[tokio::test]
async fn test_token_issuance() {
    let response = client.issue_token().await;
    match response.status() {
        200 => {
            assert!(response.body().contains("token"));
        }
        status => panic!("unexpected status {status}"),
    }
}
"""


@pytest.fixture
def clean_repo(tmp_path, write_file):
    """A miniature repository in which every artifact agrees."""
    write_file(".driftguard.yaml", SERVICES_CONFIG)
    write_file("crates/ac-service/src/observability/metrics.rs", AC_METRICS_RS)
    write_file("infra/grafana/dashboards/ac-service.json", AC_DASHBOARD)
    write_file("infra/grafana/provisioning/datasources/datasources.yaml", DATASOURCES_YAML)
    write_file("infra/kubernetes/observability/promtail-config.yaml", PROMTAIL_YAML)
    write_file("infra/kubernetes/observability/prometheus-config.yaml", PROMETHEUS_YAML)
    write_file("docs/observability/metrics/ac-service.md", CATALOG_MD)
    write_file("crates/env-tests/tests/auth_tests.rs", ENV_TEST_RS)
    return tmp_path
