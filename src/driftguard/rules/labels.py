"""
Rules checking the labels dashboards filter on against the labels the
collection pipelines actually produce.
"""

from __future__ import annotations

from driftguard.extractors.pipeline import KUBERNETES_SD_LABELS
from driftguard.models import ArtifactKind, Severity, Violation
from driftguard.rules.base import BaseRule
from driftguard.rules.expressions import selector_labels
from driftguard.store import EntityStore

# Label names of the Docker service-discovery world
DOCKER_LABELS = ("name", "container_name", "image")


def _valid_labels_hint(labels: frozenset[str]) -> str:
    return f"valid labels: {', '.join(sorted(labels))}" if labels else "pipeline defines no labels"


class LogLabelRule(BaseRule):
    """Log queries only filter on labels the log pipeline produces."""

    name = "log-label"
    description = "Log query selectors use labels produced by the log pipeline"
    group = "grafana-datasources"
    requires = frozenset({ArtifactKind.DASHBOARDS, ArtifactKind.LOG_PIPELINE})

    def validate(self, store: EntityStore) -> list[Violation]:
        if not (store.has(ArtifactKind.DASHBOARDS) and store.has(ArtifactKind.LOG_PIPELINE)):
            return []

        # (dashboard, label) -> places the label is used
        usages: dict[tuple[str, str], list[str]] = {}
        for query in store.log_queries():
            if query.panel_id is not None or query.panel_title:
                where = query.panel_label
            else:
                where = query.json_path
            for label in selector_labels(query.expr):
                usages.setdefault((query.dashboard_file, label), []).append(where)
        for variable in store.template_variables:
            if variable.stream:
                for label in selector_labels(variable.stream):
                    usages.setdefault((variable.dashboard_file, label), []).append(
                        f"variable {variable.name}"
                    )

        known = store.log_label_names
        violations = []
        for (dashboard, label), places in sorted(usages.items()):
            if label in known or label in store.exempt_log_labels:
                continue
            used_in = ", ".join(dict.fromkeys(places))
            violations.append(
                self.violation(
                    dashboard,
                    f"log query uses label '{label}' not produced by the log pipeline "
                    f"(used in: {used_in})",
                    hint=_valid_labels_hint(known),
                )
            )
        return violations


class TemplateVariableRule(BaseRule):
    """Log template variables are named after, and query, a real log label."""

    name = "template-variable"
    description = "Log template variables match the label they query"
    group = "grafana-datasources"
    requires = frozenset({ArtifactKind.DASHBOARDS, ArtifactKind.LOG_PIPELINE})

    def validate(self, store: EntityStore) -> list[Violation]:
        if not store.has(ArtifactKind.DASHBOARDS):
            return []

        check_labels = store.has(ArtifactKind.LOG_PIPELINE)
        known = store.log_label_names
        violations = []
        for variable in store.template_variables:
            label = variable.queried_label
            if not label:
                continue
            location = f"{variable.dashboard_file} variable '{variable.name}'"
            if variable.name != label:
                violations.append(
                    self.violation(
                        location,
                        f"variable '{variable.name}' queries label '{label}'",
                        hint=(
                            f"rename the variable to '{label}' "
                            f"or query label '{variable.name}'"
                        ),
                    )
                )
            if check_labels and label not in known and label not in store.exempt_log_labels:
                violations.append(
                    self.violation(
                        location,
                        f"variable '{variable.name}' queries label '{label}' "
                        "not produced by the log pipeline",
                        hint=_valid_labels_hint(known),
                    )
                )
        return violations


class MetricLabelRule(BaseRule):
    """Infrastructure labels in metric queries exist in the scrape configuration."""

    name = "metric-label"
    description = "Infrastructure labels in metric queries are produced by scrape config"
    group = "infrastructure-metrics"
    requires = frozenset({ArtifactKind.DASHBOARDS, ArtifactKind.METRICS_PIPELINE})

    def validate(self, store: EntityStore) -> list[Violation]:
        if not (store.has(ArtifactKind.DASHBOARDS) and store.has(ArtifactKind.METRICS_PIPELINE)):
            return []

        known = store.metric_label_names
        reported: set[tuple[str, str]] = set()
        violations = []
        for query in store.metric_queries():
            for label in selector_labels(query.expr):
                if (query.dashboard_file, label) in reported:
                    continue
                # Docker-style labels are reported even when the scrape config produces them
                if label in DOCKER_LABELS:
                    violation = self.violation(
                        query.location,
                        f"Docker label '{label}' will not match in Kubernetes",
                        severity=Severity.INFO,
                        hint="use namespace/pod labels instead"
                        if label == "name"
                        else _valid_labels_hint(known),
                    )
                elif label in known:
                    continue
                elif label in KUBERNETES_SD_LABELS:
                    violation = self.violation(
                        query.location,
                        f"label '{label}' is not exposed by the metrics scrape configuration",
                        severity=Severity.WARNING,
                        hint=_valid_labels_hint(known),
                    )
                else:
                    continue
                reported.add((query.dashboard_file, label))
                violations.append(violation)
        return violations
