"""Rules on dashboard structure: datasource references and target fields."""

from __future__ import annotations

from driftguard.models import ArtifactKind, Violation
from driftguard.rules.base import BaseRule
from driftguard.store import EntityStore


class DatasourceUidRule(BaseRule):
    """Datasource UIDs referenced by dashboards are provisioned."""

    name = "datasource-uid"
    description = "Dashboard datasource UIDs are provisioned"
    group = "grafana-datasources"
    requires = frozenset({ArtifactKind.DASHBOARDS, ArtifactKind.DATASOURCES})

    def validate(self, store: EntityStore) -> list[Violation]:
        if not (store.has(ArtifactKind.DASHBOARDS) and store.has(ArtifactKind.DATASOURCES)):
            return []

        defined = store.datasource_uids
        hint = (
            f"defined UIDs: {', '.join(sorted(defined))}"
            if defined
            else "add an explicit 'uid:' to the datasource provisioning entry"
        )

        reported: set[tuple[str, str]] = set()
        violations = []
        for ref in store.datasource_references:
            key = (ref.dashboard_file, ref.uid)
            if ref.uid in defined or key in reported:
                continue
            reported.add(key)
            violations.append(
                self.violation(
                    f"{ref.dashboard_file} [{ref.json_path}]",
                    f"dashboard references undefined datasource UID '{ref.uid}'",
                    hint=hint,
                )
            )
        return violations


class TargetQueryFieldsRule(BaseRule):
    """Metric-backend targets pin their editor and query mode explicitly."""

    name = "target-query-fields"
    description = "Metric targets declare editorMode and exactly one of range/instant"
    group = "application-metrics"
    requires = frozenset({ArtifactKind.DASHBOARDS})

    def validate(self, store: EntityStore) -> list[Violation]:
        violations = []
        for query in store.metric_queries():
            if not query.is_target:
                continue
            if not query.has_editor_mode:
                violations.append(
                    self.violation(
                        query.location,
                        "missing editorMode",
                        hint='set "editorMode": "code"',
                    )
                )
            if not query.range and not query.instant:
                violations.append(
                    self.violation(
                        query.location,
                        "missing range or instant",
                        hint='set "range": true or "instant": true',
                    )
                )
            elif query.range and query.instant:
                violations.append(
                    self.violation(
                        query.location,
                        "both range and instant",
                        hint='keep only one of "range"/"instant" set to true',
                    )
                )
        return violations
