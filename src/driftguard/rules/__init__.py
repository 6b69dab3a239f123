"""Consistency rules over the entity store."""

from driftguard.rules.base import BaseRule
from driftguard.rules.dashboards import DatasourceUidRule, TargetQueryFieldsRule
from driftguard.rules.labels import LogLabelRule, MetricLabelRule, TemplateVariableRule
from driftguard.rules.metrics import (
    CatalogCoverageRule,
    DashboardCoverageRule,
    DashboardMetricExistsRule,
    HistogramBucketsRule,
    MetricPrefixRule,
    ServiceRegistrationRule,
)


def default_rules() -> list[BaseRule]:
    """All consistency rules, in reporting order."""
    return [
        ServiceRegistrationRule(),
        MetricPrefixRule(),
        DashboardMetricExistsRule(),
        DashboardCoverageRule(),
        CatalogCoverageRule(),
        HistogramBucketsRule(),
        DatasourceUidRule(),
        LogLabelRule(),
        TemplateVariableRule(),
        MetricLabelRule(),
        TargetQueryFieldsRule(),
    ]


__all__ = [
    "BaseRule",
    "CatalogCoverageRule",
    "DashboardCoverageRule",
    "DashboardMetricExistsRule",
    "DatasourceUidRule",
    "HistogramBucketsRule",
    "LogLabelRule",
    "MetricLabelRule",
    "MetricPrefixRule",
    "ServiceRegistrationRule",
    "TargetQueryFieldsRule",
    "TemplateVariableRule",
    "default_rules",
]
