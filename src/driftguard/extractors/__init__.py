"""
Artifact extractors.

Each extractor adapts one artifact format to the canonical entities in
``driftguard.models``; adding an artifact type means adding an extractor,
not new join logic.
"""

from driftguard.config.guard import GuardConfig
from driftguard.extractors.base import BaseExtractor, ExtractionFailure, ExtractionResult
from driftguard.extractors.catalog import CatalogExtractor
from driftguard.extractors.dashboards import DashboardExtractor
from driftguard.extractors.datasources import DatasourceExtractor
from driftguard.extractors.pipeline import LogPipelineExtractor, MetricsPipelineExtractor
from driftguard.extractors.source import SourceMetricExtractor
from driftguard.models import ArtifactKind

EXTRACTORS: dict[ArtifactKind, type[BaseExtractor]] = {
    ArtifactKind.SOURCE: SourceMetricExtractor,
    ArtifactKind.DASHBOARDS: DashboardExtractor,
    ArtifactKind.DATASOURCES: DatasourceExtractor,
    ArtifactKind.LOG_PIPELINE: LogPipelineExtractor,
    ArtifactKind.METRICS_PIPELINE: MetricsPipelineExtractor,
    ArtifactKind.CATALOG: CatalogExtractor,
}


def get_extractors(kinds: set[ArtifactKind], config: GuardConfig) -> list[BaseExtractor]:
    """Instantiate the extractors for the given artifact kinds, in fixed order."""
    return [cls(config) for kind, cls in EXTRACTORS.items() if kind in kinds]


__all__ = [
    "EXTRACTORS",
    "BaseExtractor",
    "CatalogExtractor",
    "DashboardExtractor",
    "DatasourceExtractor",
    "ExtractionFailure",
    "ExtractionResult",
    "LogPipelineExtractor",
    "MetricsPipelineExtractor",
    "SourceMetricExtractor",
    "get_extractors",
]
