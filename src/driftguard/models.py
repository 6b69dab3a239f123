"""
Canonical entities shared by extractors, rules and the analyzer.

Every artifact type is reduced to these shapes so that cross-format checks
join on plain string keys (metric name, label name, datasource UID) and never
on format-specific references.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, StrEnum

HISTOGRAM_SUFFIXES = ("_bucket", "_count", "_sum")


class Severity(Enum):
    """Violation severity levels."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return {"error": 0, "warning": 1, "info": 2}[self.value]


class MetricKind(StrEnum):
    """Metric types declared in service source."""

    COUNTER = "counter"
    HISTOGRAM = "histogram"
    GAUGE = "gauge"


class ArtifactKind(StrEnum):
    """Artifact classes, one per extractor."""

    SOURCE = "source"
    DASHBOARDS = "dashboards"
    DATASOURCES = "datasources"
    LOG_PIPELINE = "log_pipeline"
    METRICS_PIPELINE = "metrics_pipeline"
    CATALOG = "catalog"
    TESTS = "tests"


@dataclass(frozen=True)
class ServiceRegistration:
    """Maps a metric prefix to the service directory that owns it."""

    prefix: str
    directory: str
    label: str


@dataclass(frozen=True)
class MetricSourceFile:
    """A metric-defining source file found under the services root."""

    path: str
    service_directory: str


@dataclass(frozen=True)
class Metric:
    """A metric declared through a counter!/histogram!/gauge! invocation."""

    name: str
    kind: MetricKind
    defining_file: str
    defining_line: int
    service_directory: str

    @property
    def owning_prefix(self) -> str:
        return self.name.split("_", 1)[0]

    @property
    def location(self) -> str:
        return f"{self.defining_file}:{self.defining_line}"


@dataclass(frozen=True)
class BucketConfig:
    """A set_buckets_for_metric(Matcher::Prefix(...)) registration."""

    matched_prefix: str
    defining_file: str
    defining_line: int

    def matches(self, metric_name: str) -> bool:
        return metric_name.startswith(self.matched_prefix)


@dataclass(frozen=True)
class DashboardQuery:
    """A query expression found anywhere in a dashboard document."""

    expr: str
    dashboard_file: str
    json_path: str
    datasource_type: str | None = None
    datasource_uid: str | None = None
    panel_id: int | str | None = None
    panel_title: str | None = None
    ref_id: str | None = None
    is_target: bool = False
    has_editor_mode: bool = False
    range: bool = False
    instant: bool = False

    def uses_backend(self, backend: str) -> bool:
        """True if the query's datasource is the given backend (by type or uid)."""
        return backend in (self.datasource_type, self.datasource_uid)

    @property
    def panel_label(self) -> str:
        title = self.panel_title or "Untitled"
        return f"panel {self.panel_id} ({title})"

    @property
    def location(self) -> str:
        parts = [self.dashboard_file]
        if self.panel_id is not None or self.panel_title:
            parts.append(self.panel_label)
        if self.ref_id:
            parts.append(f"refId={self.ref_id}")
        parts.append(f"[{self.json_path}]")
        return " ".join(parts)


@dataclass(frozen=True)
class DatasourceReference:
    """A datasource UID referenced from inside a dashboard."""

    uid: str
    dashboard_file: str
    json_path: str


@dataclass(frozen=True)
class TemplateVariable:
    """A dashboard template variable backed by the log datasource."""

    name: str
    dashboard_file: str
    queried_label: str | None = None
    stream: str | None = None


@dataclass(frozen=True)
class DatasourceDefinition:
    """A provisioned datasource."""

    uid: str
    source_file: str
    name: str | None = None
    type: str | None = None


@dataclass(frozen=True)
class LogLabel:
    """A label the log pipeline attaches to stored log streams."""

    name: str
    source_file: str


@dataclass(frozen=True)
class MetricLabel:
    """A label the metrics scrape configuration attaches to series."""

    name: str
    source_file: str


@dataclass(frozen=True)
class CatalogEntry:
    """A metric documented under a ### `name` heading."""

    metric_name: str
    catalog_file: str
    line: int


@dataclass(frozen=True)
class CodeBlock:
    """Resolved extent of a match arm in test source."""

    file: str
    start_line: int
    end_line: int
    has_enforcement: bool


@dataclass(frozen=True, order=True)
class Violation:
    """A single finding. Immutable once produced."""

    check: str
    location: str
    message: str
    severity: Severity = field(default=Severity.ERROR, compare=False)
    hint: str | None = field(default=None, compare=False)

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    @property
    def is_warning(self) -> bool:
        return self.severity == Severity.WARNING

    @property
    def is_info(self) -> bool:
        return self.severity == Severity.INFO

    def to_dict(self) -> dict[str, str | None]:
        return {
            "check": self.check,
            "severity": self.severity.value,
            "location": self.location,
            "message": self.message,
            "hint": self.hint,
        }


def strip_histogram_suffix(name: str) -> str | None:
    """Return the base metric name if ``name`` ends in a histogram suffix."""
    for suffix in HISTOGRAM_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)]
    return None
