"""
Extract metric definitions and histogram bucket registrations from service source.

Pattern based, not a parser: only literal-string macro invocations are seen.
Names built by other macros or format strings are out of reach.
"""

from __future__ import annotations

import re
from pathlib import Path

from driftguard.extractors.base import BaseExtractor, ExtractionResult, line_of
from driftguard.models import (
    ArtifactKind,
    BucketConfig,
    Metric,
    MetricKind,
    MetricSourceFile,
)

# counter!("name", ...) with the name possibly on a following line
METRIC_PATTERN = re.compile(r'\b(counter|histogram|gauge)!\s*\(\s*"([^"]+)"')

# .set_buckets_for_metric(Matcher::Prefix("prefix".to_string()), &[...])
BUCKET_PATTERN = re.compile(r'set_buckets_for_metric\s*\(\s*Matcher::Prefix\(\s*"([^"]+)"')


def extract_metrics(text: str, path: str, service_directory: str) -> list[Metric]:
    """Metric definitions in one file, first occurrence of each name."""
    metrics: list[Metric] = []
    seen: set[str] = set()
    for match in METRIC_PATTERN.finditer(text):
        name = match.group(2)
        if name in seen:
            continue
        seen.add(name)
        metrics.append(
            Metric(
                name=name,
                kind=MetricKind(match.group(1)),
                defining_file=path,
                defining_line=line_of(text, match.start()),
                service_directory=service_directory,
            )
        )
    return metrics


def extract_bucket_configs(text: str, path: str) -> list[BucketConfig]:
    return [
        BucketConfig(
            matched_prefix=match.group(1),
            defining_file=path,
            defining_line=line_of(text, match.start()),
        )
        for match in BUCKET_PATTERN.finditer(text)
    ]


class SourceMetricExtractor(BaseExtractor):
    """Metrics, bucket configs and metric-defining files under the services root."""

    name = "source"
    kind = ArtifactKind.SOURCE
    description = "Metric macros and bucket registrations in service source"

    def extract(self, root: Path) -> ExtractionResult:
        result = self.new_result()
        paths = self.config.paths
        services_root = root / paths.services_root

        if not services_root.is_dir():
            return result.skip(f"services root not found: {paths.services_root}")

        files = sorted(p for p in services_root.glob(paths.metrics_glob) if p.is_file())
        if not files:
            result.notices.append(
                f"no metric files match {paths.services_root}/{paths.metrics_glob}"
            )

        for file_path in files:
            rel = self.relative(root, file_path)
            service_directory = file_path.relative_to(services_root).parts[0]
            text = self.read_text(root, file_path, result)
            if text is None:
                continue

            result.entities.append(MetricSourceFile(path=rel, service_directory=service_directory))
            metrics = extract_metrics(text, rel, service_directory)
            if not metrics:
                result.notices.append(f"no metric definitions found in {rel}")
            result.entities.extend(metrics)
            result.entities.extend(extract_bucket_configs(text, rel))

        return result
