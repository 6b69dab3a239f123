"""
Extract the label sets produced by the log and metrics collection pipelines.

Both pipelines are deployed as Kubernetes manifests whose ``data`` map embeds
the actual collector configuration as a YAML string (YAML-in-YAML). A file
holding the collector configuration directly is accepted too.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import Any, Iterator

import yaml

from driftguard.extractors.base import BaseExtractor, ExtractionResult
from driftguard.models import ArtifactKind, LogLabel, MetricLabel

# Labels available on every series scraped through kubernetes_sd_configs
KUBERNETES_SD_LABELS = ("namespace", "pod", "node", "container", "service", "endpoint")

# Labels Prometheus attaches to every scraped series
PROMETHEUS_STANDARD_LABELS = ("job", "instance")


def relabel_target_labels(scrape_config: dict[str, Any]) -> set[str]:
    """target_label of every replace relabeling that yields a stored label."""
    labels: set[str] = set()
    for relabel in scrape_config.get("relabel_configs") or []:
        if not isinstance(relabel, dict):
            continue
        action = relabel.get("action", "replace")
        target = relabel.get("target_label")
        if action != "replace" or not isinstance(target, str) or not target:
            continue
        if target.startswith("__"):
            continue
        labels.add(target)
    return labels


def stage_labels(scrape_config: dict[str, Any]) -> set[str]:
    """Keys of every ``labels`` pipeline stage (label promotion)."""
    labels: set[str] = set()
    for stage in scrape_config.get("pipeline_stages") or []:
        if isinstance(stage, dict) and isinstance(stage.get("labels"), dict):
            labels.update(str(key) for key in stage["labels"])
    return labels


class PipelineConfigExtractor(BaseExtractor):
    """Shared YAML-in-YAML walk for collector configurations."""

    path_attr: str = ""

    def config_path(self) -> str:
        return getattr(self.config.paths, self.path_attr)

    def extract(self, root: Path) -> ExtractionResult:
        result = self.new_result()
        rel_config = self.config_path()
        file_path = root / rel_config

        if not file_path.is_file():
            return result.skip(f"{self.description} not found: {rel_config}")

        rel = self.relative(root, file_path)
        text = self.read_text(root, file_path, result)
        if text is None:
            return result

        try:
            documents = [d for d in yaml.safe_load_all(text) if d is not None]
        except yaml.YAMLError as e:
            result.fail(rel, f"invalid YAML: {e}")
            return result

        labels: set[str] = set()
        scrape_configs = 0
        for scrape_config in self._scrape_configs(documents, rel, result):
            scrape_configs += 1
            labels |= self.labels_for(scrape_config)

        if scrape_configs == 0:
            result.notices.append(f"no scrape_configs found in {rel}")
        labels |= self.implicit_labels()

        result.entities.extend(self.make_label(name, rel) for name in sorted(labels))
        return result

    def _scrape_configs(
        self, documents: list[Any], rel: str, result: ExtractionResult
    ) -> Iterator[dict[str, Any]]:
        for document in documents:
            if not isinstance(document, dict):
                continue
            for embedded in self._embedded_configs(document, rel, result):
                for scrape_config in embedded.get("scrape_configs") or []:
                    if isinstance(scrape_config, dict):
                        yield scrape_config

    @staticmethod
    def _embedded_configs(
        document: dict[str, Any], rel: str, result: ExtractionResult
    ) -> Iterator[dict[str, Any]]:
        if "scrape_configs" in document:
            yield document

        data = document.get("data")
        if not isinstance(data, dict):
            return
        for key in sorted(data):
            value = data[key]
            if not isinstance(value, str) or not str(key).endswith((".yaml", ".yml")):
                continue
            try:
                embedded = yaml.safe_load(value)
            except yaml.YAMLError as e:
                result.fail(f"{rel}#data.{key}", f"invalid embedded YAML: {e}")
                continue
            if isinstance(embedded, dict) and "scrape_configs" in embedded:
                yield embedded

    @abstractmethod
    def labels_for(self, scrape_config: dict[str, Any]) -> set[str]:
        pass

    def implicit_labels(self) -> set[str]:
        return set()

    @abstractmethod
    def make_label(self, name: str, source_file: str) -> Any:
        pass


class LogPipelineExtractor(PipelineConfigExtractor):
    """Labels Promtail attaches to log streams."""

    name = "log_pipeline"
    kind = ArtifactKind.LOG_PIPELINE
    description = "log pipeline config"
    path_attr = "log_pipeline"

    def labels_for(self, scrape_config: dict[str, Any]) -> set[str]:
        return relabel_target_labels(scrape_config) | stage_labels(scrape_config)

    def make_label(self, name: str, source_file: str) -> LogLabel:
        return LogLabel(name=name, source_file=source_file)


class MetricsPipelineExtractor(PipelineConfigExtractor):
    """Labels Prometheus attaches to scraped series."""

    name = "metrics_pipeline"
    kind = ArtifactKind.METRICS_PIPELINE
    description = "metrics pipeline config"
    path_attr = "metrics_pipeline"

    def labels_for(self, scrape_config: dict[str, Any]) -> set[str]:
        labels = relabel_target_labels(scrape_config)
        if scrape_config.get("kubernetes_sd_configs"):
            labels.update(KUBERNETES_SD_LABELS)
        return labels

    def implicit_labels(self) -> set[str]:
        return set(PROMETHEUS_STANDARD_LABELS)

    def make_label(self, name: str, source_file: str) -> MetricLabel:
        return MetricLabel(name=name, source_file=source_file)
