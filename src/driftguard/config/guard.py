"""
Guard configuration: service registry, artifact paths and backend names.

The service registry is data. Adding a service means adding an entry to the
``services`` list of the configuration file, never a code change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any

from driftguard.core.errors import ConfigurationError
from driftguard.models import ServiceRegistration

DEFAULT_TEST_GLOBS = ("crates/env-tests/tests/*.rs",)


def _relative_path(section: str, key: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(
            "Configured path must be a non-empty string", {"section": section, "key": key}
        )
    path = PurePosixPath(value.strip())
    if path.is_absolute() or ".." in path.parts:
        raise ConfigurationError(
            "Configured path must stay below the validated root",
            {"section": section, "key": key, "path": value},
        )
    return str(path)


@dataclass(frozen=True)
class PathsConfig:
    """Artifact locations, relative to the validated root."""

    services_root: str = "crates"
    metrics_glob: str = "*/src/observability/metrics.rs"
    dashboards: str = "infra/grafana/dashboards"
    datasources: str = "infra/grafana/provisioning/datasources/datasources.yaml"
    log_pipeline: str = "infra/kubernetes/observability/promtail-config.yaml"
    metrics_pipeline: str = "infra/kubernetes/observability/prometheus-config.yaml"
    catalog: str = "docs/observability/metrics"
    test_globs: tuple[str, ...] = DEFAULT_TEST_GLOBS

    def to_dict(self) -> dict[str, Any]:
        return {
            "services_root": self.services_root,
            "metrics_glob": self.metrics_glob,
            "dashboards": self.dashboards,
            "datasources": self.datasources,
            "log_pipeline": self.log_pipeline,
            "metrics_pipeline": self.metrics_pipeline,
            "catalog": self.catalog,
            "test_globs": list(self.test_globs),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PathsConfig:
        defaults = cls()
        values: dict[str, Any] = {}
        for key in (
            "services_root",
            "metrics_glob",
            "dashboards",
            "datasources",
            "log_pipeline",
            "metrics_pipeline",
            "catalog",
        ):
            values[key] = _relative_path("paths", key, data.get(key, getattr(defaults, key)))

        globs = data.get("test_globs", list(defaults.test_globs))
        if isinstance(globs, str):
            globs = [globs]
        if not isinstance(globs, list):
            raise ConfigurationError("paths.test_globs must be a list of patterns")
        values["test_globs"] = tuple(_relative_path("paths", "test_globs", g) for g in globs)

        unknown = sorted(set(data) - set(values))
        if unknown:
            raise ConfigurationError("Unknown keys in paths section", {"keys": ",".join(unknown)})
        return cls(**values)


@dataclass(frozen=True)
class BackendsConfig:
    """Datasource type/uid names that identify the log and metric backends."""

    logs: str = "loki"
    metrics: str = "prometheus"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BackendsConfig:
        logs = data.get("logs", "loki")
        metrics = data.get("metrics", "prometheus")
        if not isinstance(logs, str) or not isinstance(metrics, str):
            raise ConfigurationError("backends.logs and backends.metrics must be strings")
        return cls(logs=logs, metrics=metrics)


@dataclass(frozen=True)
class GuardConfig:
    """Complete guard configuration for one run."""

    services: tuple[ServiceRegistration, ...] = ()
    paths: PathsConfig = field(default_factory=PathsConfig)
    backends: BackendsConfig = field(default_factory=BackendsConfig)
    exempt_log_labels: frozenset[str] = frozenset({"level"})
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "services": [
                {"prefix": s.prefix, "directory": s.directory, "label": s.label}
                for s in self.services
            ],
            "paths": self.paths.to_dict(),
            "backends": {"logs": self.backends.logs, "metrics": self.backends.metrics},
            "exempt_log_labels": sorted(self.exempt_log_labels),
        }

    @classmethod
    def default(cls) -> GuardConfig:
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: str | None = None) -> GuardConfig:
        if not isinstance(data, dict):
            raise ConfigurationError("Guard configuration must be a mapping", {"path": source})

        services = _parse_services(data.get("services") or [])

        paths = data.get("paths") or {}
        backends = data.get("backends") or {}
        if not isinstance(paths, dict) or not isinstance(backends, dict):
            raise ConfigurationError("paths and backends must be mappings", {"path": source})

        exempt = data.get("exempt_log_labels", ["level"])
        if not isinstance(exempt, list) or not all(isinstance(x, str) for x in exempt):
            raise ConfigurationError("exempt_log_labels must be a list of label names")

        return cls(
            services=services,
            paths=PathsConfig.from_dict(paths),
            backends=BackendsConfig.from_dict(backends),
            exempt_log_labels=frozenset(exempt),
            source=source,
        )


def _parse_services(entries: Any) -> tuple[ServiceRegistration, ...]:
    if not isinstance(entries, list):
        raise ConfigurationError("services must be a list of {prefix, directory, label}")

    registrations: list[ServiceRegistration] = []
    seen_prefixes: dict[str, str] = {}
    seen_dirs: set[str] = set()
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ConfigurationError("Service entry must be a mapping", {"index": index})
        prefix = entry.get("prefix")
        directory = entry.get("directory")
        if not isinstance(prefix, str) or not prefix:
            raise ConfigurationError("Service entry is missing a prefix", {"index": index})
        if not isinstance(directory, str) or not directory:
            raise ConfigurationError("Service entry is missing a directory", {"prefix": prefix})
        if "_" in prefix:
            raise ConfigurationError(
                "Service prefix must not contain '_'", {"prefix": prefix}
            )
        if prefix in seen_prefixes:
            raise ConfigurationError(
                "Duplicate service prefix",
                {"prefix": prefix, "directories": f"{seen_prefixes[prefix]},{directory}"},
            )
        if directory in seen_dirs:
            raise ConfigurationError("Duplicate service directory", {"directory": directory})
        seen_prefixes[prefix] = directory
        seen_dirs.add(directory)
        registrations.append(
            ServiceRegistration(
                prefix=prefix,
                directory=directory,
                label=str(entry.get("label") or directory),
            )
        )
    return tuple(registrations)
