"""
Guard configuration file loading.

Search order:
1. Explicit path (--config flag)
2. DRIFTGUARD_CONFIG_PATH environment variable
3. <root>/.driftguard/config.yaml
4. <root>/.driftguard.yaml
5. Default configuration (empty service registry)
"""

from __future__ import annotations

from pathlib import Path

import structlog
import yaml

from driftguard.config.guard import GuardConfig
from driftguard.config.settings import Settings, get_settings
from driftguard.core.errors import ConfigurationError

logger = structlog.get_logger()


def get_config_path(
    root: Path,
    explicit_path: str | Path | None = None,
    settings: Settings | None = None,
) -> Path | None:
    """
    Find the guard configuration file to use.

    An explicit path (flag or environment) that does not exist is an error
    rather than a silent fall back to defaults.

    Returns:
        Path to config file or None if not found
    """
    settings = settings or get_settings()

    for candidate in (explicit_path, settings.config_path):
        if candidate:
            path = Path(candidate)
            if not path.is_absolute():
                path = root / path
            if not path.is_file():
                raise ConfigurationError("Config file not found", {"path": str(candidate)})
            return path

    for path in (root / ".driftguard" / "config.yaml", root / ".driftguard.yaml"):
        if path.is_file():
            return path

    return None


class ConfigLoader:
    """Loads the guard configuration for a validated root."""

    def __init__(
        self,
        root: Path,
        config_path: str | Path | None = None,
        settings: Settings | None = None,
    ):
        self.root = root
        self.config_path = get_config_path(root, config_path, settings)

    def load(self) -> GuardConfig:
        """Load configuration from file or return defaults."""
        if self.config_path is None:
            logger.debug("config_defaults_used", root=str(self.root))
            return GuardConfig.default()
        return self._load_from_file(self.config_path)

    def _load_from_file(self, path: Path) -> GuardConfig:
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                "Config file could not be parsed", {"path": str(path), "error": str(e)}
            ) from e

        config = GuardConfig.from_dict(data, source=str(path))
        logger.debug("loaded_config", path=str(path), services=len(config.services))
        return config


def load_guard_config(
    root: Path,
    config_path: str | Path | None = None,
    settings: Settings | None = None,
) -> GuardConfig:
    """Convenience wrapper around ConfigLoader."""
    return ConfigLoader(root, config_path, settings).load()
