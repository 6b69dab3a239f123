"""Settings and guard configuration."""

from driftguard.config.guard import BackendsConfig, GuardConfig, PathsConfig
from driftguard.config.loader import ConfigLoader, get_config_path, load_guard_config
from driftguard.config.settings import Settings, get_settings

__all__ = [
    "BackendsConfig",
    "ConfigLoader",
    "GuardConfig",
    "PathsConfig",
    "Settings",
    "get_config_path",
    "get_settings",
    "load_guard_config",
]
