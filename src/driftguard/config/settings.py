"""
Process settings using Pydantic.

Provides environment-based configuration loading with DRIFTGUARD_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Process-level settings (environment and .env)."""

    # Guard configuration file, used when --config is not given
    config_path: str | None = None

    # Logging
    log_level: str = "WARNING"
    log_format: str = "console"  # console, json

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "DRIFTGUARD_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
