"""Core error types and exit codes."""

from driftguard.core.errors import (
    ConfigurationError,
    DriftGuardError,
    ExitCode,
    main_with_error_handling,
)

__all__ = [
    "ConfigurationError",
    "DriftGuardError",
    "ExitCode",
    "main_with_error_handling",
]
