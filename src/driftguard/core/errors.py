"""
Unified error handling for driftguard CLI commands.

Exit Codes:
- 0: Success (no error-severity violations)
- 1: Violations found
- 2: Tooling failure (configuration invalid, artifact unparseable, internal error)
- 130: Interrupted
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    VIOLATIONS = 1
    TOOLING_FAILURE = 2
    INTERRUPTED = 130


class DriftGuardError(Exception):
    """Base exception for driftguard errors with exit code support."""

    exit_code: ExitCode = ExitCode.TOOLING_FAILURE
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(DriftGuardError):
    """Raised when the guard configuration is missing required data or malformed."""


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI command functions that provides unified error handling.

    Catches exceptions and converts them to exit codes with consistent
    error reporting.

    Exit codes:
        - DriftGuardError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130
        - Other exceptions: Returns 2 (tooling failure)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except DriftGuardError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=int(e.exit_code),
                        **e.details,
                    )
                _print_error(format_error_message(e))
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return ExitCode.INTERRUPTED
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=int(ExitCode.TOOLING_FAILURE),
                    )
                _print_error(f"Unexpected error: {e}")
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.TOOLING_FAILURE

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: DriftGuardError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg


def _print_error(message: str) -> None:
    from driftguard.cli.ux import error as print_error

    print_error(message)
