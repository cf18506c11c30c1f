"""
Exception hierarchy for polylog.

Only configuration mistakes and aggregate flush failures ever reach the
caller; everything raised inside the log path is absorbed by the dispatch
wrapper and reported as a diagnostic record.
"""

from __future__ import annotations

from typing import Any


class LogError(Exception):
    """Base class for all polylog errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ConfigurationError(LogError, TypeError):
    """Invalid construction option or call-site argument."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, code="CONFIGURATION_ERROR", details=details)


class InvalidFieldsError(ConfigurationError):
    """A ``*_fields`` call did not end with a plain field mapping."""

    def __init__(self, got: Any) -> None:
        super().__init__(
            "Data given as the last argument to a *_fields method must be a plain dict, "
            f"not {type(got).__name__}.",
            details={"got": type(got).__name__},
        )


class InvalidLogLevelError(LogError, ValueError):
    def __init__(self, name: Any) -> None:
        super().__init__(
            f"Not a valid log level: {name!r}",
            code="INVALID_LOG_LEVEL",
            details={"level": name},
        )


class FlushError(LogError):
    """One or more children of a fan-out logger failed to flush.

    ``details["failures"]`` maps each failing child name to its exception.
    """

    def __init__(self, failures: dict[str, BaseException]) -> None:
        names = ", ".join(sorted(failures))
        super().__init__(
            f"Failed to flush loggers: {names}",
            code="FLUSH_FAILED",
            details={"failures": failures},
        )
