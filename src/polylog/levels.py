"""
Severity levels.

Superset of the levels used by console, bunyan and winston style loggers.
Lower rank means more severe.
"""

from __future__ import annotations

from enum import Enum

from .errors import InvalidLogLevelError


class LogLevel(str, Enum):
    FATAL = "fatal"
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    VERBOSE = "verbose"
    DEBUG = "debug"
    TRACE = "trace"
    SILLY = "silly"


LOG_LEVELS: dict[str, int] = {level.value: rank for rank, level in enumerate(LogLevel)}


def numeric_log_level(name: str | LogLevel) -> int:
    """Convert a level name into its severity rank.

    Raises:
        InvalidLogLevelError: If the name is not one of the eight levels.
    """
    key = name.value if isinstance(name, LogLevel) else name
    try:
        return LOG_LEVELS[key]
    except (KeyError, TypeError):
        raise InvalidLogLevelError(name) from None
