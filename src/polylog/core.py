"""
Core logging configuration and initialization logic.
"""

from __future__ import annotations

from typing import Any

from .base import Logger
from .config import LoggingSettings
from .dispatch import install_root_logger
from .errors import ConfigurationError
from .formatters import FORMATTERS
from .interceptors import intercept_stdlib_logging
from .interface import SimpleInterface
from .multi import MultiLogger
from .sinks import ConsoleLogger, FileLogger

# =============================================================================
# Global State
# =============================================================================

_configured: MultiLogger | None = None


def get_logger(name: str | None = None, *, root: Logger | None = None) -> SimpleInterface:
    """Get an interface whose messages carry ``logger=name``.

    Without ``root`` messages go to the root logger current at call time.
    """
    return SimpleInterface(logger=root, default_fields={"logger": name or "root"})


# =============================================================================
# Configuration Logic
# =============================================================================


def _create_sinks(settings: LoggingSettings) -> dict[str, Logger]:
    """Create the sinks named in ``settings.sinks``."""
    sinks: dict[str, Logger] = {}
    for name in settings.sink_names:
        if name == "console":
            sinks["default"] = ConsoleLogger(formatter=FORMATTERS[settings.format.value])
        elif name == "file":
            sinks["file"] = FileLogger(
                settings.file_path,
                formatter=FORMATTERS[settings.file_format.value],
                max_bytes=settings.file_max_bytes,
                backup_count=settings.file_backup_count,
            )
        else:
            raise ConfigurationError(f"Unknown sink: {name!r}", details={"sink": name})
    return sinks


def _close_sinks(root: MultiLogger) -> None:
    for sink in root.loggers.values():
        if isinstance(sink, FileLogger):
            sink.close()


def configure_logging(settings: LoggingSettings | None = None, **overrides: Any) -> MultiLogger:
    """
    Configure the unified logging system.

    Builds a ``MultiLogger`` with one child per configured sink (``default``
    for the console, ``file`` for the file sink) and installs it as root
    logger of the current context. File sinks of a previous configuration
    are closed.

    Args:
        settings: Settings to use (default: read from the environment)
        **overrides: Individual ``LoggingSettings`` fields taking precedence

    Raises:
        ConfigurationError: If an unknown sink name is configured.
    """
    global _configured

    if settings is None:
        settings = LoggingSettings(**overrides)
    elif overrides:
        settings = LoggingSettings(**{**settings.model_dump(), **overrides})

    root = MultiLogger(
        _create_sinks(settings),
        level=settings.level,
        default_fields=settings.default_fields,
    )

    if _configured is not None:
        _close_sinks(_configured)
    _configured = root
    install_root_logger(root)

    if settings.intercept_stdlib:
        intercept_stdlib_logging(root)

    return root
