"""
Interceptors for capturing standard library logs.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .base import Logger
from .dispatch import current_root_logger
from .message import make_log_message
from .timestamp import PreciseTimestamp

# (minimum levelno, polylog level), most severe first
STDLIB_LEVELS: tuple[tuple[int, str], ...] = (
    (logging.CRITICAL, "fatal"),
    (logging.ERROR, "error"),
    (logging.WARNING, "warn"),
    (logging.INFO, "info"),
    (15, "verbose"),
    (logging.DEBUG, "debug"),
    (5, "trace"),
)


def level_from_stdlib(levelno: int) -> str:
    for threshold, name in STDLIB_LEVELS:
        if levelno >= threshold:
            return name
    return "silly"


class RedirectStdLibHandler(logging.Handler):
    """
    Redirect standard library logging records into a polylog logger.
    This ensures third-party logs (uvicorn, httpx, etc.) pass through the
    same sinks as the application's own messages.
    """

    def __init__(self, logger: Logger | None = None, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.logger = logger

    def emit(self, record: logging.LogRecord) -> None:
        try:
            # structlog's own stdlib integration already forwards its events
            if "structlog" in record.name:
                return

            fields = {
                "level": level_from_stdlib(record.levelno),
                "timestamp": PreciseTimestamp(record.created * 1000),
                "message": [record.getMessage()],
                "logger": self._simplify_logger_name(record.name),
            }
            if record.exc_info and record.exc_info[1] is not None:
                fields["exception"] = record.exc_info[1]

            target = self.logger if self.logger is not None else current_root_logger()
            target.log(make_log_message(fields))
        except Exception:
            self.handleError(record)

    @staticmethod
    def _simplify_logger_name(name: str) -> str:
        """
        Simplify a logger name for display.

        Rules:
        - "" -> "stdlib"
        - "uvicorn.access" -> "uvicorn.access"
        - Other -> keep last 2 parts
        """
        if not name:
            return "stdlib"

        parts = name.split(".")
        if len(parts) <= 2:
            return name
        return ".".join(parts[-2:])


def intercept_stdlib_logging(
    logger: Logger | None = None,
    *,
    level: int = logging.NOTSET,
    loggers: Iterable[str] = (),
) -> RedirectStdLibHandler:
    """Route all stdlib logging through ``logger``.

    Installs a ``RedirectStdLibHandler`` on the stdlib root logger, replacing
    one installed earlier. The named ``loggers`` have their own handlers
    removed and propagate to the root, so libraries that configured their
    own output are captured as well.
    """
    handler = RedirectStdLibHandler(logger)

    std_root = logging.getLogger()
    for existing in list(std_root.handlers):
        if isinstance(existing, RedirectStdLibHandler):
            std_root.removeHandler(existing)
    std_root.addHandler(handler)
    std_root.setLevel(level)

    for name in loggers:
        lg = logging.getLogger(name)
        lg.handlers = []
        lg.propagate = True

    return handler
