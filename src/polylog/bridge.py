"""
structlog integration.

Routes events of structlog bound loggers into a polylog logger:

```python
configure_structlog(root)
log = get_logger("billing")
log.warning("charge declined", customer=42)
```

The event becomes a ``warn`` message ``["charge declined"]`` with the fields
``logger="billing"`` and ``customer=42``.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

from .base import Logger
from .dispatch import current_root_logger
from .levels import LogLevel, numeric_log_level
from .message import make_log_message

# structlog method name -> polylog level
METHOD_LEVELS: dict[str, str] = {
    "critical": "fatal",
    "fatal": "fatal",
    "exception": "error",
    "error": "error",
    "err": "error",
    "warning": "warn",
    "warn": "warn",
    "info": "info",
    "msg": "info",
    "debug": "debug",
    "notset": "silly",
}

# polylog level -> least severe stdlib level that still lets it through
STRUCTLOG_MIN_LEVELS: dict[str, int] = {
    "fatal": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "verbose": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
    "silly": logging.NOTSET,
}


def _exception_from(exc_info: Any) -> BaseException | None:
    if isinstance(exc_info, BaseException):
        return exc_info
    if isinstance(exc_info, tuple):
        return exc_info[1]
    if exc_info:
        return sys.exc_info()[1]
    return None


class ForwardToLogger:
    """Final structlog processor handing each event to a polylog logger.

    Without a logger the current root logger is resolved per event. Always
    raises ``structlog.DropEvent`` so the wrapped logger never renders
    anything itself.
    """

    def __init__(self, logger: Logger | None = None) -> None:
        self.logger = logger

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        fields = dict(event_dict)
        event = fields.pop("event", None)
        fields["logger"] = fields.pop("_name", None) or fields.get("logger") or "root"

        exception = _exception_from(fields.pop("exc_info", None))
        if exception is not None:
            fields["exception"] = exception

        fields["level"] = METHOD_LEVELS.get(method_name, "info")
        fields["message"] = [] if event is None else [event]

        target = self.logger if self.logger is not None else current_root_logger()
        target.log(make_log_message(fields))
        raise structlog.DropEvent


def configure_structlog(logger: Logger | None = None, *, level: str | LogLevel = "silly") -> None:
    """Configure structlog globally to forward into ``logger``."""
    numeric_log_level(level)
    key = level.value if isinstance(level, LogLevel) else level

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            ForwardToLogger(logger),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(STRUCTLOG_MIN_LEVELS[key]),
        context_class=dict,
        logger_factory=structlog.ReturnLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structlog bound logger whose events carry ``logger=name``."""
    return structlog.get_logger(_name=name or "root")
