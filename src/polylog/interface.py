"""
Call-site front-ends turning ``print``-style arguments into messages.
"""

from __future__ import annotations

from functools import partial
from typing import Any

from .base import Filter, Logger, derive_logger, identity
from .dispatch import current_root_logger, handle_logging_exceptions
from .errors import InvalidFieldsError
from .levels import LogLevel, numeric_log_level
from .message import Message, make_log_message


def _intersperse(values: tuple[Any, ...] | list[Any], separator: Any) -> list[Any]:
    result: list[Any] = []
    for i, value in enumerate(values):
        if i:
            result.append(separator)
        result.append(value)
    return result


class InterfaceBase:
    """Forwards messages to one logger after applying its own filter and level.

    Both stages apply: a message must pass the interface's filter and level
    and then the target logger's. Without ``logger`` the root logger current
    at call time (see ``use_root_logger``) is the target.
    """

    options: tuple[str, ...] = ("logger", "level", "filter", "default_fields")

    def __init__(
        self,
        *,
        logger: Logger | None = None,
        level: str | LogLevel = "silly",
        filter: Filter = identity,
        default_fields: dict[str, Any] | None = None,
    ) -> None:
        numeric_log_level(level)
        self.logger = logger
        self.level = level
        self.filter = filter
        self.default_fields = dict(default_fields or {})

    @property
    def target(self) -> Logger:
        return self.logger if self.logger is not None else current_root_logger()

    def derive(self, **opts: Any) -> InterfaceBase:
        return derive_logger(self, **opts)

    def _log_impl(self, fields: dict[str, Any]) -> None:
        handle_logging_exceptions(self, partial(self._forward, self.target, fields))

    def _forward(self, target: Logger, fields: dict[str, Any]) -> None:
        message: Message | None = self.filter({**self.default_fields, **make_log_message(fields)})
        if message is not None and numeric_log_level(message["level"]) <= numeric_log_level(self.level):
            target.log(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(logger={self.logger!r})"

    def __jsonify_for_log__(self) -> dict[str, Any]:
        return {"type": type(self).__name__, "level": getattr(self.level, "value", self.level)}


class SimpleInterface(InterfaceBase):
    """The everyday logging front-end.

    The plain methods (``info``, ``warn``, ...) log their arguments joined by
    spaces, similar to ``print``:

    ```python
    log = SimpleInterface(logger=root)
    log.info("Processed", 42, "items")
    ```

    The ``*_fields`` methods additionally take a dict of custom fields as the
    last argument. The dict is mandatory and its fields take precedence over
    the assembled ``message`` and ``level``:

    ```python
    log.info_fields("Hello", {"request_id": "abc"})

    # Logs "Fooled!" at level error with the given timestamp.
    log.silly_fields("Hello World", {
        "level": "error",
        "timestamp": datetime(2000, 1, 1),
        "message": ["Fooled!"],
    })

    log.verbose_fields("Hello")  # raises InvalidFieldsError
    ```
    """

    def _log_level(self, level: str, *msg: Any) -> None:
        if not msg:
            raise InvalidFieldsError(None)
        *parts, fields = msg
        if not isinstance(fields, dict):
            raise InvalidFieldsError(fields)

        self._log_impl({"message": _intersperse(parts, " "), "level": level, **fields})

    def log(self, *msg: Any) -> None:
        self._log_level("info", *msg, {})

    def fatal(self, *msg: Any) -> None:
        self._log_level("fatal", *msg, {})

    def error(self, *msg: Any) -> None:
        self._log_level("error", *msg, {})

    def warn(self, *msg: Any) -> None:
        self._log_level("warn", *msg, {})

    def info(self, *msg: Any) -> None:
        self._log_level("info", *msg, {})

    def verbose(self, *msg: Any) -> None:
        self._log_level("verbose", *msg, {})

    def debug(self, *msg: Any) -> None:
        self._log_level("debug", *msg, {})

    def trace(self, *msg: Any) -> None:
        self._log_level("trace", *msg, {})

    def silly(self, *msg: Any) -> None:
        self._log_level("silly", *msg, {})

    def log_fields(self, *msg: Any) -> None:
        self._log_level("info", *msg)

    def fatal_fields(self, *msg: Any) -> None:
        self._log_level("fatal", *msg)

    def error_fields(self, *msg: Any) -> None:
        self._log_level("error", *msg)

    def warn_fields(self, *msg: Any) -> None:
        self._log_level("warn", *msg)

    def info_fields(self, *msg: Any) -> None:
        self._log_level("info", *msg)

    def verbose_fields(self, *msg: Any) -> None:
        self._log_level("verbose", *msg)

    def debug_fields(self, *msg: Any) -> None:
        self._log_level("debug", *msg)

    def trace_fields(self, *msg: Any) -> None:
        self._log_level("trace", *msg)

    def silly_fields(self, *msg: Any) -> None:
        self._log_level("silly", *msg)
