"""
Logger pipeline shared by every sink.

A sink is a ``LoggerBase`` subclass implementing ``_log_impl``; formatting
is composed in through the optional ``formatter`` attribute rather than a
dedicated formatted-logger base class. Each ``log()`` call runs
``run_pipeline`` inside the dispatch wrapper:

    filter -> level gate -> default fields merge -> formatter -> _log_impl
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any, ClassVar, Protocol, runtime_checkable

from .dispatch import handle_logging_exceptions
from .errors import ConfigurationError
from .levels import LogLevel, numeric_log_level
from .message import Message

Formatter = Callable[[Message], Any]
Filter = Callable[[Message], Message | None]


@runtime_checkable
class Logger(Protocol):
    """Anything that accepts messages.

    ``log`` must never raise. ``flush`` may return an awaitable that resolves
    once buffered messages have been delivered (best effort).
    """

    def log(self, message: Message) -> None: ...

    def flush(self) -> Awaitable[None] | None: ...


def identity(value: Any) -> Any:
    return value


def run_pipeline(logger: LoggerBase, message: Message) -> Any:
    fields = logger.filter(message)
    if fields is None:
        return None

    if numeric_log_level(fields["level"]) > numeric_log_level(logger.level):
        return None

    merged = {**logger.default_fields, **fields}
    payload = merged if logger.formatter is None else logger.formatter(merged)
    return logger._log_impl(payload, merged)


def derive_logger(obj: Any, **opts: Any) -> Any:
    """Create a copy of a logger or interface with some options replaced.

    Configuration is copied by reference; ``default_fields`` is merged, the
    new values layered over the parent's, so neither parent nor child
    observe each other's later changes to that dict. Per-instance sink state
    (buffers, sends in flight) starts out empty in the copy; see
    ``LoggerBase._fresh_state``.
    """
    unknown = sorted(set(opts) - set(type(obj).options))
    if unknown:
        raise ConfigurationError(
            f"Unknown named options given to {type(obj).__name__}: {unknown}",
            details={"unknown": unknown},
        )

    default_fields = {**obj.default_fields, **(opts.pop("default_fields", None) or {})}
    if "level" in opts:
        numeric_log_level(opts["level"])

    clone = copy.copy(obj)
    fresh_state = getattr(clone, "_fresh_state", None)
    if callable(fresh_state):
        fresh_state()
    for name, value in opts.items():
        setattr(clone, name, value)
    clone.default_fields = default_fields
    return clone


class LoggerBase(ABC):
    """Shared configuration and dispatch for all sinks.

    Attributes (feel free to change them at runtime):
        level: Least severe level delivered by this logger.
        filter: Transforms each message; returning ``None`` drops it.
        default_fields: Fields merged under every message.
        formatter: Optional callable producing the sink's representation.
    """

    options: ClassVar[tuple[str, ...]] = ("level", "filter", "default_fields", "formatter")

    def __init__(
        self,
        *,
        level: str | LogLevel = "silly",
        filter: Filter = identity,
        default_fields: dict[str, Any] | None = None,
        formatter: Formatter | None = None,
    ) -> None:
        numeric_log_level(level)
        self.level = level
        self.filter = filter
        self.default_fields = dict(default_fields or {})
        self.formatter = formatter

    def log(self, message: Message) -> None:
        handle_logging_exceptions(self, partial(run_pipeline, self, message))

    async def flush(self) -> None:
        return None

    def derive(self, **opts: Any) -> LoggerBase:
        return derive_logger(self, **opts)

    def _fresh_state(self) -> None:
        """Replace mutable per-instance state after a shallow copy."""

    @abstractmethod
    def _log_impl(self, payload: Any, fields: Message) -> Any:
        """Write one message; may return an awaitable for asynchronous sinks."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(level={str(getattr(self.level, 'value', self.level))!r})"

    def __jsonify_for_log__(self) -> dict[str, Any]:
        return {"type": type(self).__name__, "level": getattr(self.level, "value", self.level)}
