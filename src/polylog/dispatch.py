"""
Exception-safe dispatch of logging work.

Every logger, interface and fan-out child runs its work through
``handle_logging_exceptions``: logging must never take the caller down.
Failures are turned into diagnostic records delivered to the current root
logger one event-loop tick later, so messages already in flight get printed
before the noise about the failure.

Root logger resolution is explicit: callers construct a root logger and make
it current for a scope with ``use_root_logger``. When nothing is current a
stderr ``ConsoleLogger`` is used.
"""

from __future__ import annotations

import asyncio
import inspect
import sys
import time
import weakref
from collections.abc import Callable, Hashable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from functools import partial
from typing import TYPE_CHECKING, Any

from .timestamp import PreciseTimestamp

if TYPE_CHECKING:
    from .base import Logger, Message

FAILURE_MESSAGE = "Encountered exception while logging!"

# Without an event loop a key stays debounced this long, or until the
# component next logs successfully.
SYNC_DEBOUNCE_SECONDS = 1.0

# =============================================================================
# Context State
# =============================================================================

_root_logger: ContextVar[Logger | None] = ContextVar("polylog_root_logger", default=None)

# Set while a diagnostic is being delivered. Tasks and callbacks spawned during
# delivery inherit it, which bounds failures-about-failures to zero reports.
_reporting_failure: ContextVar[bool] = ContextVar("polylog_reporting_failure", default=False)

# Debounce keys with a report already scheduled, per event loop.
_pending_reports: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, set[Hashable]] = (
    weakref.WeakKeyDictionary()
)

# Debounce keys reported without an event loop, with the time of the report.
_sync_reports: dict[Hashable, float] = {}
_clock = time.monotonic

_fallback_logger: Logger | None = None


def current_root_logger() -> Logger:
    """Return the root logger current in this context."""
    root = _root_logger.get()
    if root is not None:
        return root

    global _fallback_logger
    if _fallback_logger is None:
        from .sinks import ConsoleLogger

        _fallback_logger = ConsoleLogger(level="info")
    return _fallback_logger


@contextmanager
def use_root_logger(logger: Logger) -> Iterator[Logger]:
    """Make ``logger`` the root logger for the duration of the block.

    Interfaces without an explicit target and all diagnostics resolve the
    root logger at call time, including from tasks created inside the block.
    """
    token = _root_logger.set(logger)
    try:
        yield logger
    finally:
        _root_logger.reset(token)


def install_root_logger(logger: Logger | None) -> None:
    """Make ``logger`` the root logger for the rest of the current context.

    Meant for application entry points; tasks and threads started with a
    copy of the context afterwards see it too. ``None`` restores the stderr
    fallback.
    """
    _root_logger.set(logger)


def is_reporting_failure() -> bool:
    return _reporting_failure.get()


# =============================================================================
# Diagnostics
# =============================================================================


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def _emit(message: Message) -> None:
    token = _reporting_failure.set(True)
    try:
        current_root_logger().log(message)
    except Exception as exc:
        # Root loggers are not supposed to raise; nothing is left to report to.
        sys.stderr.write(f"Utter failure logging {message.get('message')!r}: {exc!r}\n")
    finally:
        _reporting_failure.reset(token)


def _deferred_emit(loop: asyncio.AbstractEventLoop, key: Hashable | None, message: Message) -> None:
    if key is not None:
        _pending_reports.get(loop, set()).discard(key)
    _emit(message)


def _debounced_without_loop(key: Hashable) -> bool:
    now = _clock()
    reported = _sync_reports.get(key)
    if reported is not None and now - reported < SYNC_DEBOUNCE_SECONDS:
        return True

    if len(_sync_reports) >= 1024:
        for stale in [k for k, t in _sync_reports.items() if now - t >= SYNC_DEBOUNCE_SECONDS]:
            del _sync_reports[stale]
    _sync_reports[key] = now
    return False


def _failure_key(component: Any) -> Hashable:
    return ("failure", id(component))


def report_diagnostic(fields: dict[str, Any], *, key: Hashable | None = None) -> None:
    """Deliver a diagnostic record to the root logger on the next loop tick.

    Without a running event loop the record is delivered immediately. While a
    report with the same ``key`` is pending, further reports for that key are
    dropped; without a loop a report counts as pending for
    ``SYNC_DEBOUNCE_SECONDS`` or until the failing component succeeds again.
    Nothing is reported while another diagnostic is being delivered.
    """
    if _reporting_failure.get():
        return

    message = {"timestamp": PreciseTimestamp(), **fields}

    loop = _running_loop()
    if loop is None:
        if key is None or not _debounced_without_loop(key):
            _emit(message)
        return

    if key is not None:
        pending = _pending_reports.setdefault(loop, set())
        if key in pending:
            return
        pending.add(key)

    loop.call_soon(_deferred_emit, loop, key, message)


def _report_failure(component: Any, exc: BaseException) -> None:
    report_diagnostic(
        {
            "level": "error",
            "message": [FAILURE_MESSAGE],
            "application": "infrastructure",
            "subsystem": "polylog-error-handling",
            "exception": exc,
            "logger": component,
        },
        key=_failure_key(component),
    )


# =============================================================================
# Dispatch Wrapper
# =============================================================================


def _observe(component: Any, future: asyncio.Future[Any]) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        _report_failure(component, exc)


def _schedule(component: Any, awaitable: Any) -> None:
    loop = _running_loop()
    if loop is None:
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        raise RuntimeError(f"{type(component).__name__} produced asynchronous work outside of an event loop")

    future = asyncio.ensure_future(awaitable, loop=loop)
    future.add_done_callback(partial(_observe, component))


def handle_logging_exceptions(component: Any, work: Callable[[], Any]) -> None:
    """Run ``work`` so that no failure reaches the caller.

    ``work`` runs synchronously; if it returns an awaitable that is scheduled
    on the running loop and observed for failure. Any failure is reported as a
    diagnostic naming ``component``, debounced per component.
    """
    try:
        result = work()
        if inspect.isawaitable(result):
            _schedule(component, result)
        elif _sync_reports:
            _sync_reports.pop(_failure_key(component), None)
    except Exception as exc:
        _report_failure(component, exc)
