"""
Capture the messages reaching a ``MultiLogger`` in tests.

Each helper temporarily replaces all children of the root with a single
``MemLogger`` named ``default`` and restores the previous children afterwards,
even if the callable raised.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from .formatters import message_format_json_static
from .multi import MultiLogger
from .sinks import MemLogger


def record_logs(root: MultiLogger, fn: Callable[[], Any], **opts: Any) -> list[Any]:
    """Run ``fn`` and return everything logged to ``root`` meanwhile.

    ``opts`` configure the recording ``MemLogger``; without a formatter the
    message dicts themselves are returned.
    """
    backup = root.loggers
    logger = MemLogger(**opts)
    root.loggers = {"default": logger}
    try:
        fn()
    finally:
        root.loggers = backup
    return logger.buf


def assert_logs(root: MultiLogger, fn: Callable[[], Any], logs: list[Any], **opts: Any) -> None:
    """Assert that running ``fn`` logs exactly ``logs``.

    Messages are compared in the json format without timestamp unless a
    different ``formatter`` is given.
    """
    recorded = record_logs(root, fn, **{"formatter": message_format_json_static, **opts})
    if recorded != logs:
        raise AssertionError(f"Recorded logs differ from expected:\n  recorded: {recorded!r}\n  expected: {logs!r}")


async def record_async_logs(root: MultiLogger, fn: Callable[[], Awaitable[Any]], **opts: Any) -> list[Any]:
    backup = root.loggers
    logger = MemLogger(**opts)
    root.loggers = {"default": logger}
    try:
        await fn()
    finally:
        root.loggers = backup
    return logger.buf


async def assert_async_logs(
    root: MultiLogger, fn: Callable[[], Awaitable[Any]], logs: list[Any], **opts: Any
) -> None:
    recorded = await record_async_logs(root, fn, **{"formatter": message_format_json_static, **opts})
    if recorded != logs:
        raise AssertionError(f"Recorded logs differ from expected:\n  recorded: {recorded!r}\n  expected: {logs!r}")
