"""
Fan-out logger.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Iterable, Mapping
from functools import partial
from typing import Any

from .base import Logger, LoggerBase
from .dispatch import handle_logging_exceptions
from .errors import FlushError
from .message import Message


async def _settle(logger: Logger) -> None:
    result = logger.flush()
    if inspect.isawaitable(result):
        await result


class MultiLogger(LoggerBase):
    """Forwards every message to all loggers in ``loggers``.

    ``loggers`` is a plain dict from name to logger; owners may add, remove
    or replace entries (or the whole dict) at any time:

    ```python
    root = MultiLogger({"default": ConsoleLogger(level="info")})

    root.loggers["logfile"] = FileLogger("/var/log/app.log")
    del root.loggers["logfile"]
    root.loggers = {"default": ConsoleLogger(level="debug")}
    ```

    Each child is called inside its own dispatch wrapper on a snapshot of the
    children taken when ``log()`` starts, so one failing child never keeps a
    message from reaching the others.
    """

    options = LoggerBase.options + ("loggers",)

    def __init__(self, loggers: Mapping[str, Logger] | Iterable[tuple[str, Logger]] = (), **opts: Any):
        super().__init__(**opts)
        self.loggers: dict[str, Logger] = dict(loggers)

    def _log_impl(self, payload: Any, fields: Message) -> None:
        for _name, sub in list(self.loggers.items()):
            handle_logging_exceptions(sub, partial(sub.log, payload))

    async def flush(self) -> None:
        """Flush every child, waiting for all of them to settle.

        Raises:
            FlushError: After all children settled, if any of them failed.
        """
        children = list(self.loggers.items())
        results = await asyncio.gather(*(_settle(sub) for _, sub in children), return_exceptions=True)

        failures = {name: res for (name, _), res in zip(children, results) if isinstance(res, BaseException)}
        if failures:
            raise FlushError(failures)
