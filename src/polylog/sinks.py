"""
Concrete sinks.

Each sink is a ``LoggerBase`` configured with a default formatter and an
``_log_impl`` writing the formatted payload somewhere.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TextIO

from .base import Formatter, LoggerBase
from .formatters import message_format_console, message_format_json, message_format_technical
from .message import Message


class MemLogger(LoggerBase):
    """Collects messages in ``buf``.

    Without a formatter the merged message dicts themselves are stored.
    """

    def __init__(self, **opts: Any) -> None:
        super().__init__(**opts)
        self.buf: list[Any] = []

    def _fresh_state(self) -> None:
        self.buf = []

    def _log_impl(self, payload: Any, fields: Message) -> None:
        self.buf.append(payload)


class StreamLogger(LoggerBase):
    """Writes one line per message to any writable text stream."""

    options = LoggerBase.options + ("stream",)

    def __init__(self, stream: TextIO, *, formatter: Formatter | None = message_format_technical, **opts: Any):
        super().__init__(formatter=formatter, **opts)
        self.stream = stream

    def _log_impl(self, payload: Any, fields: Message) -> None:
        self.stream.write(f"{payload}\n")
        self.stream.flush()


class ConsoleLogger(LoggerBase):
    """Colored output for terminals.

    Args:
        stream: Output stream (default: ``sys.stderr`` at the time of writing)
    """

    options = LoggerBase.options + ("stream",)

    def __init__(
        self,
        *,
        stream: TextIO | None = None,
        formatter: Formatter | None = message_format_console,
        **opts: Any,
    ):
        super().__init__(formatter=formatter, **opts)
        self.stream = stream

    def _log_impl(self, payload: Any, fields: Message) -> None:
        stream = self.stream or sys.stderr
        stream.write(f"{payload}\n")
        stream.flush()


class FileLogger(LoggerBase):
    """Synchronous, durable file sink with optional size based rotation.

    Every message is written and flushed before ``log()`` returns, so nothing
    is lost if the process exits right after logging. For regular files this
    never blocks for long; for pipes, sockets and ttys it might.

    Args:
        target: Path of the file to append to, or an open file descriptor
            (which is not closed by ``close()``).
        max_bytes: Rotate once the file grows beyond this size (paths only).
        backup_count: Number of rotated files kept as ``<name>.1`` .. ``<name>.N``.
    """

    options = LoggerBase.options + ("max_bytes", "backup_count")

    def __init__(
        self,
        target: str | Path | int,
        *,
        formatter: Formatter | None = message_format_technical,
        max_bytes: int | None = None,
        backup_count: int = 5,
        **opts: Any,
    ):
        super().__init__(formatter=formatter, **opts)
        self.max_bytes = max_bytes
        self.backup_count = backup_count

        if isinstance(target, int):
            self._path: Path | None = None
            self._file = open(target, "a", encoding="utf-8", closefd=False)
        else:
            self._path = Path(target)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self._path, "a", encoding="utf-8")

    @property
    def path(self) -> Path | None:
        return self._path

    def _log_impl(self, payload: Any, fields: Message) -> None:
        self._file.write(f"{payload}\n")
        self._file.flush()
        self._maybe_rotate()

    def _backup_path(self, index: int) -> Path:
        return self._path.with_name(f"{self._path.name}.{index}")

    def _maybe_rotate(self) -> None:
        if self._path is None or self.max_bytes is None:
            return
        if self._path.stat().st_size <= self.max_bytes:
            return

        self._file.close()
        for i in range(self.backup_count - 1, 0, -1):
            src = self._backup_path(i)
            if src.exists():
                src.replace(self._backup_path(i + 1))
        if self.backup_count > 0:
            self._path.replace(self._backup_path(1))
        else:
            self._path.unlink()
        self._file = open(self._path, "a", encoding="utf-8")

    def close(self) -> None:
        self._file.close()


class AsyncSenderLogger(LoggerBase):
    """Hands every formatted message to an asynchronous ``send`` callable.

    This is the shape of network senders: delivery happens in the background
    and ``flush()`` waits for every send still in flight. Failed sends are
    reported as diagnostics, never raised. Requires a running event loop.
    """

    options = LoggerBase.options + ("send",)

    def __init__(
        self,
        send: Callable[[Any], Awaitable[None]],
        *,
        formatter: Formatter | None = message_format_json,
        **opts: Any,
    ):
        super().__init__(formatter=formatter, **opts)
        self.send = send
        self._pending: set[asyncio.Future[None]] = set()

    def _fresh_state(self) -> None:
        self._pending = set()

    def _log_impl(self, payload: Any, fields: Message) -> asyncio.Future[None]:
        loop = asyncio.get_running_loop()
        task = asyncio.ensure_future(self.send(payload), loop=loop)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def flush(self) -> None:
        while self._pending:
            await asyncio.wait(list(self._pending))
