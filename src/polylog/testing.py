"""
A logger for asserting on human readable output in tests.
"""

from __future__ import annotations

import re
from typing import Any

from .interface import SimpleInterface
from .message import serialize_message
from .sinks import MemLogger

ANSI_PATTERN = re.compile(
    r"[\u001B\u009B][\[\]()#;?]*(?:(?:(?:[a-zA-Z\d]*(?:;[a-zA-Z\d]*)*)?\u0007)"
    r"|(?:(?:\d{1,4}(?:;\d{0,4})*)?[\dA-PRZcf-ntqry=><~]))"
)


class TestLogger(SimpleInterface):
    """``SimpleInterface`` recording into its own ``MemLogger``."""

    __test__ = False

    def __init__(self, *, level: str = "debug", keep_ansi: bool = False, **opts: Any) -> None:
        self.mem = MemLogger()
        self.keep_ansi = keep_ansi
        super().__init__(logger=self.mem, level=level, **opts)

    def _render(self, fields: dict[str, Any]) -> str:
        text = serialize_message(fields.get("message"))
        return text if self.keep_ansi else ANSI_PATTERN.sub("", text)

    def get_output(self) -> str:
        """All messages so far as ``level: message`` lines."""
        return "".join(f"{msg['level']}: {self._render(msg)}\n" for msg in self.mem.buf)


def create_test_logger(level: str = "debug", keep_ansi: bool = False) -> TestLogger:
    return TestLogger(level=level, keep_ansi=keep_ansi)
