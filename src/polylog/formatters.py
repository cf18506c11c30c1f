"""
Message formats and color utilities.

A message format is a plain callable turning a ``Message`` into whatever the
sink writes: a string for streams and files, a JSON-like dict for structured
sinks.
"""

from __future__ import annotations

from typing import Any

import orjson

from .message import Message, serialize_message, try_inspect
from .serialize import jsonify_for_log
from .timestamp import PreciseTimestamp

# =============================================================================
# ANSI Color Codes
# =============================================================================

COLORS = {
    "reset": "\033[0m",
    "black": "\033[30m",
    # Level backgrounds
    "fatal": "\033[41m",  # Red
    "error": "\033[41m",  # Red
    "warn": "\033[43m",  # Yellow
    "verbose": "\033[104m",  # Bright blue
    "other": "\033[100m",  # Gray
}


def colorize(text: str, *colors: str) -> str:
    """Apply ANSI colors to text."""
    return f"{''.join(COLORS.get(c, '') for c in colors)}{text}{COLORS['reset']}"


# =============================================================================
# JSON Serialization
# =============================================================================


def orjson_dumps(v: Any, *, default: Any = try_inspect) -> str:
    """Fast JSON serialization using orjson."""
    return orjson.dumps(v, default=default, option=orjson.OPT_UTC_Z | orjson.OPT_NAIVE_UTC).decode()


# =============================================================================
# Message Formats
# =============================================================================

_RESERVED = ("level", "timestamp", "message")


def _split(fields: Message) -> tuple[str, list[Any], dict[str, Any]]:
    level = fields.get("level", "info")
    message = fields.get("message") or []
    rest = {k: v for k, v in fields.items() if k not in _RESERVED}
    return level, message, rest


def _with_fields(message: list[Any], rest: dict[str, Any]) -> list[Any]:
    return [*message, " ", rest] if rest else message


def message_format_simple(fields: Message) -> str:
    """``[LEVEL] message {extra fields}``

    Used by tests and in-memory logging; contains no timestamp.
    """
    level, message, rest = _split(fields)
    return f"[{level.upper()}] {serialize_message(_with_fields(message, rest))}"


def message_format_technical(fields: Message) -> str:
    """``[LEVEL YYYY-MM-DD hh:mm:ss.nnnnnnnnn Z] message {extra fields}``

    Default for file and stream loggers; when working with many log files
    you want the full timestamp.
    """
    level, message, rest = _split(fields)
    timestamp = PreciseTimestamp(fields.get("timestamp") or PreciseTimestamp())
    ts = timestamp.isoformat().replace("T", " ").replace("Z", " Z")
    return f"[{level.upper()} {ts}] {serialize_message(_with_fields(message, rest))}"


def message_format_console(fields: Message) -> str:
    """Colored format for terminals.

    Info messages are printed bare; other levels get a colored ``[LEVEL]``
    prefix and fatal messages are colored entirely.
    """
    level, message, rest = _split(fields)
    text = serialize_message(_with_fields(message, rest))
    prefix = f"[{level.upper()}]"

    if level == "info":
        return text
    if level == "fatal":
        return colorize(f"{prefix} {text}", "fatal", "black")
    if level in ("error", "warn", "verbose"):
        return f"{colorize(prefix, level, 'black')} {text}"
    return f"{colorize(prefix, 'other')} {text}"


def message_format_json(fields: Message) -> dict[str, Any]:
    """JSON-like dict for structured logging.

    ``message`` is rendered to a string; all other fields are converted with
    ``jsonify_for_log``. ``level`` and ``timestamp`` are filled in when
    missing.
    """
    rest = {k: v for k, v in fields.items() if k != "message"}
    data = jsonify_for_log({"message": serialize_message(fields.get("message")), **rest})
    data.setdefault("level", "info")
    data.setdefault("timestamp", PreciseTimestamp().isoformat())
    return data


def message_format_json_string(fields: Message) -> str:
    return orjson_dumps(message_format_json(fields))


def message_format_json_static(fields: Message) -> dict[str, Any]:
    """``message_format_json`` without the timestamp, for comparing in tests."""
    data = message_format_json(fields)
    data.pop("timestamp", None)
    return data


FORMATTERS = {
    "simple": message_format_simple,
    "technical": message_format_technical,
    "console": message_format_console,
    "json": message_format_json_string,
}
