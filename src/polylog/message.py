"""
The canonical log record and helpers to render its display sequence.
"""

from __future__ import annotations

from typing import Any

from .dispatch import report_diagnostic
from .levels import LogLevel
from .timestamp import PreciseTimestamp

Message = dict[str, Any]

COULD_NOT_INSPECT = "<<COULD NOT INSPECT>>"


def make_log_message(fields: dict[str, Any] | None = None) -> Message:
    """Normalize ``fields`` into a ``Message``.

    ``level`` defaults to ``info`` and ``timestamp`` to now; a bare
    ``message`` value is wrapped into a single-element list.
    """
    result: Message = {"level": "info", "timestamp": PreciseTimestamp(), **(fields or {})}

    if isinstance(result["level"], LogLevel):
        result["level"] = result["level"].value

    if "message" in result:
        message = result["message"]
        if isinstance(message, tuple):
            result["message"] = list(message)
        elif not isinstance(message, list):
            result["message"] = [message]

    return result


def try_inspect(value: Any, *, recursive: bool = False) -> str:
    """``repr()`` that never raises.

    Falls back to the default object representation when a custom
    ``__repr__`` is broken, then to a placeholder. The underlying errors are
    reported as diagnostics without blocking the caller.
    """
    errors: list[Exception] = []
    text: str | None = None

    try:
        text = repr(value)
    except Exception as exc:
        errors.append(exc)

    if text is None:
        try:
            text = object.__repr__(value)
        except Exception as exc:
            errors.append(exc)

    if not recursive:
        for exc in errors:
            report_diagnostic(
                {
                    "level": "error",
                    "message": [f"Error while inspecting object for log message: {try_inspect(exc, recursive=True)}"],
                }
            )

    return COULD_NOT_INSPECT if text is None else text


def serialize_message(message: Any) -> str:
    """Render a display sequence the way ``print`` would, minus separators.

    Strings are used verbatim; everything else goes through ``try_inspect``.
    """
    if message is None:
        return ""
    if isinstance(message, (list, tuple)):
        return "".join(v if isinstance(v, str) else try_inspect(v) for v in message)

    # Technically invalid; handled gracefully but reported.
    report_diagnostic(
        {
            "level": "warn",
            "message": [f"serialize_message takes a list or None as message, not {type(message).__name__}!"],
            "invalid_message": message,
        }
    )
    return message if isinstance(message, str) else try_inspect(message)
