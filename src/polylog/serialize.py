"""
Convert arbitrary values into JSON-representable trees for log output.

Used by the json message formats. Conversion is a converter table keyed by
type (``functools.singledispatch``); the most specific registered type wins,
everything else goes through the generic fallback which honours, in order:

- a ``__jsonify_for_log__()`` hook,
- exceptions,
- plain-form hooks (``model_dump()``, dataclasses, ``to_dict()``),
- the instance ``__dict__``, tagged with the type name.

Reference cycles are rendered as ``"[Circular]"``.
"""

from __future__ import annotations

import dataclasses
import traceback
from collections.abc import Callable, Mapping, Set
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from functools import singledispatch
from pathlib import PurePath
from typing import Any
from urllib.parse import ParseResult, SplitResult
from uuid import UUID

from pydantic import AnyUrl

from .message import try_inspect
from .timestamp import PreciseTimestamp

CIRCULAR = "[Circular]"

_INT_MIN = -(2**63)
_UINT_MAX = 2**64 - 1


def jsonify_for_log(value: Any) -> Any:
    """Convert ``value`` into primitives, lists and str-keyed dicts."""
    return _convert(value, set())


def register_converter(cls: type, func: Callable[[Any], Any]) -> None:
    """Register ``func`` as the conversion for instances of ``cls``."""
    _convert.register(cls, lambda value, seen: func(value))


def _guarded(value: Any, seen: set[int], build: Callable[[], Any]) -> Any:
    key = id(value)
    if key in seen:
        return CIRCULAR
    seen.add(key)
    try:
        return build()
    finally:
        seen.discard(key)


def _key(key: Any) -> str:
    if isinstance(key, str):
        return key
    if key is None or isinstance(key, (int, float)):
        return str(key)
    return try_inspect(key)


def _exception(exc: BaseException, seen: set[int]) -> dict[str, Any]:
    cls = type(exc)
    name = cls.__qualname__ if cls.__module__ == "builtins" else f"{cls.__module__}.{cls.__qualname__}"
    try:
        message = str(exc)
    except Exception:
        message = try_inspect(exc)

    result: dict[str, Any] = {
        "type": cls.__name__,
        "name": name,
        "message": message,
        "stack": "".join(traceback.format_exception(exc)),
        "code": _convert(getattr(exc, "code", None), seen),
    }
    if exc.__cause__ is not None:
        result["causedBy"] = _guarded(exc.__cause__, seen, lambda: _exception(exc.__cause__, seen))
    return result


# =============================================================================
# Converter Table
# =============================================================================


@singledispatch
def _convert(value: Any, seen: set[int]) -> Any:
    hook = getattr(value, "__jsonify_for_log__", None)
    if callable(hook) and not isinstance(value, type):
        return hook()

    if isinstance(value, BaseException):
        return _guarded(value, seen, lambda: _exception(value, seen))

    model_dump = getattr(value, "model_dump", None)
    if callable(model_dump) and not isinstance(value, type):
        return model_dump(mode="json")

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _guarded(
            value,
            seen,
            lambda: {
                "type": type(value).__name__,
                **{f.name: _convert(getattr(value, f.name), seen) for f in dataclasses.fields(value)},
            },
        )

    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict) and not isinstance(value, type):
        return to_dict()

    attrs = getattr(value, "__dict__", None)
    if attrs is None:
        return try_inspect(value)
    return _guarded(
        value,
        seen,
        lambda: {
            "type": type(value).__name__,
            **{_key(k): _convert(v, seen) for k, v in attrs.items()},
        },
    )


@_convert.register(str)
@_convert.register(float)
@_convert.register(type(None))
def _(value: Any, seen: set[int]) -> Any:
    return value


@_convert.register(int)
def _(value: int, seen: set[int]) -> Any:
    # orjson rejects integers outside the 64-bit range without consulting `default`
    if _INT_MIN <= value <= _UINT_MAX:
        return value
    return str(value)


@_convert.register(dict)
def _(value: dict, seen: set[int]) -> Any:
    return _guarded(value, seen, lambda: {_key(k): _convert(v, seen) for k, v in value.items()})


@_convert.register(list)
@_convert.register(tuple)
def _(value: list | tuple, seen: set[int]) -> Any:
    return _guarded(value, seen, lambda: [_convert(v, seen) for v in value])


@_convert.register(datetime)
def _(value: datetime, seen: set[int]) -> Any:
    return PreciseTimestamp(value).isoformat()


@_convert.register(date)
@_convert.register(time)
@_convert.register(PreciseTimestamp)
def _(value: date | time | PreciseTimestamp, seen: set[int]) -> Any:
    return value.isoformat()


@_convert.register(ParseResult)
@_convert.register(SplitResult)
def _(value: ParseResult | SplitResult, seen: set[int]) -> Any:
    return value.geturl()


@_convert.register(AnyUrl)
@_convert.register(PurePath)
@_convert.register(UUID)
@_convert.register(Decimal)
def _(value: Any, seen: set[int]) -> Any:
    return str(value)


@_convert.register(Enum)
def _(value: Enum, seen: set[int]) -> Any:
    return _convert(value.value, seen)


@_convert.register(Mapping)
def _(value: Mapping, seen: set[int]) -> Any:
    return _guarded(
        value,
        seen,
        lambda: {"type": "Map", "values": [[_convert(k, seen), _convert(v, seen)] for k, v in value.items()]},
    )


@_convert.register(Set)
def _(value: Set, seen: set[int]) -> Any:
    return _guarded(value, seen, lambda: {"type": "Set", "values": [_convert(v, seen) for v in value]})
