"""
High resolution, wall-clock calibrated timestamps.

Two ``datetime.now()`` calls in quick succession will often yield the same
value, which makes log records written within the same millisecond
indistinguishable and lets them be displayed out of order. Raw monotonic
clock readings do not have that problem but are only meaningful inside the
process that took them.

``PreciseTimestamp`` bridges the two: it samples the monotonic clock at
nanosecond resolution and maps it onto wall-clock time through a process-wide
calibration offset. The offset is recomputed whenever the two clocks drift
apart by more than ``CLOCK_JUMP_THRESHOLD_MS`` (hibernation, an administrator
adjusting the time, NTP steps).

Precision relative to UTC is bounded by how well the system clock is
synchronized; relative to the wall clock a ``PreciseTimestamp`` may be off by
up to 2.5ms. Monotonic readings taken before a clock jump are interpreted with
the pre-jump offset only until the next ``now()`` notices the jump.
"""

from __future__ import annotations

import re
import time
from datetime import datetime, timedelta, timezone
from decimal import ROUND_FLOOR, Context, Decimal, localcontext
from typing import Any

NS_PER_MS = 1_000_000
NS_PER_SECOND = 1_000_000_000
CLOCK_JUMP_THRESHOLD_MS = 2.5

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_PRECISE = Context(prec=96)

# Seconds with decimal places at the end of an ISO 8601 time, e.g. ":05.123456789Z"
_FRACTIONAL_SECONDS = re.compile(r":\d{1,2}\.(\d+)(?:[Zz]|[+-]\d{2}(?::?\d{2})?)?$")

# Module-level so tests can substitute the clocks.
_monotonic_ns = time.perf_counter_ns
_wall_clock_ns = time.time_ns


def _calc_monotonic_offset() -> tuple[int, int]:
    """Measure the offset between the monotonic clock and the wall clock.

    Returns a ``(milliseconds, nanoseconds)`` pair. Looking only at the
    millisecond portion this can be off by +-1ms; waiting for the wall clock
    to tick over would remove that error but is not worth the latency.
    """
    # Monotonic first; the wall clock read has more overhead.
    mono = _monotonic_ns()
    wall_ms = _wall_clock_ns() // NS_PER_MS

    mono_ms, mono_ns = divmod(mono, NS_PER_MS)
    return wall_ms - mono_ms, mono_ns


_monotonic_offset = _calc_monotonic_offset()


def calibrate() -> tuple[int, int]:
    """Recompute the monotonic-to-wall-clock offset and return it."""
    global _monotonic_offset
    _monotonic_offset = _calc_monotonic_offset()
    return _monotonic_offset


def _apply_offset(mono: int, offset: tuple[int, int]) -> tuple[int, int]:
    ms, ns = divmod(mono, NS_PER_MS)

    # Two component addition with manual carry
    ms += offset[0]
    ns += offset[1]
    if ns >= NS_PER_MS:
        ms += 1
        ns -= NS_PER_MS

    return ms, ns


def _now_fields() -> tuple[int, int]:
    mono = _monotonic_ns()
    reference_ms = _wall_clock_ns() // NS_PER_MS

    ms, ns = _apply_offset(mono, _monotonic_offset)
    if abs(reference_ms - ms) > CLOCK_JUMP_THRESHOLD_MS:
        # Clock jumped; the old offset no longer maps onto wall-clock time.
        ms, ns = _apply_offset(mono, calibrate())

    return ms, ns


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def _epoch_ms(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - _EPOCH) // timedelta(milliseconds=1)


class PreciseTimestamp:
    """A point in time with nanosecond (or finer) resolution.

    Stores a millisecond base compatible with ordinary wall-clock timestamps
    plus ``_frac``, the nanoseconds not covered by that base
    (``0 <= _frac < 1_000_000``). ``_frac`` is an ``int`` unless the source
    carried sub-nanosecond digits, in which case it is a ``Decimal``.

    Construction:

    - ``PreciseTimestamp()``: the current point in time
    - ``PreciseTimestamp(other)``: copy of a ``PreciseTimestamp`` or conversion
      of a ``datetime`` (naive datetimes are taken as UTC)
    - ``PreciseTimestamp("2019-01-01T00:00:00.123456789123Z")``: ISO 8601 with
      any number of decimal places
    - ``PreciseTimestamp(1546300800000.123456)``: epoch milliseconds as
      ``int``, ``float`` or ``Decimal``; decimal places are honored
    - ``PreciseTimestamp(2019, 1, 1, 12, 30, 15, Decimal("1.5"))``: UTC
      components (1-based month); the milliseconds may carry decimal places

    Two instances are equal when their ISO 8601 renderings are identical. A
    ``datetime`` never compares equal, keeping ``__hash__`` consistent; convert
    it first. Ordering against a ``datetime`` is supported.
    """

    __slots__ = ("_ms", "_frac")

    def __init__(self, value: Any = None, *components: Any) -> None:
        if value is None and not components:
            self._ms, self._frac = _now_fields()
            return

        if components:
            self._init_components(value, *components)
        elif isinstance(value, PreciseTimestamp):
            self._init_fields(value._ms, value._frac)
        elif isinstance(value, datetime):
            self._init_datetime(value)
        elif isinstance(value, str):
            self._init_string(value)
        elif isinstance(value, bool):
            raise TypeError("Cannot construct a PreciseTimestamp from a bool")
        elif isinstance(value, (int, float, Decimal)):
            self._init_millis(value)
        elif callable(getattr(value, "precise_time", None)):
            self._init_millis(value.precise_time())
        else:
            raise TypeError(f"Cannot construct a PreciseTimestamp from {type(value).__name__}")

    @classmethod
    def now(cls) -> PreciseTimestamp:
        return cls()

    @classmethod
    def from_monotonic(cls, ns: int) -> PreciseTimestamp:
        """Convert a ``time.perf_counter_ns()`` reading into a timestamp.

        Uses the current calibration offset, so readings taken before a
        clock jump are shifted by the size of the jump.
        """
        result = cls()  # recalibrates if the clock jumped
        result._init_fields(*_apply_offset(ns, _monotonic_offset))
        return result

    # -------------------------------------------------------------------------
    # Initialization; every path replaces the complete state
    # -------------------------------------------------------------------------

    def _init_fields(self, ms: int, frac: int | Decimal) -> None:
        if isinstance(frac, Decimal) and frac == frac.to_integral_value():
            frac = int(frac)
        self._ms = ms
        self._frac = frac

    def _init_components(
        self,
        year: int,
        month: int,
        day: int = 1,
        hour: int = 0,
        minute: int = 0,
        second: int = 0,
        millisecond: int | float | Decimal = 0,
    ) -> None:
        base = datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
        with localcontext(_PRECISE):
            self._init_millis(_epoch_ms(base) + _to_decimal(millisecond))

    def _init_datetime(self, value: datetime) -> None:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        ms, us = divmod((value - _EPOCH) // timedelta(microseconds=1), 1000)
        self._init_fields(ms, us * 1000)

    def _init_millis(self, value: Any) -> None:
        with localcontext(_PRECISE):
            ms = _to_decimal(value)
            whole = ms.to_integral_value(rounding=ROUND_FLOOR)
            self._init_fields(int(whole), (ms - whole) * NS_PER_MS)

    def _init_string(self, value: str) -> None:
        text = str(value).strip()
        match = _FRACTIONAL_SECONDS.search(text)
        if match:
            text = text[: match.start(1) - 1] + text[match.end(1) :]

        normalized = text[:-1] + "+00:00" if text[-1:] in ("Z", "z") else text
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError as exc:
            raise ValueError(f"Invalid ISO 8601 timestamp: {value!r}") from exc

        base_ms = _epoch_ms(parsed)
        if not match:
            # No literal decimal places; millisecond precision it is.
            self._init_fields(base_ms, 0)
            return

        with localcontext(_PRECISE):
            ns_in_second = Decimal(f"0.{match.group(1)}") * NS_PER_SECOND
            extra_ms, frac = divmod(ns_in_second, NS_PER_MS)
            self._init_fields(base_ms + int(extra_ms), frac)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def precise_time(self) -> Decimal:
        """Epoch value in milliseconds with all available decimal places."""
        with localcontext(_PRECISE):
            return Decimal(self._ms) + Decimal(self._frac) / NS_PER_MS

    def set_precise_time(self, value: int | float | Decimal) -> None:
        self._init_millis(value)

    def get_time(self) -> int:
        """Epoch value in whole milliseconds, like ``Date.getTime()``."""
        return self._ms

    def to_datetime(self) -> datetime:
        """Convert to an aware UTC ``datetime``, truncating to microseconds."""
        return _EPOCH + timedelta(milliseconds=self._ms, microseconds=int(self._frac) // 1000)

    def isoformat(self) -> str:
        """ISO 8601 rendering padded to nine decimal places.

        Decimal places beyond nanoseconds are kept when present.
        """
        seconds, ms_in_second = divmod(self._ms, 1000)
        d = _EPOCH + timedelta(seconds=seconds)

        ns = ms_in_second * NS_PER_MS + self._frac
        whole = int(ns)
        digits = f"{whole:09d}"
        rest = ns - whole
        if rest:
            digits += format(rest, "f").partition(".")[2].rstrip("0")

        return (
            f"{d.year:04d}-{d.month:02d}-{d.day:02d}"
            f"T{d.hour:02d}:{d.minute:02d}:{d.second:02d}.{digits}Z"
        )

    # -------------------------------------------------------------------------
    # Protocols
    # -------------------------------------------------------------------------

    def __str__(self) -> str:
        return self.isoformat()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.isoformat()!r})"

    def __hash__(self) -> int:
        return hash(self.isoformat())

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PreciseTimestamp):
            return self.isoformat() == other.isoformat()
        if callable(getattr(other, "precise_time", None)):
            return self.isoformat() == PreciseTimestamp(other).isoformat()
        return NotImplemented

    def _coerce(self, other: object) -> Decimal | None:
        if isinstance(other, PreciseTimestamp):
            return other.precise_time()
        if isinstance(other, datetime) or callable(getattr(other, "precise_time", None)):
            return PreciseTimestamp(other).precise_time()
        return None

    def __lt__(self, other: object) -> bool:
        theirs = self._coerce(other)
        return NotImplemented if theirs is None else self.precise_time() < theirs

    def __le__(self, other: object) -> bool:
        theirs = self._coerce(other)
        return NotImplemented if theirs is None else self.precise_time() <= theirs

    def __gt__(self, other: object) -> bool:
        theirs = self._coerce(other)
        return NotImplemented if theirs is None else self.precise_time() > theirs

    def __ge__(self, other: object) -> bool:
        theirs = self._coerce(other)
        return NotImplemented if theirs is None else self.precise_time() >= theirs

    def __copy__(self) -> PreciseTimestamp:
        return PreciseTimestamp(self)

    def __deepcopy__(self, memo: dict[int, Any]) -> PreciseTimestamp:
        return PreciseTimestamp(self)
