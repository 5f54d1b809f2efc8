"""
envstruct — scalar and collection conversion.

File: src/envstruct/scalars.py
Last updated: 2026-10-19

Purpose
- Convert a raw environment string into one of the built-in leaf types,
  chosen by the field's declared type.

What should be included in this file
- Integer parsing with signed/unsigned bit-width range checks.
- Float parsing with single/double precision range checks.
- Boolean literal sets, RFC 3339 timestamps, compound durations (``2h30m``).
- Comma-separated homogeneous sequences.

Functional requirements
- Every failure raises ``ValueError`` carrying the parse cause only; the
  caller attaches the environment key.
- Unsupported types return ``NOT_HANDLED`` so sub-format decoding can run.

Non-functional requirements
- Pure functions, no I/O, no logging of raw values.
"""

from __future__ import annotations

import math
import re
import struct
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Final

from envstruct.constants import BOOLEAN_FALSE, BOOLEAN_TRUE, LIST_SEPARATOR
from envstruct.types import (
    DEFAULT_FLOAT_WIDTH,
    DEFAULT_INTEGER_WIDTH,
    FloatWidth,
    IntegerWidth,
    ScalarKind,
    ScalarSpec,
    resolve_scalar,
    resolve_sequence,
)


class _NotHandled:
    __slots__ = ()

    def __repr__(self) -> str:
        return "NOT_HANDLED"


NOT_HANDLED: Final[_NotHandled] = _NotHandled()

_SIGNED_PATTERN: Final[re.Pattern[str]] = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_PATTERN: Final[re.Pattern[str]] = re.compile(r"[0-9]+")
_FLOAT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"[+-]?(?:(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)
_RFC3339_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?P<year>[0-9]{4})-(?P<month>[0-9]{2})-(?P<day>[0-9]{2})"
    r"T(?P<hour>[0-9]{2}):(?P<minute>[0-9]{2}):(?P<second>[0-9]{2})"
    r"(?:\.(?P<fraction>[0-9]+))?"
    r"(?P<offset>Z|[+-][0-9]{2}:[0-9]{2})"
)
_DURATION_SEGMENT: Final[re.Pattern[str]] = re.compile(
    r"(?P<whole>[0-9]*)(?:\.(?P<frac>[0-9]*))?(?P<unit>[^0-9.]*)"
)
_DURATION_UNITS_NS: Final[dict[str, int]] = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_MAX_DURATION_NS: Final[int] = (1 << 63) - 1


def convert_scalar(annotation: object, raw: str) -> object:
    """Convert ``raw`` for a field declared as ``annotation``.

    Returns ``NOT_HANDLED`` when the type is outside the built-in set.
    """

    spec = resolve_scalar(annotation)
    if spec is not None:
        return convert_with_spec(spec, raw)

    element = resolve_sequence(annotation)
    if element is not None:
        return parse_list(raw, element)

    return NOT_HANDLED


def convert_with_spec(spec: ScalarSpec, raw: str) -> object:
    if spec.kind is ScalarKind.STRING:
        return raw
    if spec.kind is ScalarKind.BOOL:
        return parse_bool(raw)
    if spec.kind in (ScalarKind.SIGNED, ScalarKind.UNSIGNED):
        return parse_integer(raw, spec.integer_width or DEFAULT_INTEGER_WIDTH)
    if spec.kind is ScalarKind.FLOAT:
        return parse_float(raw, spec.float_width or DEFAULT_FLOAT_WIDTH)
    if spec.kind is ScalarKind.DURATION:
        return parse_duration(raw)
    if spec.kind is ScalarKind.TIMESTAMP:
        return parse_timestamp(raw)
    raise ValueError(f"unsupported scalar kind {spec.kind.value!r}")


def parse_integer(raw: str, width: IntegerWidth = DEFAULT_INTEGER_WIDTH) -> int:
    """Base-10 integer parse bounded by ``width``."""

    pattern = _SIGNED_PATTERN if width.signed else _UNSIGNED_PATTERN
    if not pattern.fullmatch(raw):
        raise ValueError(f"parsing {raw!r}: invalid syntax")
    value = int(raw, 10)
    if value < width.minimum or value > width.maximum:
        raise ValueError(f"parsing {raw!r}: value out of range")
    return value


def parse_float(raw: str, width: FloatWidth = DEFAULT_FLOAT_WIDTH) -> float:
    """Decimal/exponential float parse; finite literals must fit ``width``."""

    if not _FLOAT_PATTERN.fullmatch(raw):
        raise ValueError(f"parsing {raw!r}: invalid syntax")
    value = float(raw)
    literal_is_special = raw.lstrip("+-").lower() in {"inf", "infinity", "nan"}
    if math.isinf(value) and not literal_is_special:
        raise ValueError(f"parsing {raw!r}: value out of range")
    if width.bits == 32 and math.isfinite(value):
        try:
            (value,) = struct.unpack("<f", struct.pack("<f", value))
        except OverflowError as exc:
            raise ValueError(f"parsing {raw!r}: value out of range") from exc
    return value


def parse_bool(raw: str) -> bool:
    if raw in BOOLEAN_TRUE:
        return True
    if raw in BOOLEAN_FALSE:
        return False
    raise ValueError(f"parsing {raw!r}: invalid syntax")


def parse_duration(raw: str) -> timedelta:
    """Parse a compound duration such as ``1h15m30.5s`` or ``-300ms``."""

    text = raw
    negative = False
    if text[:1] in ("+", "-"):
        negative = text[0] == "-"
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"invalid duration {raw!r}")

    total_ns = Decimal(0)
    position = 0
    while position < len(text):
        match = _DURATION_SEGMENT.match(text, position)
        assert match is not None
        whole = match.group("whole")
        frac = match.group("frac")
        unit = match.group("unit")
        if not whole and not frac:
            raise ValueError(f"invalid duration {raw!r}")
        if not unit:
            raise ValueError(f"missing unit in duration {raw!r}")
        scale = _DURATION_UNITS_NS.get(unit)
        if scale is None:
            raise ValueError(f"unknown unit {unit!r} in duration {raw!r}")
        magnitude = Decimal(f"{whole or '0'}.{frac or '0'}")
        total_ns += magnitude * scale
        if total_ns > _MAX_DURATION_NS:
            raise ValueError(f"invalid duration {raw!r}")
        position = match.end()

    # Sub-microsecond remainders are truncated toward zero.
    microseconds = int(total_ns) // 1000
    return timedelta(microseconds=-microseconds if negative else microseconds)


def parse_timestamp(raw: str) -> datetime:
    """Parse an RFC 3339 date-time into a timezone-aware ``datetime``."""

    match = _RFC3339_PATTERN.fullmatch(raw)
    if match is None:
        raise ValueError(f"parsing time {raw!r} as RFC 3339: invalid format")

    fraction = match.group("fraction") or ""
    microsecond = int((fraction + "000000")[:6])
    offset = match.group("offset")
    try:
        if offset == "Z":
            tzinfo = timezone.utc
        else:
            sign = -1 if offset[0] == "-" else 1
            hours, minutes = int(offset[1:3]), int(offset[4:6])
            if minutes >= 60:
                raise ValueError("offset minute out of range")
            tzinfo = timezone(sign * timedelta(hours=hours, minutes=minutes))
        return datetime(
            int(match.group("year")),
            int(match.group("month")),
            int(match.group("day")),
            int(match.group("hour")),
            int(match.group("minute")),
            int(match.group("second")),
            microsecond,
            tzinfo=tzinfo,
        )
    except ValueError as exc:
        raise ValueError(f"parsing time {raw!r}: {exc}") from exc


def parse_list(raw: str, element: ScalarSpec) -> list[object]:
    """Split on ``,``, strip each element, convert each; first failure wins."""

    return [convert_with_spec(element, part.strip()) for part in raw.split(LIST_SEPARATOR)]


__all__ = [
    "NOT_HANDLED",
    "convert_scalar",
    "convert_with_spec",
    "parse_bool",
    "parse_duration",
    "parse_float",
    "parse_integer",
    "parse_list",
    "parse_timestamp",
]
