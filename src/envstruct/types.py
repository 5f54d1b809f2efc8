"""Type vocabulary for env-decoded fields: width markers, aliases, and leaf resolution."""

from __future__ import annotations

import types
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Annotated, Final, TypeVar, Union, get_args, get_origin

_T = TypeVar("_T")


@dataclass(frozen=True, slots=True)
class IntegerWidth:
    """``Annotated`` marker selecting the bit width and signedness of an ``int`` field."""

    bits: int
    signed: bool = True

    @property
    def minimum(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def maximum(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1


@dataclass(frozen=True, slots=True)
class FloatWidth:
    """``Annotated`` marker selecting single (32) or double (64) precision."""

    bits: int


Int = int
Int8 = Annotated[int, IntegerWidth(8)]
Int16 = Annotated[int, IntegerWidth(16)]
Int32 = Annotated[int, IntegerWidth(32)]
Int64 = Annotated[int, IntegerWidth(64)]
UInt8 = Annotated[int, IntegerWidth(8, signed=False)]
UInt16 = Annotated[int, IntegerWidth(16, signed=False)]
UInt32 = Annotated[int, IntegerWidth(32, signed=False)]
UInt64 = Annotated[int, IntegerWidth(64, signed=False)]
UInt = UInt64
Float32 = Annotated[float, FloatWidth(32)]
Float64 = Annotated[float, FloatWidth(64)]

FormValues = dict[str, list[str]]

DEFAULT_INTEGER_WIDTH: Final[IntegerWidth] = IntegerWidth(64)
DEFAULT_FLOAT_WIDTH: Final[FloatWidth] = FloatWidth(64)


class ScalarKind(str, Enum):
    """Closed set of leaf conversions, keyed by declared field type."""

    STRING = "string"
    BOOL = "bool"
    SIGNED = "signed"
    UNSIGNED = "unsigned"
    FLOAT = "float"
    DURATION = "duration"
    TIMESTAMP = "timestamp"


# Element kinds accepted inside ``list[...]`` fields.
SEQUENCE_ELEMENT_KINDS: Final[frozenset[ScalarKind]] = frozenset(
    {ScalarKind.STRING, ScalarKind.SIGNED, ScalarKind.UNSIGNED, ScalarKind.FLOAT}
)


@dataclass(frozen=True, slots=True)
class ScalarSpec:
    kind: ScalarKind
    integer_width: IntegerWidth | None = None
    float_width: FloatWidth | None = None


def unwrap_optional(annotation: object) -> object:
    """Return ``X`` for ``X | None``; anything else is returned unchanged."""

    origin = get_origin(annotation)
    if origin is not Union and origin is not types.UnionType:
        return annotation
    members = [item for item in get_args(annotation) if item is not type(None)]
    if len(members) == 1 and len(members) != len(get_args(annotation)):
        return members[0]
    return annotation


def resolve_scalar(annotation: object) -> ScalarSpec | None:
    """Map a declared field type to its leaf conversion, or ``None`` when unsupported."""

    annotation = unwrap_optional(annotation)
    base, extras = _split_annotated(annotation)

    if base is bool:
        return ScalarSpec(ScalarKind.BOOL)
    if base is str:
        return ScalarSpec(ScalarKind.STRING)
    if base is int:
        width = _first_of(extras, IntegerWidth) or DEFAULT_INTEGER_WIDTH
        kind = ScalarKind.SIGNED if width.signed else ScalarKind.UNSIGNED
        return ScalarSpec(kind, integer_width=width)
    if base is float:
        float_width = _first_of(extras, FloatWidth) or DEFAULT_FLOAT_WIDTH
        return ScalarSpec(ScalarKind.FLOAT, float_width=float_width)
    if base is timedelta:
        return ScalarSpec(ScalarKind.DURATION)
    if base is datetime:
        return ScalarSpec(ScalarKind.TIMESTAMP)
    return None


def resolve_sequence(annotation: object) -> ScalarSpec | None:
    """Return the element spec for supported ``list[...]`` fields, else ``None``."""

    annotation = unwrap_optional(annotation)
    base, _ = _split_annotated(annotation)
    if get_origin(base) is not list:
        return None
    args = get_args(base)
    if len(args) != 1:
        return None
    element = resolve_scalar(args[0])
    if element is None or element.kind not in SEQUENCE_ELEMENT_KINDS:
        return None
    return element


def describe_annotation(annotation: object) -> str:
    """Short human-readable rendering of a field annotation."""

    if isinstance(annotation, type) and get_origin(annotation) is None:
        return annotation.__name__
    return repr(annotation).replace("typing.", "")


def _split_annotated(annotation: object) -> tuple[object, tuple[object, ...]]:
    if get_origin(annotation) is Annotated:
        base, *extras = get_args(annotation)
        return base, tuple(extras)
    return annotation, ()


def _first_of(items: tuple[object, ...], kind: type[_T]) -> _T | None:
    for item in items:
        if isinstance(item, kind):
            return item
    return None


__all__ = [
    "DEFAULT_FLOAT_WIDTH",
    "DEFAULT_INTEGER_WIDTH",
    "Float32",
    "Float64",
    "FloatWidth",
    "FormValues",
    "Int",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "IntegerWidth",
    "SEQUENCE_ELEMENT_KINDS",
    "ScalarKind",
    "ScalarSpec",
    "UInt",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
    "describe_annotation",
    "resolve_scalar",
    "resolve_sequence",
    "unwrap_optional",
]
