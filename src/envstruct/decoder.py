"""
envstruct — struct-walking decode engine.

File: src/envstruct/decoder.py
Last updated: 2026-10-19

Purpose
- Populate a mutable dataclass instance from a flat string environment using
  per-field key/encoding annotations.

What should be included in this file
- ``decode``: recursive traversal with fail-fast invalid-target and
  missing-key errors and aggregated per-field conversion errors.
- ``load``: instantiate a dataclass with zero values and decode it.

Functional requirements
- Fields are visited in declaration order, depth-first.
- Each annotated key is looked up exactly once.
- A field is assigned only after its conversion succeeded.
- Issues are returned up from every recursive walk and merged by the caller.

Non-functional requirements
- Synchronous and pure apart from the target mutation; raw values are never logged.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any, Final, TypeVar

from envstruct.encodings import CODEC_ERRORS, decode_encoded
from envstruct.errors import (
    AggregatedDecodeError,
    DecodeIssue,
    InvalidTargetError,
    MissingKeyError,
    UnsupportedFieldError,
)
from envstruct.fields import (
    FieldDescriptor,
    describe_fields,
    is_frozen_record_type,
    is_record_type,
)
from envstruct.scalars import NOT_HANDLED, convert_scalar
from envstruct.types import describe_annotation

_LOGGER: Final[logging.Logger] = logging.getLogger(__name__)
_ABSENT: Final[object] = object()

RecordT = TypeVar("RecordT")


def decode(
    target: object,
    environ: Mapping[str, str] | None = None,
    *,
    strict: bool = False,
) -> None:
    """Populate ``target`` in place from ``environ`` (default: ``os.environ``).

    Raises ``InvalidTargetError`` or ``MissingKeyError`` immediately, and
    ``AggregatedDecodeError`` once the walk finished if any field failed to
    convert.
    """

    _assert_mutable_record(target, what="target")
    source: Mapping[str, str] = os.environ if environ is None else environ

    issues = _walk(target, source, strict=strict, lineage=(type(target),))
    if issues:
        _LOGGER.debug(
            "environment decode failed",
            extra={"record": type(target).__name__, "failed_keys": [item.key for item in issues]},
        )
        raise AggregatedDecodeError(issues)


def load(
    record_type: type[RecordT],
    environ: Mapping[str, str] | None = None,
    *,
    strict: bool = False,
) -> RecordT:
    """Instantiate ``record_type`` with its zero values, decode it, and return it."""

    if not is_record_type(record_type):
        raise InvalidTargetError(f"expected a dataclass type, got {record_type!r}")
    try:
        instance = record_type()
    except TypeError as exc:
        raise InvalidTargetError(
            f"cannot instantiate {record_type.__name__} without arguments: {exc}"
        ) from exc
    decode(instance, environ, strict=strict)
    return instance


def _walk(
    target: object,
    source: Mapping[str, str],
    *,
    strict: bool,
    lineage: tuple[type, ...],
) -> tuple[DecodeIssue, ...]:
    issues: list[DecodeIssue] = []

    for descriptor in describe_fields(type(target)):
        if not descriptor.settable:
            continue

        if descriptor.nested:
            child = getattr(target, descriptor.name)
            _assert_mutable_record(child, what=f"field {descriptor.name!r}")
            child_type = type(child)
            if child_type in lineage:
                raise InvalidTargetError(
                    f"self-referential dataclass {child_type.__name__} "
                    f"at field {descriptor.name!r}"
                )
            issues.extend(_walk(child, source, strict=strict, lineage=(*lineage, child_type)))
            continue

        if descriptor.key is None:
            continue

        raw = source.get(descriptor.key, _ABSENT)
        if raw is _ABSENT:
            raise MissingKeyError(descriptor.key)
        assert isinstance(raw, str)

        try:
            value = _convert(descriptor, raw, strict=strict)
        except CODEC_ERRORS as exc:
            issues.append(DecodeIssue(key=descriptor.key, cause=exc))
            continue

        if value is NOT_HANDLED:
            _LOGGER.debug(
                "field left unchanged: no conversion for type and no recognized encoding",
                extra={
                    "field": descriptor.name,
                    "env_key": descriptor.key,
                    "field_type": describe_annotation(descriptor.annotation),
                    "encoding": descriptor.encoding,
                },
            )
            continue

        setattr(target, descriptor.name, value)

    return tuple(issues)


def _convert(descriptor: FieldDescriptor, raw: str, *, strict: bool) -> Any:
    value = convert_scalar(descriptor.annotation, raw)
    if value is not NOT_HANDLED:
        return value

    value = decode_encoded(descriptor.annotation, descriptor.encoding, raw)
    if value is NOT_HANDLED and strict:
        raise UnsupportedFieldError(
            f"no conversion for type {describe_annotation(descriptor.annotation)} "
            f"and no recognized encoding (got {descriptor.encoding!r})"
        )
    return value


def _assert_mutable_record(value: object, *, what: str) -> None:
    if isinstance(value, type) or not is_record_type(type(value)):
        raise InvalidTargetError(
            f"{what} must be a mutable dataclass instance, got {type(value).__name__}"
        )
    if is_frozen_record_type(type(value)):
        raise InvalidTargetError(
            f"{what} must be a mutable dataclass instance, got frozen {type(value).__name__}"
        )


__all__ = ["decode", "load"]
