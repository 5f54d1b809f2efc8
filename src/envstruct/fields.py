"""
envstruct — dataclass field annotations and introspection.

File: src/envstruct/fields.py
Last updated: 2026-10-19

Purpose
- Declare per-field key/encoding annotations on dataclasses.
- Describe a record type's fields for the decoder (name, type, key, encoding,
  nested flag, settability).

What should be included in this file
- ``env()`` helper wrapping ``dataclasses.field``.
- ``FieldDescriptor`` and ``describe_fields``.
- ``KeyBinding`` and ``describe_keys`` for listing every key a decode queries.

Functional requirements
- Descriptors are recomputed on every call; nothing is cached.
- A key of ``""`` or ``"-"`` means "no lookup".
- Fields whose names start with ``_`` are private and never settable.

Non-functional requirements
- Deterministic ordering: dataclass declaration order, inherited fields first.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import MISSING, dataclass
from typing import Any, get_type_hints

from envstruct.constants import ENCODING_METADATA_KEY, ENV_METADATA_KEY, SKIP_MARKER
from envstruct.errors import InvalidTargetError


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """Per-field view used by the decoder; produced fresh for each call."""

    name: str
    annotation: object
    key: str | None
    encoding: str | None
    nested: bool
    settable: bool


@dataclass(frozen=True, slots=True)
class KeyBinding:
    """Environment key queried for the attribute at ``path``."""

    key: str
    path: str
    annotation: object
    encoding: str | None


def env(
    key: str | None = None,
    *,
    encoding: str | None = None,
    default: Any = MISSING,
    default_factory: Callable[[], Any] | Any = MISSING,
    **field_kwargs: Any,
) -> Any:
    """Declare a dataclass field populated from environment variable ``key``.

    ``default``/``default_factory`` only provide the value the instance holds
    before decoding; a missing key is still a ``MissingKeyError``.
    """

    metadata = dict(field_kwargs.pop("metadata", None) or {})
    if key is not None:
        metadata[ENV_METADATA_KEY] = key
    if encoding is not None:
        metadata[ENCODING_METADATA_KEY] = encoding
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata=metadata,
        **field_kwargs,
    )


def is_record_type(annotation: object) -> bool:
    return isinstance(annotation, type) and dataclasses.is_dataclass(annotation)


def is_frozen_record_type(record_type: type) -> bool:
    params = getattr(record_type, "__dataclass_params__", None)
    return bool(getattr(params, "frozen", False))


def describe_fields(record_type: type) -> tuple[FieldDescriptor, ...]:
    """Describe the fields of ``record_type`` in declaration order."""

    if not is_record_type(record_type):
        raise InvalidTargetError(f"expected a dataclass type, got {record_type!r}")

    try:
        hints = get_type_hints(record_type, include_extras=True)
    except (NameError, TypeError) as exc:
        raise InvalidTargetError(
            f"cannot resolve field annotations of {record_type.__name__}: {exc}"
        ) from exc

    descriptors: list[FieldDescriptor] = []
    for item in dataclasses.fields(record_type):
        annotation = hints.get(item.name, item.type)
        key = _normalize_key(item.metadata.get(ENV_METADATA_KEY))
        raw_encoding = item.metadata.get(ENCODING_METADATA_KEY)
        encoding = raw_encoding if isinstance(raw_encoding, str) and raw_encoding else None
        descriptors.append(
            FieldDescriptor(
                name=item.name,
                annotation=annotation,
                key=key,
                encoding=encoding,
                nested=key is None and is_record_type(annotation),
                settable=not item.name.startswith("_"),
            )
        )
    return tuple(descriptors)


def describe_keys(record_type: type) -> tuple[KeyBinding, ...]:
    """List every environment key a decode of ``record_type`` would look up."""

    return tuple(_collect_keys(record_type, prefix="", lineage=(record_type,)))


def _collect_keys(
    record_type: type,
    *,
    prefix: str,
    lineage: tuple[type, ...],
) -> list[KeyBinding]:
    bindings: list[KeyBinding] = []
    for descriptor in describe_fields(record_type):
        if not descriptor.settable:
            continue
        path = f"{prefix}{descriptor.name}"
        if descriptor.nested:
            child_type = descriptor.annotation
            assert isinstance(child_type, type)
            if child_type in lineage:
                raise InvalidTargetError(
                    f"self-referential dataclass {child_type.__name__} at field {path!r}"
                )
            bindings.extend(
                _collect_keys(child_type, prefix=f"{path}.", lineage=(*lineage, child_type))
            )
            continue
        if descriptor.key is None:
            continue
        bindings.append(
            KeyBinding(
                key=descriptor.key,
                path=path,
                annotation=descriptor.annotation,
                encoding=descriptor.encoding,
            )
        )
    return bindings


def _normalize_key(raw: object) -> str | None:
    if not isinstance(raw, str):
        return None
    if not raw or raw == SKIP_MARKER:
        return None
    return raw


__all__ = [
    "FieldDescriptor",
    "KeyBinding",
    "describe_fields",
    "describe_keys",
    "env",
    "is_frozen_record_type",
    "is_record_type",
]
