"""
envstruct — sub-format decoding for fields outside the built-in leaf types.

File: src/envstruct/encodings.py
Last updated: 2026-10-19

Purpose
- Decode a raw environment string with the codec named by the field's
  ``encoding`` annotation and validate the result into the field's type.

What should be included in this file
- ``json`` via ``json.loads``; ``xml`` via ``xml.etree.ElementTree``;
  ``form`` via ``urllib.parse.parse_qsl``; ``base64`` via ``base64.b64decode``.
- Type-directed validation of the decoded payload with ``pydantic.TypeAdapter``.
- ``CODEC_ERRORS``: exception types the decoder records as conversion failures.

Functional requirements
- Codec errors propagate verbatim. Payloads nested past the interpreter's
  recursion limit raise ``ValueError``.
- ``form`` must reject ``;`` separators and malformed ``%`` escapes.
- Unknown or absent encodings return ``NOT_HANDLED``.

Non-functional requirements
- Adapters are built per call; nothing is cached between decodes.
"""

from __future__ import annotations

import base64
import dataclasses
import json
import re
from typing import Any, Final, get_args, get_origin, get_type_hints
from urllib.parse import parse_qsl
from xml.etree import ElementTree

from pydantic import BaseModel, TypeAdapter

from envstruct.constants import ENCODING_BASE64, ENCODING_FORM, ENCODING_JSON, ENCODING_XML
from envstruct.errors import UnsupportedFieldError
from envstruct.scalars import NOT_HANDLED
from envstruct.types import FormValues, describe_annotation, resolve_scalar, unwrap_optional

CODEC_ERRORS: Final[tuple[type[BaseException], ...]] = (ValueError, ElementTree.ParseError)

_FORM_SEPARATOR: Final[str] = "&"
_BAD_ESCAPE_PATTERN: Final[re.Pattern[str]] = re.compile(r"%(?![0-9A-Fa-f]{2})")
_XML_TEXT_KEY: Final[str] = "#text"
_ENCODINGS: Final[frozenset[str]] = frozenset(
    {ENCODING_JSON, ENCODING_XML, ENCODING_FORM, ENCODING_BASE64}
)


def decode_encoded(annotation: object, encoding: str | None, raw: str) -> object:
    """Decode ``raw`` with ``encoding`` into a value of type ``annotation``."""

    if encoding not in _ENCODINGS:
        return NOT_HANDLED

    try:
        if encoding == ENCODING_JSON:
            payload: object = json.loads(raw)
        elif encoding == ENCODING_XML:
            payload = decode_xml_payload(ElementTree.fromstring(raw), annotation)
        elif encoding == ENCODING_FORM:
            payload = parse_form_query(raw)
        else:
            payload = base64.b64decode(raw, validate=True)
        return _adapter_for(annotation, encoding).validate_python(payload)
    except RecursionError as exc:
        raise ValueError(f"{encoding} payload exceeds maximum nesting depth") from exc


def parse_form_query(raw: str) -> FormValues:
    """Parse ``&``-separated ``key=value`` pairs into a multi-valued mapping."""

    for segment in raw.split(_FORM_SEPARATOR):
        if ";" in segment:
            raise ValueError("invalid semicolon separator in query")
        bad_escape = _BAD_ESCAPE_PATTERN.search(segment)
        if bad_escape is not None:
            start = bad_escape.start()
            raise ValueError(f"invalid URL escape {segment[start : start + 3]!r}")

    values: FormValues = {}
    for key, value in parse_qsl(raw, keep_blank_values=True, separator=_FORM_SEPARATOR):
        values.setdefault(key, []).append(value)
    return values


def decode_xml_payload(element: ElementTree.Element, annotation: object) -> object:
    """Map an XML element onto plain data shaped after ``annotation``.

    Structured targets (dataclasses, pydantic models) are filled field by field
    from attributes or same-named child elements (a model field's alias names
    the element); list fields collect every matching child. Scalar targets take
    the element text. Other targets get a generic dict/text rendering.
    """

    annotation = unwrap_optional(annotation)
    field_types = _structured_field_types(annotation)
    if field_types is not None:
        payload: dict[str, object] = {}
        for name, field_annotation in field_types.items():
            if name in element.attrib:
                payload[name] = element.attrib[name]
                continue
            children = [child for child in element if child.tag == name]
            if not children:
                continue
            item_annotation = _list_item_annotation(field_annotation)
            if item_annotation is not None:
                payload[name] = [decode_xml_payload(child, item_annotation) for child in children]
            else:
                payload[name] = decode_xml_payload(children[-1], field_annotation)
        return payload

    item_annotation = _list_item_annotation(annotation)
    if item_annotation is not None:
        return [decode_xml_payload(child, item_annotation) for child in element]

    # Scalar leaves take the element's character data; attributes are ignored.
    if resolve_scalar(annotation) is not None:
        return element.text or ""

    return _element_to_plain(element)


def _element_to_plain(element: ElementTree.Element) -> object:
    if len(element) == 0 and not element.attrib:
        return element.text or ""

    payload: dict[str, Any] = dict(element.attrib)
    for child in element:
        value = _element_to_plain(child)
        existing = payload.get(child.tag)
        if existing is None:
            payload[child.tag] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            payload[child.tag] = [existing, value]
    text = (element.text or "").strip()
    if text:
        payload[_XML_TEXT_KEY] = text
    return payload


def _structured_field_types(annotation: object) -> dict[str, object] | None:
    if not isinstance(annotation, type) or get_origin(annotation) is not None:
        return None
    if dataclasses.is_dataclass(annotation):
        hints = get_type_hints(annotation, include_extras=True)
        return {
            item.name: hints.get(item.name, item.type) for item in dataclasses.fields(annotation)
        }
    if issubclass(annotation, BaseModel):
        # Keyed by alias so the payload validates under pydantic's by-alias default.
        return {
            info.alias or name: info.annotation
            for name, info in annotation.model_fields.items()
        }
    return None


def _list_item_annotation(annotation: object) -> object | None:
    annotation = unwrap_optional(annotation)
    if get_origin(annotation) not in (list, tuple, set, frozenset):
        return None
    args = get_args(annotation)
    return args[0] if args else Any


def _adapter_for(annotation: object, encoding: str) -> TypeAdapter[Any]:
    try:
        return TypeAdapter(annotation)
    except TypeError as exc:
        raise UnsupportedFieldError(
            f"cannot decode {encoding} into {describe_annotation(annotation)}: {exc}"
        ) from exc


__all__ = [
    "CODEC_ERRORS",
    "decode_encoded",
    "decode_xml_payload",
    "parse_form_query",
]
