"""Stable constants shared across the decoder, codecs, and CLI."""

from __future__ import annotations

from typing import Final

# Dataclass field metadata keys.
ENV_METADATA_KEY: Final[str] = "env"
ENCODING_METADATA_KEY: Final[str] = "encoding"

# Key annotation value that excludes a field from environment lookup.
SKIP_MARKER: Final[str] = "-"

# Sub-format selectors accepted in the encoding annotation.
ENCODING_JSON: Final[str] = "json"
ENCODING_XML: Final[str] = "xml"
ENCODING_FORM: Final[str] = "form"
ENCODING_BASE64: Final[str] = "base64"
SUPPORTED_ENCODINGS: Final[tuple[str, ...]] = (
    ENCODING_JSON,
    ENCODING_XML,
    ENCODING_FORM,
    ENCODING_BASE64,
)

AGGREGATED_ERROR_BANNER: Final[str] = "error decoding environment into dataclass:"

LIST_SEPARATOR: Final[str] = ","

# Matched exactly: no case folding, no whitespace trimming.
BOOLEAN_TRUE: Final[frozenset[str]] = frozenset({"1", "t", "T", "TRUE", "true", "True"})
BOOLEAN_FALSE: Final[frozenset[str]] = frozenset({"0", "f", "F", "FALSE", "false", "False"})

# CLI defaults.
LOG_LEVEL_ENV: Final[str] = "ENVSTRUCT_LOG_LEVEL"
DEFAULT_LOGGER_NAME: Final[str] = "envstruct"

__all__ = [
    "AGGREGATED_ERROR_BANNER",
    "BOOLEAN_FALSE",
    "BOOLEAN_TRUE",
    "DEFAULT_LOGGER_NAME",
    "ENCODING_BASE64",
    "ENCODING_FORM",
    "ENCODING_JSON",
    "ENCODING_METADATA_KEY",
    "ENCODING_XML",
    "ENV_METADATA_KEY",
    "LIST_SEPARATOR",
    "LOG_LEVEL_ENV",
    "SKIP_MARKER",
    "SUPPORTED_ENCODINGS",
]
