"""
envstruct — populate dataclasses from environment variables.

File: src/envstruct/__init__.py
Last updated: 2026-10-19

Purpose
- Package root. Exposes the decode entrypoints, field annotation helper,
  type aliases, and error types.

Usage
    from dataclasses import dataclass, field
    from datetime import timedelta

    from envstruct import Int32, decode, env

    @dataclass
    class Database:
        host: str = env("DB_HOST", default="")
        timeout: timedelta = env("DB_TIMEOUT", default=timedelta(0))

    @dataclass
    class Settings:
        workers: Int32 = env("WORKERS", default=0)
        database: Database = field(default_factory=Database)

    settings = Settings()
    decode(settings)

Functional requirements
- Must not have side effects at import time (no environment reads, no logging
  handlers installed).
"""

from envstruct.decoder import decode, load
from envstruct.errors import (
    AggregatedDecodeError,
    DecodeIssue,
    EnvDecodeError,
    InvalidTargetError,
    MissingKeyError,
    UnsupportedFieldError,
)
from envstruct.fields import FieldDescriptor, KeyBinding, describe_fields, describe_keys, env
from envstruct.types import (
    Float32,
    Float64,
    FloatWidth,
    FormValues,
    Int,
    Int8,
    Int16,
    Int32,
    Int64,
    IntegerWidth,
    UInt,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
)

__version__ = "0.1.0"

__all__ = [
    "AggregatedDecodeError",
    "DecodeIssue",
    "EnvDecodeError",
    "FieldDescriptor",
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
    "InvalidTargetError",
    "KeyBinding",
    "MissingKeyError",
    "UInt",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
    "UnsupportedFieldError",
    "__version__",
    "decode",
    "describe_fields",
    "describe_keys",
    "env",
    "load",
]
