"""
envstruct — decode error types.

File: src/envstruct/errors.py
Last updated: 2026-10-19

Purpose
- Define the typed failures raised by ``decode``/``load``/``describe_keys``.

What should be included in this file
- Base error type shared by every decode failure.
- Fail-fast errors: invalid target, missing environment key.
- Per-field issue record and the aggregated error built from issues.

Functional requirements
- Aggregated message must be deterministic: banner line followed by one
  ``KEY: cause`` line per issue, in traversal order.

Non-functional requirements
- No imports from other envstruct modules besides constants.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from envstruct.constants import AGGREGATED_ERROR_BANNER


class EnvDecodeError(ValueError):
    """Base class for every error raised while decoding the environment."""


class InvalidTargetError(EnvDecodeError):
    """Raised when the target is not a mutable dataclass instance."""


class MissingKeyError(EnvDecodeError):
    """Raised when an annotated key has no entry in the environment source."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"missing {key} environment")


class UnsupportedFieldError(ValueError):
    """Cause recorded in strict mode for fields with no conversion path."""


@dataclass(frozen=True, slots=True)
class DecodeIssue:
    """Single conversion failure, keyed by the environment variable name."""

    key: str
    cause: BaseException

    @property
    def message(self) -> str:
        return f"{self.key}: {self.cause}"


class AggregatedDecodeError(EnvDecodeError):
    """Raised at top level when one or more field conversions failed."""

    def __init__(self, issues: Sequence[DecodeIssue]) -> None:
        self.issues = tuple(issues)
        rendered = "\n".join(item.message for item in self.issues)
        super().__init__(f"{AGGREGATED_ERROR_BANNER}\n{rendered}")

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(item.key for item in self.issues)


__all__ = [
    "AggregatedDecodeError",
    "DecodeIssue",
    "EnvDecodeError",
    "InvalidTargetError",
    "MissingKeyError",
    "UnsupportedFieldError",
]
