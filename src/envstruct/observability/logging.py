"""
envstruct — structured logging and redaction.

File: src/envstruct/observability/logging.py
Last updated: 2026-10-19

Purpose
- Emit decoder and CLI diagnostics as JSON lines (or plain text) on a stream.
- Redact secret-looking keys and inline credentials before anything is written,
  including decoded configuration dumps printed by the CLI.

What should be included in this file
- ``LoggingConfig`` and ``setup_logging``/``reset_logging`` for the package logger.
- ``JsonLineFormatter`` rendering ``timestamp``/``level``/``logger``/``message``
  plus ``extra=`` fields under ``fields``.
- ``to_json_value``, ``default_log_redactor``, ``redact_payload``.

Functional requirements
- Importing this module installs no handlers.
- Repeated ``setup_logging`` calls replace the previous handler.

Non-functional requirements
- Output is deterministic: keys sorted, compact separators.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import math
import re
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import PurePath
from typing import IO, Final

from envstruct.constants import DEFAULT_LOGGER_NAME

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
LogRedactor = Callable[[JSONValue], JSONValue]

REDACTED_VALUE: Final[str] = "***REDACTED***"

# Substrings of a (lowercased, ``-`` -> ``_``) key whose value is always hidden.
SENSITIVE_KEY_TERMS: Final[tuple[str, ...]] = (
    "secret",
    "token",
    "password",
    "passwd",
    "passphrase",
    "api_key",
    "apikey",
    "authorization",
    "credential",
    "cookie",
    "private_key",
)

_INLINE_ASSIGNMENT: Final[re.Pattern[str]] = re.compile(
    r"(?i)\b(api[_-]?key|token|password|passwd|secret|client_secret|authorization)"
    r"\b(\s*[:=]\s*)([^\s,;&]+)"
)
_BEARER_CREDENTIAL: Final[re.Pattern[str]] = re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/-]+=*")
_URL_USERINFO_PASSWORD: Final[re.Pattern[str]] = re.compile(r"(://[^/\s:@]+:)([^/\s@]+)(@)")

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RECORD_ATTRIBUTES: Final[frozenset[str]] = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
}

_TEXT_FORMAT: Final[str] = "%(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Where and how the envstruct logger writes."""

    logger_name: str = DEFAULT_LOGGER_NAME
    level: int | str = "WARNING"
    json_lines: bool = True
    stream: IO[str] | None = None
    redactor: LogRedactor | None = None


class JsonLineFormatter(logging.Formatter):
    """One canonical JSON object per record."""

    def __init__(self, redactor: LogRedactor | None = None) -> None:
        super().__init__()
        self._redactor = _chain_redactor(redactor)

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, JSONValue] = {
            "timestamp": _utc_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": self._redact_text(record.getMessage()),
        }
        fields = {
            key: to_json_value(value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
        }
        if fields:
            event["fields"] = self._redactor(fields)
        if record.exc_info:
            event["exception"] = self._redact_text(self.formatException(record.exc_info))
        return _dump(event)

    def _redact_text(self, text: str) -> str:
        redacted = self._redactor(text)
        return redacted if isinstance(redacted, str) else _dump(redacted)


def setup_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """Install a single stream handler on the configured logger and return it."""

    cfg = config or LoggingConfig()
    if not isinstance(cfg.logger_name, str) or not cfg.logger_name.strip():
        raise ValueError(f"logger_name must be a non-empty string, got {cfg.logger_name!r}")
    logger_name = cfg.logger_name.strip()
    level = _parse_log_level(cfg.level)

    handler = logging.StreamHandler(cfg.stream if cfg.stream is not None else sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        JsonLineFormatter(cfg.redactor) if cfg.json_lines else logging.Formatter(_TEXT_FORMAT)
    )

    reset_logging(logger_name)
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.propagate = False
    logger.addHandler(handler)
    return logger


def reset_logging(logger_name: str = DEFAULT_LOGGER_NAME) -> None:
    """Close and detach every handler on ``logger_name`` and restore propagation."""

    logger = logging.getLogger(logger_name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True


def to_json_value(value: object) -> JSONValue:
    """Convert decoded configuration values to JSON-compatible data."""

    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else repr(value)
    if isinstance(value, datetime):
        aware = value if value.utcoffset() is not None else value.replace(tzinfo=UTC)
        return aware.astimezone(UTC).isoformat().replace("+00:00", "Z")
    if isinstance(value, timedelta):
        return f"{value.total_seconds():g}s"
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, PurePath):
        return value.as_posix()
    if isinstance(value, Mapping):
        return {str(key): to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((to_json_value(item) for item in value), key=_dump)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_json_value(dataclasses.asdict(value))
    return repr(value)


def requires_redaction_for_key(key: str) -> bool:
    normalized = key.lower().replace("-", "_")
    return any(term in normalized for term in SENSITIVE_KEY_TERMS)


def default_log_redactor(value: JSONValue) -> JSONValue:
    """Hide values under sensitive keys and credentials embedded in strings."""

    if isinstance(value, str):
        return _redact_text(value)
    if isinstance(value, list):
        return [default_log_redactor(item) for item in value]
    if isinstance(value, dict):
        return {
            key: REDACTED_VALUE if requires_redaction_for_key(key) else default_log_redactor(item)
            for key, item in value.items()
        }
    return value


def redact_payload(value: object) -> JSONValue:
    return default_log_redactor(to_json_value(value))


def _redact_text(text: str) -> str:
    text = _INLINE_ASSIGNMENT.sub(lambda m: f"{m.group(1)}{m.group(2)}{REDACTED_VALUE}", text)
    text = _BEARER_CREDENTIAL.sub(f"Bearer {REDACTED_VALUE}", text)
    return _URL_USERINFO_PASSWORD.sub(rf"\g<1>{REDACTED_VALUE}\g<3>", text)


def _chain_redactor(custom: LogRedactor | None) -> LogRedactor:
    if custom is None:
        return default_log_redactor
    return lambda value: default_log_redactor(to_json_value(custom(value)))


def _parse_log_level(level: int | str) -> int:
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    if not isinstance(level, str):
        raise ValueError(f"level must be int or str, got {type(level).__name__}")
    resolved = logging.getLevelNamesMapping().get(level.strip().upper())
    if resolved is None:
        raise ValueError(f"unsupported logging level {level!r}")
    return resolved


def _utc_timestamp(epoch_seconds: float) -> str:
    moment = datetime.fromtimestamp(epoch_seconds, tz=UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _dump(value: JSONValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


__all__ = [
    "JSONScalar",
    "JSONValue",
    "JsonLineFormatter",
    "LogRedactor",
    "LoggingConfig",
    "REDACTED_VALUE",
    "SENSITIVE_KEY_TERMS",
    "default_log_redactor",
    "redact_payload",
    "requires_redaction_for_key",
    "reset_logging",
    "setup_logging",
    "to_json_value",
]
