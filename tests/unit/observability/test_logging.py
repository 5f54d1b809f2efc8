"""
envstruct — unit tests for observability logging

File: tests/unit/observability/test_logging.py
Last updated: 2026-10-19

Purpose
- Validate JSON-lines logging with redaction and the decoder's diagnostic events.

What this test file should cover
- JSON line validity and redaction guarantees.
- Handler replacement on repeated setup and teardown.
- Decoder debug events carry keys and types, never raw values.

Functional requirements
- Offline operation; output captured through in-memory streams.

Non-functional requirements
- Deterministic and non-flaky.
"""

from __future__ import annotations

import io
import json
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import pytest

from envstruct import AggregatedDecodeError, decode, env
from envstruct.constants import DEFAULT_LOGGER_NAME
from envstruct.observability import (
    REDACTED_VALUE,
    LoggingConfig,
    redact_payload,
    requires_redaction_for_key,
    reset_logging,
    setup_logging,
)

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass
class OpaqueEnv:
    settings: dict[str, Any] = env("OPAQUE_SETTINGS", default_factory=dict)


@dataclass
class BrokenEnv:
    port: int = env("BROKEN_PORT", default=0)


@pytest.fixture(autouse=True)
def _cleanup_logging() -> Iterator[None]:
    yield
    reset_logging(DEFAULT_LOGGER_NAME)


def _logger_name() -> str:
    return f"envstruct.tests.logging.{uuid4().hex}"


def _read_json_lines(stream: io.StringIO) -> list[dict[str, object]]:
    return [json.loads(line) for line in stream.getvalue().splitlines()]


def test_json_logging_redacts_secrets_in_message_and_fields() -> None:
    stream = io.StringIO()
    logger_name = _logger_name()
    logger = setup_logging(LoggingConfig(logger_name=logger_name, level="INFO", stream=stream))

    logger.info(
        "payload token=tok-FAKE and Bearer abc.def",
        extra={"nested": {"password": "hunter2", "safe": "ok"}, "api_key": "sk-FAKE"},
    )
    reset_logging(logger_name)

    (event,) = _read_json_lines(stream)
    assert event["level"] == "INFO"
    assert event["logger"] == logger_name
    assert str(event["timestamp"]).endswith("Z")
    assert event["fields"] == {
        "api_key": REDACTED_VALUE,
        "nested": {"password": REDACTED_VALUE, "safe": "ok"},
    }
    line = stream.getvalue()
    assert "tok-FAKE" not in line
    assert "abc.def" not in line
    assert "hunter2" not in line
    assert "sk-FAKE" not in line


def test_text_format_and_level_filtering() -> None:
    stream = io.StringIO()
    logger_name = _logger_name()
    logger = setup_logging(
        LoggingConfig(logger_name=logger_name, level="warning", json_lines=False, stream=stream)
    )

    logger.info("hidden")
    logger.warning("shown")
    reset_logging(logger_name)

    assert stream.getvalue() == f"WARNING {logger_name}: shown\n"


def test_setup_logging_replaces_previous_handler() -> None:
    logger_name = _logger_name()
    first, second = io.StringIO(), io.StringIO()

    setup_logging(LoggingConfig(logger_name=logger_name, level="INFO", stream=first))
    logger = setup_logging(LoggingConfig(logger_name=logger_name, level="INFO", stream=second))
    logger.info("once")
    reset_logging(logger_name)

    assert first.getvalue() == ""
    assert len(second.getvalue().splitlines()) == 1
    assert logging.getLogger(logger_name).handlers == []
    assert logging.getLogger(logger_name).propagate is True


@pytest.mark.parametrize("level", ["LOUD", "", "  "])
def test_invalid_level_is_rejected(level: str) -> None:
    with pytest.raises(ValueError):
        setup_logging(LoggingConfig(logger_name=_logger_name(), level=level))


def test_empty_logger_name_is_rejected() -> None:
    with pytest.raises(ValueError, match="logger_name"):
        setup_logging(LoggingConfig(logger_name="  "))


def test_redact_payload_normalizes_and_redacts() -> None:
    payload = {
        "database": {"host": "db", "password": "hunter2"},
        "timeout": timedelta(seconds=90),
        "blob": b"abc",
        "dsn": "postgres://u@db?password=hunter2",
        "tags": ("a", "b"),
    }

    assert redact_payload(payload) == {
        "database": {"host": "db", "password": REDACTED_VALUE},
        "timeout": "90s",
        "blob": "abc",
        "dsn": f"postgres://u@db?password={REDACTED_VALUE}",
        "tags": ["a", "b"],
    }


@pytest.mark.parametrize(
    ("key", "expected"),
    [("DB_PASSWORD", True), ("client_secret", True), ("apiKey", True), ("host", False)],
)
def test_sensitive_key_detection(key: str, expected: bool) -> None:
    assert requires_redaction_for_key(key) is expected


def test_decoder_logs_unhandled_field_without_raw_value() -> None:
    stream = io.StringIO()
    setup_logging(LoggingConfig(level="DEBUG", stream=stream))

    decode(OpaqueEnv(), {"OPAQUE_SETTINGS": "raw-secret-value"})

    (event,) = _read_json_lines(stream)
    assert event["logger"] == "envstruct.decoder"
    assert event["fields"] == {
        "field": "settings",
        "env_key": "OPAQUE_SETTINGS",
        "field_type": "dict[str, Any]",
        "encoding": None,
    }
    assert "raw-secret-value" not in stream.getvalue()


def test_decoder_logs_failed_keys_on_aggregated_error() -> None:
    stream = io.StringIO()
    setup_logging(LoggingConfig(level="DEBUG", stream=stream))

    with pytest.raises(AggregatedDecodeError):
        decode(BrokenEnv(), {"BROKEN_PORT": "eighty"})

    (event,) = _read_json_lines(stream)
    assert event["fields"] == {"record": "BrokenEnv", "failed_keys": ["BROKEN_PORT"]}
    assert "eighty" not in stream.getvalue()
