"""Public observability primitives: structured logging and redaction."""

from envstruct.observability.logging import (
    REDACTED_VALUE,
    LoggingConfig,
    LogRedactor,
    default_log_redactor,
    redact_payload,
    requires_redaction_for_key,
    reset_logging,
    setup_logging,
)

__all__ = [
    "LogRedactor",
    "LoggingConfig",
    "REDACTED_VALUE",
    "default_log_redactor",
    "redact_payload",
    "requires_redaction_for_key",
    "reset_logging",
    "setup_logging",
]
