"""Command-line interface router for envstruct."""

from __future__ import annotations

import argparse
import dataclasses
import importlib
import json
import os
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Final

from envstruct.constants import LOG_LEVEL_ENV
from envstruct.decoder import load
from envstruct.errors import EnvDecodeError, InvalidTargetError
from envstruct.fields import describe_keys, is_record_type
from envstruct.main import ExitCode
from envstruct.observability import LoggingConfig, redact_payload, setup_logging
from envstruct.types import describe_annotation

DEFAULT_LOG_LEVEL: Final[str] = "WARNING"


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = ExitCode.DECODE_FAILED

    def __str__(self) -> str:
        return self.message


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router."""

    parser = argparse.ArgumentParser(
        prog="envstruct",
        description=(
            "envstruct — populate dataclasses from environment variables.\n\n"
            "Common workflows:\n"
            "  envstruct keys app.settings:Settings     List the variables a class reads\n"
            "  envstruct check app.settings:Settings    Decode the current environment\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--log-level",
        default=os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL),
        help=f"Logging level (default: ${LOG_LEVEL_ENV} or {DEFAULT_LOG_LEVEL}).",
    )
    common.add_argument(
        "--log-format",
        choices=("json", "text"),
        default="json",
        help="Log line format written to stderr.",
    )
    common.add_argument("--json", action="store_true", help="Emit deterministic JSON output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # keys ----------------------------------------------------------------
    keys_parser = subparsers.add_parser(
        "keys",
        parents=[common],
        help="List the environment keys a dataclass reads",
    )
    keys_parser.add_argument("target", help="Dataclass reference as MODULE:CLASS")
    keys_parser.set_defaults(handler=_cmd_keys)

    # check ---------------------------------------------------------------
    check_parser = subparsers.add_parser(
        "check",
        parents=[common],
        help="Decode the process environment into a dataclass and print it redacted",
    )
    check_parser.add_argument("target", help="Dataclass reference as MODULE:CLASS")
    check_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on fields with no conversion and no recognized encoding.",
    )
    check_parser.set_defaults(handler=_cmd_check)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return ExitCode.TARGET_ERROR

    try:
        setup_logging(
            LoggingConfig(level=namespace.log_level, json_lines=namespace.log_format == "json")
        )
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return ExitCode.TARGET_ERROR

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_keys(args: argparse.Namespace) -> int:
    record_type = _resolve_target(args.target)
    try:
        bindings = describe_keys(record_type)
    except InvalidTargetError as exc:
        raise CLIError(str(exc), exit_code=ExitCode.TARGET_ERROR) from exc

    rows = [
        {
            "key": binding.key,
            "path": binding.path,
            "type": describe_annotation(binding.annotation),
            "encoding": binding.encoding,
            "present": binding.key in os.environ,
        }
        for binding in bindings
    ]

    if args.json:
        _emit_json({"command": "keys", "target": args.target, "keys": rows})
        return ExitCode.SUCCESS

    width = max((len(row["key"]) for row in rows), default=0)
    for row in rows:
        marker = "set" if row["present"] else "missing"
        encoding = f" [{row['encoding']}]" if row["encoding"] else ""
        print(f"{row['key']:<{width}}  {row['path']} ({row['type']}{encoding}) {marker}")
    return ExitCode.SUCCESS


def _cmd_check(args: argparse.Namespace) -> int:
    record_type = _resolve_target(args.target)
    try:
        instance = load(record_type, strict=args.strict)
    except InvalidTargetError as exc:
        raise CLIError(str(exc), exit_code=ExitCode.TARGET_ERROR) from exc
    except EnvDecodeError as exc:
        raise CLIError(str(exc).rstrip("\n"), exit_code=ExitCode.DECODE_FAILED) from exc

    redacted = redact_payload(dataclasses.asdict(instance))
    if args.json:
        _emit_json({"command": "check", "target": args.target, "config": redacted})
        return ExitCode.SUCCESS

    print(json.dumps(redacted, indent=2, sort_keys=True, ensure_ascii=False))
    return ExitCode.SUCCESS


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _resolve_target(reference: str) -> type:
    module_name, separator, attribute_path = reference.partition(":")
    if not separator or not module_name or not attribute_path:
        raise CLIError(
            f"invalid target {reference!r}; expected MODULE:CLASS",
            exit_code=ExitCode.TARGET_ERROR,
        )

    try:
        resolved: object = importlib.import_module(module_name)
    except ImportError as exc:
        raise CLIError(
            f"cannot import module {module_name!r}: {exc}", exit_code=ExitCode.TARGET_ERROR
        ) from exc

    for part in attribute_path.split("."):
        try:
            resolved = getattr(resolved, part)
        except AttributeError as exc:
            raise CLIError(
                f"{module_name!r} has no attribute {attribute_path!r}",
                exit_code=ExitCode.TARGET_ERROR,
            ) from exc

    if not isinstance(resolved, type) or not is_record_type(resolved):
        raise CLIError(f"{reference!r} is not a dataclass", exit_code=ExitCode.TARGET_ERROR)
    return resolved


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


__all__ = ["CLIError", "build_parser", "run_cli"]
