"""Process entrypoint for the ``envstruct`` command: exit-code contract and error routing."""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class ExitCode(IntEnum):
    """Deterministic process exit-code contract."""

    SUCCESS = 0
    DECODE_FAILED = 1
    TARGET_ERROR = 2
    INTERNAL_ERROR = 3


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and translate any escaping exception into an ``ExitCode``."""

    try:
        from envstruct.cli import run_cli

        return _coerce_exit_code(run_cli(argv))
    except SystemExit as exc:
        # argparse usage errors exit 2 (TARGET_ERROR).
        return _coerce_exit_code(exc.code)
    except Exception as exc:  # noqa: BLE001 - CLI boundary normalization.
        exit_code = _classify(exc)
        if exit_code is ExitCode.INTERNAL_ERROR:
            traceback.print_exception(exc, file=sys.stderr)
        else:
            print(str(exc).strip() or type(exc).__name__, file=sys.stderr)
        return int(exit_code)


def _coerce_exit_code(code: object) -> int:
    if code is None:
        return int(ExitCode.SUCCESS)
    if isinstance(code, int) and code in {member.value for member in ExitCode}:
        return code
    if isinstance(code, str) and code.strip():
        print(code.strip(), file=sys.stderr)
    return int(ExitCode.INTERNAL_ERROR)


def _classify(exc: BaseException) -> ExitCode:
    from envstruct.errors import EnvDecodeError, InvalidTargetError

    for link in _causes(exc):
        if isinstance(link, (InvalidTargetError, ImportError, AttributeError)):
            return ExitCode.TARGET_ERROR
        if isinstance(link, EnvDecodeError):
            return ExitCode.DECODE_FAILED
    return ExitCode.INTERNAL_ERROR


def _causes(exc: BaseException) -> Iterator[BaseException]:
    """Yield ``exc`` and its explicit or implicit causes, stopping on cycles."""

    visited: set[int] = set()
    link: BaseException | None = exc
    while link is not None and id(link) not in visited:
        visited.add(id(link))
        yield link
        link = link.__cause__ or (None if link.__suppress_context__ else link.__context__)


__all__ = ["ExitCode", "cli_entrypoint"]
