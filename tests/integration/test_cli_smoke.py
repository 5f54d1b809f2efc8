"""
envstruct — CLI subprocess smoke contracts

File: tests/integration/test_cli_smoke.py
Last updated: 2026-10-19

Purpose
- Enforce CLI behavior for `python -m envstruct` keys/check in a real process.
- Verify exit codes, stdout payloads, and stderr diagnostics against an
  explicit environment.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
import textwrap
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"

_TARGET_MODULE = "smoke_settings"
_TARGET_SOURCE = textwrap.dedent(
    """
    from dataclasses import dataclass, field

    from envstruct import FormValues, UInt16, env


    @dataclass
    class Listener:
        port: UInt16 = env("SMOKE_PORT", default=0)
        hosts: list[str] = env("SMOKE_HOSTS", default_factory=list)


    @dataclass
    class Settings:
        name: str = env("SMOKE_NAME", default="")
        api_token: str = env("SMOKE_API_TOKEN", default="")
        query: FormValues = env("SMOKE_QUERY", encoding="form", default_factory=dict)
        listener: Listener = field(default_factory=Listener)
    """
)


def _write_target(root: Path) -> None:
    (root / f"{_TARGET_MODULE}.py").write_text(_TARGET_SOURCE, encoding="utf-8")


def _run_cli(
    target_root: Path, *args: str, extra_env: dict[str, str]
) -> subprocess.CompletedProcess[str]:
    env = {
        key: value
        for key, value in os.environ.items()
        if not key.startswith("SMOKE_") and key != "ENVSTRUCT_LOG_LEVEL"
    }
    env["PYTHONPATH"] = os.pathsep.join([str(SRC_PATH), str(target_root)])
    env.update(extra_env)
    return subprocess.run(
        [sys.executable, "-m", "envstruct", *args],
        cwd=target_root,
        text=True,
        capture_output=True,
        check=False,
        env=env,
    )


def _render_failure(command_name: str, completed: subprocess.CompletedProcess[str]) -> str:
    stdout = completed.stdout.strip()
    stderr = completed.stderr.strip()
    return (
        f"{command_name} failed with exit code {completed.returncode}\n"
        f"stdout:\n{stdout}\n"
        f"stderr:\n{stderr}\n"
    )


_VALID_ENV = {
    "SMOKE_NAME": "edge",
    "SMOKE_API_TOKEN": "tok-FAKE-123",
    "SMOKE_QUERY": "region=eu&region=us&tier=gold",
    "SMOKE_PORT": "8443",
    "SMOKE_HOSTS": "a.example, b.example",
}


def test_cli_check_decodes_environment(tmp_path: Path) -> None:
    _write_target(tmp_path)

    completed = _run_cli(
        tmp_path, "check", f"{_TARGET_MODULE}:Settings", "--json", extra_env=_VALID_ENV
    )

    assert completed.returncode == 0, _render_failure("check", completed)
    payload = json.loads(completed.stdout)
    assert payload["config"] == {
        "name": "edge",
        "api_token": "***REDACTED***",
        "query": {"region": ["eu", "us"], "tier": ["gold"]},
        "listener": {"port": 8443, "hosts": ["a.example", "b.example"]},
    }
    assert "tok-FAKE-123" not in completed.stdout + completed.stderr


def test_cli_check_decode_failure_exits_one(tmp_path: Path) -> None:
    _write_target(tmp_path)
    broken_env = dict(_VALID_ENV, SMOKE_PORT="70000", SMOKE_QUERY="a=1;b=2")

    completed = _run_cli(tmp_path, "check", f"{_TARGET_MODULE}:Settings", extra_env=broken_env)

    assert completed.returncode == 1, _render_failure("check", completed)
    assert completed.stdout == ""
    assert "SMOKE_QUERY: invalid semicolon separator in query" in completed.stderr
    assert "SMOKE_PORT: parsing '70000': value out of range" in completed.stderr


def test_cli_check_missing_key_exits_one(tmp_path: Path) -> None:
    _write_target(tmp_path)
    partial_env = {key: value for key, value in _VALID_ENV.items() if key != "SMOKE_HOSTS"}

    completed = _run_cli(tmp_path, "check", f"{_TARGET_MODULE}:Settings", extra_env=partial_env)

    assert completed.returncode == 1, _render_failure("check", completed)
    assert "missing SMOKE_HOSTS environment" in completed.stderr


def test_cli_keys_lists_bindings(tmp_path: Path) -> None:
    _write_target(tmp_path)

    completed = _run_cli(
        tmp_path, "keys", f"{_TARGET_MODULE}:Settings", "--json", extra_env={"SMOKE_NAME": "x"}
    )

    assert completed.returncode == 0, _render_failure("keys", completed)
    rows = json.loads(completed.stdout)["keys"]
    assert [row["key"] for row in rows] == [
        "SMOKE_NAME",
        "SMOKE_API_TOKEN",
        "SMOKE_QUERY",
        "SMOKE_PORT",
        "SMOKE_HOSTS",
    ]
    assert rows[0]["present"] is True
    assert rows[2]["encoding"] == "form"


def test_cli_bad_target_exits_two(tmp_path: Path) -> None:
    _write_target(tmp_path)

    completed = _run_cli(tmp_path, "check", f"{_TARGET_MODULE}:Nope", extra_env={})

    assert completed.returncode == 2, _render_failure("check", completed)
    assert "has no attribute" in completed.stderr


def test_cli_debug_logs_are_json_lines_on_stderr(tmp_path: Path) -> None:
    _write_target(tmp_path)
    broken_env = dict(_VALID_ENV, SMOKE_PORT="not-a-port")

    completed = _run_cli(
        tmp_path,
        "check",
        f"{_TARGET_MODULE}:Settings",
        "--log-level",
        "DEBUG",
        extra_env=broken_env,
    )

    assert completed.returncode == 1, _render_failure("check", completed)
    events = [
        json.loads(line) for line in completed.stderr.splitlines() if line.startswith("{")
    ]
    assert any(event.get("fields", {}).get("failed_keys") == ["SMOKE_PORT"] for event in events)
