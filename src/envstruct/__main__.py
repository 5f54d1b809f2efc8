"""Module entrypoint for ``python -m envstruct``."""

from __future__ import annotations

from envstruct.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
