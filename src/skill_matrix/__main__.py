"""Module entrypoint for ``python -m skill_matrix``."""

from __future__ import annotations

from skill_matrix.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
