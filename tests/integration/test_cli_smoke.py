"""
skill-matrix — CLI subprocess smoke contracts

File: tests/integration/test_cli_smoke.py
Last updated: 2026-10-19

Purpose
- Enforce `python -m skill_matrix` behavior end to end: exit codes, stdout payloads,
  and structured logs kept on stderr.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"

RECORDS = [
    {
        "id": 1,
        "category": "RedTeam",
        "item": "Recon",
        "subCategory": "OSINT",
        "smallCategory": "Tools",
        "name": "Maltego",
        "phase": 1,
    },
    {
        "id": 2,
        "category": "共通",
        "item": "Base",
        "subCategory": "OS",
        "smallCategory": "Shells",
        "name": "Bash",
        "phase": 2,
    },
]


def _run_cli(cwd: Path, *args: str, **extra_env: str) -> subprocess.CompletedProcess[str]:
    env = {
        key: value for key, value in os.environ.items() if not key.startswith("SKILL_MATRIX_")
    }
    existing_pythonpath = env.get("PYTHONPATH")
    src_pythonpath = str(SRC_PATH)
    env["PYTHONPATH"] = (
        src_pythonpath if not existing_pythonpath else f"{src_pythonpath}:{existing_pythonpath}"
    )
    env.update(extra_env)
    return subprocess.run(
        [sys.executable, "-m", "skill_matrix", *args],
        cwd=cwd,
        text=True,
        encoding="utf-8",
        capture_output=True,
        check=False,
        env=env,
    )


def _write(path: Path, payload: object) -> Path:
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    return path


def test_check_json_on_stdout_and_json_logs_on_stderr(tmp_path: Path) -> None:
    stored = _write(tmp_path / "stored.json", RECORDS)
    edited = _write(tmp_path / "edited.json", [*RECORDS, {**RECORDS[0], "id": 3, "name": "Amass"}])

    completed = _run_cli(
        tmp_path,
        "check",
        "--baseline",
        str(stored),
        "--edited",
        str(edited),
        "--json",
        SKILL_MATRIX_OBSERVABILITY_LOG_FORMAT="json",
    )

    assert completed.returncode == 0, completed.stderr
    payload = json.loads(completed.stdout)
    assert payload["ok"] is True
    assert [row["id"] for row in payload["report"]["added_records"]] == [3]

    log_lines = [json.loads(line) for line in completed.stderr.splitlines() if line.strip()]
    finished = [line for line in log_lines if line["event"] == "check_completed"]
    assert finished and finished[0]["command"] == "check"


def test_validation_failure_exit_code(tmp_path: Path) -> None:
    stored = _write(tmp_path / "stored.json", RECORDS)
    edited = _write(tmp_path / "edited.json", [{**RECORDS[0], "name": ""}])

    completed = _run_cli(tmp_path, "check", "--baseline", str(stored), "--edited", str(edited))

    assert completed.returncode == 1
    assert "name is blank" in completed.stdout


def test_config_error_and_usage_error_exit_two(tmp_path: Path) -> None:
    bad = tmp_path / "skill_matrix.toml"
    bad.write_text('[identity]\nplaceholder_prefix = "123"\n', encoding="utf-8")

    config_error = _run_cli(tmp_path, "config")
    usage_error = _run_cli(tmp_path, "explode")

    assert config_error.returncode == 2
    assert "identity.placeholder_prefix" in config_error.stderr
    assert usage_error.returncode == 2


def test_order_command_text_output(tmp_path: Path) -> None:
    records = _write(tmp_path / "records.json", RECORDS)

    completed = _run_cli(tmp_path, "order", str(records), "--no-color")

    assert completed.returncode == 0, completed.stderr
    lines = completed.stdout.splitlines()
    group_lines = [line.strip() for line in lines if line.strip().startswith(("1 ", "2 "))]
    assert group_lines == ["1  共通|Base|OS", "2  RedTeam|Recon|OSINT"]
