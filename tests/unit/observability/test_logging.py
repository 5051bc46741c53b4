"""
skill-matrix — unit tests for observability logging

File: tests/unit/observability/test_logging.py
Last updated: 2026-10-19

Purpose
- Validate structlog configuration, level filtering and session-correlation context.

What this test file should cover
- JSON line validity and correlation field propagation.
- Level filtering and console rendering.
- Rejection of unknown levels, formats and correlation keys.
"""

from __future__ import annotations

import io
import json

import pytest
import structlog

from skill_matrix.observability.logging import (
    configure_from_config,
    configure_logging,
    get_correlation_context,
    session_scope,
)


def _json_lines(stream: io.StringIO) -> list[dict[str, object]]:
    return [json.loads(line) for line in stream.getvalue().splitlines()]


def test_json_logging_carries_correlation_fields() -> None:
    stream = io.StringIO()
    configure_logging("DEBUG", "json", stream=stream)
    logger = structlog.get_logger("skill_matrix.tests")

    with session_scope(session_id="sess-9", command="check"):
        logger.info("group_reordered", from_key="a|b|c", to_key="d|e|f")
    logger.info("after_scope")

    first, second = _json_lines(stream)
    assert first["event"] == "group_reordered"
    assert first["session_id"] == "sess-9"
    assert first["command"] == "check"
    assert first["level"] == "info"
    assert str(first["timestamp"]).endswith("Z")
    assert "session_id" not in second


def test_level_filtering_drops_lower_events() -> None:
    stream = io.StringIO()
    configure_logging("WARNING", "json", stream=stream)
    logger = structlog.get_logger("skill_matrix.tests")

    logger.info("dropped")
    logger.warning("commit_blocked", errors=2)

    assert [line["event"] for line in _json_lines(stream)] == ["commit_blocked"]


def test_console_format_renders_event_name() -> None:
    stream = io.StringIO()
    configure_logging("INFO", "console", stream=stream, colors=False)

    structlog.get_logger("skill_matrix.tests").info("session_started", records=3)

    output = stream.getvalue()
    assert "session_started" in output
    assert "records=3" in output


def test_invalid_level_or_format_is_rejected() -> None:
    with pytest.raises(ValueError, match="unknown log level"):
        configure_logging("TRACE")
    with pytest.raises(ValueError, match="unknown log format"):
        configure_logging("INFO", "xml")


def test_configure_from_config_verbose_forces_debug(capsys: pytest.CaptureFixture[str]) -> None:
    configure_from_config({"log_level": "ERROR", "log_format": "json"}, verbose=True)

    structlog.get_logger("skill_matrix.tests").debug("leaf_added", record_id=5)

    line = json.loads(capsys.readouterr().err.strip())
    assert line["event"] == "leaf_added"
    assert line["level"] == "debug"


def test_session_scope_rejects_unknown_keys_and_skips_none() -> None:
    with pytest.raises(ValueError, match="unsupported correlation keys: user"):
        with session_scope(user="x"):
            pass

    with session_scope(session_id="s-1", source=None):
        assert get_correlation_context() == {"session_id": "s-1"}
    assert get_correlation_context() == {}
