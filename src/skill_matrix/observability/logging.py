"""Structured logging setup on top of structlog with session-correlation context."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any, Final, TextIO

import structlog

_CORRELATION_KEYS: Final[frozenset[str]] = frozenset({"session_id", "command", "source"})
_LEVELS: Final[dict[str, int]] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def configure_logging(
    level: str = "INFO",
    fmt: str = "console",
    *,
    stream: TextIO | None = None,
    colors: bool = True,
) -> None:
    """
    Configure structlog process-wide.

    ``fmt`` is ``"console"`` for human-readable lines or ``"json"`` for one
    JSON object per line. Events below ``level`` are dropped before rendering.
    """
    numeric_level = _LEVELS.get(level.upper())
    if numeric_level is None:
        raise ValueError(f"unknown log level {level!r}; expected one of {sorted(_LEVELS)}")
    if fmt not in {"console", "json"}:
        raise ValueError(f"unknown log format {fmt!r}; expected 'console' or 'json'")

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if fmt == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer(sort_keys=True, ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=colors))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(
            file=stream if stream is not None else sys.stderr
        ),
        cache_logger_on_first_use=False,
    )


def configure_from_config(
    observability_config: Mapping[str, object] | None,
    *,
    verbose: bool = False,
    colors: bool = True,
) -> None:
    """Apply the ``[observability]`` section; ``verbose`` forces DEBUG."""
    cfg = dict(observability_config or {})
    level = "DEBUG" if verbose else str(cfg.get("log_level", "INFO"))
    configure_logging(level, str(cfg.get("log_format", "console")), colors=colors)


@contextmanager
def session_scope(**fields: str | None) -> Iterator[None]:
    """Temporarily bind correlation fields for every log event in scope."""
    bound = {key: value for key, value in fields.items() if value is not None}
    unknown = sorted(set(bound) - _CORRELATION_KEYS)
    if unknown:
        raise ValueError(f"unsupported correlation keys: {', '.join(unknown)}")
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def get_correlation_context() -> dict[str, Any]:
    """Return the current correlation context as a plain dictionary."""
    return dict(structlog.contextvars.get_contextvars())


__all__ = [
    "configure_from_config",
    "configure_logging",
    "get_correlation_context",
    "session_scope",
]
