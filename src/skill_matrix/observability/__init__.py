"""Public observability primitives: structlog configuration and session-correlation context."""

from skill_matrix.observability.logging import (
    configure_from_config,
    configure_logging,
    get_correlation_context,
    session_scope,
)

__all__ = [
    "configure_from_config",
    "configure_logging",
    "get_correlation_context",
    "session_scope",
]
