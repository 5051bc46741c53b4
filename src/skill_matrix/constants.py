"""Stable constants shared across the engine layers."""

from __future__ import annotations

from typing import Final

# Phase buckets inside a group.
MIN_PHASE: Final[int] = 1
MAX_PHASE: Final[int] = 5
PHASES: Final[tuple[int, ...]] = tuple(range(MIN_PHASE, MAX_PHASE + 1))

# Composite key separator for group, error and comparison keys.
KEY_SEPARATOR: Final[str] = "|"

# Marker prefix for validation failures on not-yet-materialized groups.
PENDING_ERROR_KEY_PREFIX: Final[str] = "new-"

# Placeholder group ids are "<prefix>-<ulid>", never numeric.
DEFAULT_PLACEHOLDER_PREFIX: Final[str] = "grp"

# Category tie-break order for groups without an explicit display order.
DEFAULT_CATEGORY_PRIORITY: Final[tuple[str, ...]] = (
    "共通",
    "RedTeam",
    "PurpleTeam",
    "BlueTeam",
    "インフラ",
)

# Similarity tunables. Not tuned for short CJK labels; see config.
DEFAULT_SIMILARITY_THRESHOLD: Final[float] = 0.7
DEFAULT_NORMALIZED_MATCH_SCORE: Final[float] = 0.95

CONFIG_SCHEMA_VERSION: Final[int] = 1

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_CATEGORY_PRIORITY",
    "DEFAULT_NORMALIZED_MATCH_SCORE",
    "DEFAULT_PLACEHOLDER_PREFIX",
    "DEFAULT_SIMILARITY_THRESHOLD",
    "KEY_SEPARATOR",
    "MAX_PHASE",
    "MIN_PHASE",
    "PENDING_ERROR_KEY_PREFIX",
    "PHASES",
]
