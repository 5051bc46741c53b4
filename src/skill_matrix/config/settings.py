"""Typed view of the engine tunables inside a validated config mapping."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from skill_matrix.constants import (
    DEFAULT_CATEGORY_PRIORITY,
    DEFAULT_NORMALIZED_MATCH_SCORE,
    DEFAULT_PLACEHOLDER_PREFIX,
    DEFAULT_SIMILARITY_THRESHOLD,
)


@dataclass(frozen=True, slots=True)
class EngineSettings:
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    normalized_match_score: float = DEFAULT_NORMALIZED_MATCH_SCORE
    category_priority: tuple[str, ...] = DEFAULT_CATEGORY_PRIORITY
    placeholder_prefix: str = DEFAULT_PLACEHOLDER_PREFIX

    def __post_init__(self) -> None:
        if not 0.0 < self.similarity_threshold <= 1.0:
            raise ValueError(
                f"similarity_threshold must be in (0, 1], got {self.similarity_threshold}"
            )
        if not 0.0 < self.normalized_match_score < 1.0:
            raise ValueError(
                f"normalized_match_score must be in (0, 1), got {self.normalized_match_score}"
            )

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> EngineSettings:
        """Extract engine tunables from a config produced by ``load_config``."""
        similarity = config.get("similarity", {})
        ordering = config.get("ordering", {})
        identity = config.get("identity", {})
        return cls(
            similarity_threshold=float(
                similarity.get("threshold", DEFAULT_SIMILARITY_THRESHOLD)
            ),
            normalized_match_score=float(
                similarity.get("normalized_match_score", DEFAULT_NORMALIZED_MATCH_SCORE)
            ),
            category_priority=tuple(
                ordering.get("category_priority", DEFAULT_CATEGORY_PRIORITY)
            ),
            placeholder_prefix=str(
                identity.get("placeholder_prefix", DEFAULT_PLACEHOLDER_PREFIX)
            ),
        )


__all__ = ["EngineSettings"]
