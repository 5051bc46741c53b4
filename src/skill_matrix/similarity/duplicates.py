"""Near-duplicate label detection built on the similarity scorer."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from skill_matrix.constants import DEFAULT_NORMALIZED_MATCH_SCORE, DEFAULT_SIMILARITY_THRESHOLD
from skill_matrix.domain.models import TAXONOMY_LEVELS, TaxonomyLevel
from skill_matrix.similarity.scorer import similarity

_logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SimilarPair:
    """A newly introduced label that looks like an existing one."""

    new: str
    existing: str
    similarity: float

    @property
    def percent(self) -> int:
        """Rounded percentage for display; never used for filtering."""
        return int(round(self.similarity * 100))

    def to_dict(self) -> dict[str, object]:
        return {"new": self.new, "existing": self.existing, "similarity": self.similarity}


def find_similar(
    new_labels: Sequence[str],
    existing_labels: Sequence[str],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    *,
    normalized_match_score: float = DEFAULT_NORMALIZED_MATCH_SCORE,
) -> list[SimilarPair]:
    """
    Return pairs with ``threshold <= similarity < 1.0``, most similar first.

    Exact matches are excluded. Ties keep input order (new label outer,
    existing label inner). Cost is ``len(new) * len(existing)`` scorer calls.
    """
    if not 0.0 < threshold <= 1.0:
        raise ValueError(f"threshold must be in (0, 1], got {threshold}")

    pairs: list[SimilarPair] = []
    for new in new_labels:
        for existing in existing_labels:
            score = similarity(new, existing, normalized_match_score=normalized_match_score)
            if threshold <= score < 1.0:
                pairs.append(SimilarPair(new=new, existing=existing, similarity=score))

    return sorted(pairs, key=lambda pair: -pair.similarity)


def detect_duplicates(
    added_by_level: Mapping[TaxonomyLevel, Sequence[str]],
    existing_by_level: Mapping[TaxonomyLevel, Sequence[str]],
    *,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    normalized_match_score: float = DEFAULT_NORMALIZED_MATCH_SCORE,
    logger: Any | None = None,
) -> dict[TaxonomyLevel, tuple[SimilarPair, ...]]:
    """Run :func:`find_similar` per taxonomy level using only that level's labels."""
    log = logger if logger is not None else _logger
    result: dict[TaxonomyLevel, tuple[SimilarPair, ...]] = {}
    for level in TAXONOMY_LEVELS:
        added = added_by_level.get(level, ())
        existing = existing_by_level.get(level, ())
        pairs = find_similar(
            added,
            existing,
            threshold,
            normalized_match_score=normalized_match_score,
        )
        result[level] = tuple(pairs)
        if added:
            log.debug(
                "similarity_scan",
                level=level.value,
                comparisons=len(added) * len(existing),
                matches=len(pairs),
            )
    return result


__all__ = ["SimilarPair", "detect_duplicates", "find_similar"]
