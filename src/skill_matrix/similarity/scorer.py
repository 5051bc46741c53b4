"""Edit-distance based similarity between two taxonomy labels."""

from __future__ import annotations

import re
from typing import Final

from rapidfuzz.distance import Levenshtein

from skill_matrix.constants import DEFAULT_NORMALIZED_MATCH_SCORE

_WHITESPACE: Final[re.Pattern[str]] = re.compile(r"\s+")


def normalize_label(label: str) -> str:
    """Trim, lower-case, and drop all internal whitespace."""
    return _WHITESPACE.sub("", label.strip().lower())


def edit_distance(left: str, right: str) -> int:
    """Levenshtein distance (unit cost insert/delete/substitute)."""
    return int(Levenshtein.distance(left, right))


def similarity(
    a: str,
    b: str,
    *,
    normalized_match_score: float = DEFAULT_NORMALIZED_MATCH_SCORE,
) -> float:
    """
    Score two labels in ``[0, 1]``.

    ``1.0`` is reserved for exact matches. Labels that differ only by case or
    whitespace score ``normalized_match_score`` so they stay distinguishable
    from an exact match. Everything else is ``1 - distance / longer_length``
    over the normalized forms.
    """
    if a == b:
        return 1.0

    left = normalize_label(a)
    right = normalize_label(b)
    if left == right:
        return normalized_match_score

    longer = max(len(left), len(right))
    if longer == 0:
        return 1.0
    return 1.0 - edit_distance(left, right) / longer


__all__ = ["edit_distance", "normalize_label", "similarity"]
