"""Unit tests for near-duplicate label detection."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from structlog.testing import capture_logs

from skill_matrix.domain.models import TaxonomyLevel
from skill_matrix.similarity.duplicates import SimilarPair, detect_duplicates, find_similar

_labels = st.lists(st.text(alphabet="abcd ", max_size=6), max_size=6)


@settings(derandomize=True, deadline=None, max_examples=150)
@given(_labels, _labels, st.sampled_from([0.1, 0.5, 0.7, 0.9, 1.0]))
def test_find_similar_stays_inside_threshold_band(
    new_labels: list[str], existing_labels: list[str], threshold: float
) -> None:
    pairs = find_similar(new_labels, existing_labels, threshold)

    assert all(threshold <= pair.similarity < 1.0 for pair in pairs)
    scores = [pair.similarity for pair in pairs]
    assert scores == sorted(scores, reverse=True)


def test_exact_matches_are_never_reported() -> None:
    assert find_similar(["RedTeam"], ["RedTeam"]) == []


def test_red_team_spacing_is_one_pair_at_normalized_score() -> None:
    pairs = find_similar(["Red Team"], ["共通", "RedTeam", "BlueTeam"])

    assert pairs == [SimilarPair(new="Red Team", existing="RedTeam", similarity=0.95)]
    assert pairs[0].percent == 95


def test_ties_keep_input_order() -> None:
    pairs = find_similar(["abcd", "abce"], ["abcx", "abcy"], 0.7)

    assert [(pair.new, pair.existing) for pair in pairs] == [
        ("abcd", "abcx"),
        ("abcd", "abcy"),
        ("abce", "abcx"),
        ("abce", "abcy"),
    ]


def test_scores_are_not_rounded_up_to_exact() -> None:
    existing = "a" * 300
    new = "a" * 299 + "b"

    pairs = find_similar([new], [existing], 0.99)

    assert len(pairs) == 1
    assert pairs[0].similarity < 1.0
    assert pairs[0].percent == 100


def test_threshold_must_be_in_unit_interval() -> None:
    with pytest.raises(ValueError, match="threshold"):
        find_similar(["a"], ["b"], 0.0)


def test_detect_duplicates_compares_levels_independently() -> None:
    with capture_logs() as logs:
        result = detect_duplicates(
            {
                TaxonomyLevel.CATEGORY: ("Red Team",),
                TaxonomyLevel.ITEM: ("RedTeam",),
            },
            {
                TaxonomyLevel.CATEGORY: ("RedTeam",),
                TaxonomyLevel.ITEM: ("Recon",),
            },
        )

    assert [pair.existing for pair in result[TaxonomyLevel.CATEGORY]] == ["RedTeam"]
    assert result[TaxonomyLevel.ITEM] == ()
    assert result[TaxonomyLevel.SUB_CATEGORY] == ()
    assert result[TaxonomyLevel.SMALL_CATEGORY] == ()

    scans = [entry for entry in logs if entry["event"] == "similarity_scan"]
    assert {entry["level"] for entry in scans} == {"category", "item"}
    assert all(entry["comparisons"] == 1 for entry in scans)
