"""Baseline vs. edited comparison: new labels, near-duplicates, and record changes."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

import structlog

from skill_matrix.constants import DEFAULT_NORMALIZED_MATCH_SCORE, DEFAULT_SIMILARITY_THRESHOLD
from skill_matrix.domain.models import TAXONOMY_LEVELS, LeafRecord, PhaseValue, TaxonomyLevel
from skill_matrix.similarity.duplicates import SimilarPair, detect_duplicates

_logger = structlog.get_logger(__name__)

_CellSignature = dict[int, tuple[str, str, str]]


@dataclass(frozen=True, slots=True)
class ChangedRecord:
    """Same comparison key in both sets, but description or display order differs."""

    old: LeafRecord
    new: LeafRecord

    def to_dict(self) -> dict[str, object]:
        return {"old": self.old.to_dict(), "new": self.new.to_dict()}


@dataclass(frozen=True, slots=True)
class ChangeReport:
    """Human-reviewable summary of an edit session. Informational only."""

    added_labels: Mapping[TaxonomyLevel, tuple[str, ...]]
    similar_labels: Mapping[TaxonomyLevel, tuple[SimilarPair, ...]]
    added_records: tuple[LeafRecord, ...]
    removed_records: tuple[LeafRecord, ...]
    changed_records: tuple[ChangedRecord, ...]

    @property
    def has_added_labels(self) -> bool:
        return any(self.added_labels.get(level) for level in TAXONOMY_LEVELS)

    @property
    def has_similar_labels(self) -> bool:
        return any(self.similar_labels.get(level) for level in TAXONOMY_LEVELS)

    @property
    def has_changes(self) -> bool:
        return bool(self.added_records or self.removed_records or self.changed_records)

    @property
    def needs_review(self) -> bool:
        """True when new or look-alike labels should be confirmed by a human."""
        return self.has_added_labels or self.has_similar_labels

    def added(self, level: TaxonomyLevel) -> tuple[str, ...]:
        return self.added_labels.get(level, ())

    def similar(self, level: TaxonomyLevel) -> tuple[SimilarPair, ...]:
        return self.similar_labels.get(level, ())

    def to_dict(self) -> dict[str, object]:
        return {
            "added_labels": {
                level.report_key: list(self.added(level)) for level in TAXONOMY_LEVELS
            },
            "similar_labels": {
                level.report_key: [pair.to_dict() for pair in self.similar(level)]
                for level in TAXONOMY_LEVELS
            },
            "added_records": [record.to_dict() for record in self.added_records],
            "removed_records": [record.to_dict() for record in self.removed_records],
            "changed_records": [change.to_dict() for change in self.changed_records],
        }


def distinct_labels(records: Iterable[LeafRecord], level: TaxonomyLevel) -> tuple[str, ...]:
    """Distinct non-empty labels at ``level`` in first-seen order."""
    seen: dict[str, None] = {}
    for record in records:
        value = record.label(level)
        if value:
            seen.setdefault(value, None)
    return tuple(seen)


def diff(
    baseline: Sequence[LeafRecord],
    edited: Sequence[LeafRecord],
    *,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    normalized_match_score: float = DEFAULT_NORMALIZED_MATCH_SCORE,
    logger: Any | None = None,
) -> ChangeReport:
    """Compare ``edited`` against the immutable ``baseline`` snapshot."""
    log = logger if logger is not None else _logger

    existing_by_level: dict[TaxonomyLevel, tuple[str, ...]] = {}
    added_by_level: dict[TaxonomyLevel, tuple[str, ...]] = {}
    for level in TAXONOMY_LEVELS:
        existing = distinct_labels(baseline, level)
        existing_set = set(existing)
        existing_by_level[level] = existing
        added_by_level[level] = tuple(
            label for label in distinct_labels(edited, level) if label not in existing_set
        )

    similar_by_level = detect_duplicates(
        added_by_level,
        existing_by_level,
        threshold=threshold,
        normalized_match_score=normalized_match_score,
        logger=log,
    )

    baseline_map = {record.comparison_key: record for record in baseline}
    edited_map = {record.comparison_key: record for record in edited}

    added: list[LeafRecord] = []
    changed: list[ChangedRecord] = []
    for key, record in edited_map.items():
        previous = baseline_map.get(key)
        if previous is None:
            added.append(record)
        elif (
            previous.description != record.description
            or previous.display_order != record.display_order
        ):
            changed.append(ChangedRecord(old=previous, new=record))

    removed = [record for key, record in baseline_map.items() if key not in edited_map]

    report = ChangeReport(
        added_labels=MappingProxyType(added_by_level),
        similar_labels=MappingProxyType(similar_by_level),
        added_records=tuple(added),
        removed_records=tuple(removed),
        changed_records=tuple(changed),
    )
    if report.has_similar_labels:
        log.info(
            "similar_labels_detected",
            **{
                level.report_key: len(report.similar(level))
                for level in TAXONOMY_LEVELS
                if report.similar(level)
            },
        )
    return report


def changed_cells(
    baseline: Sequence[LeafRecord],
    edited: Sequence[LeafRecord],
) -> frozenset[tuple[str, PhaseValue]]:
    """
    Return ``(group_key, phase)`` cells whose leaf content differs from baseline.

    A cell differs when a leaf was added or removed, or when a leaf with the
    same id changed its small category, name, or description.
    """
    before = _cell_signatures(baseline)
    after = _cell_signatures(edited)
    return frozenset(
        cell for cell in before.keys() | after.keys() if before.get(cell) != after.get(cell)
    )


def _cell_signatures(
    records: Iterable[LeafRecord],
) -> dict[tuple[str, PhaseValue], _CellSignature]:
    cells: dict[tuple[str, PhaseValue], _CellSignature] = {}
    for record in records:
        cell = cells.setdefault((record.group_key, record.phase), {})
        cell[record.id] = (record.small_category, record.name, record.description)
    return cells


__all__ = ["ChangeReport", "ChangedRecord", "changed_cells", "diff", "distinct_labels"]
