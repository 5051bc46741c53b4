"""Import review: validate and diff candidate rows before they replace the session."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from skill_matrix.constants import DEFAULT_NORMALIZED_MATCH_SCORE, DEFAULT_SIMILARITY_THRESHOLD
from skill_matrix.domain.models import LeafRecord, leaf_from_dict
from skill_matrix.review.differ import ChangeReport, diff
from skill_matrix.review.validator import ValidationResult, validate

_logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ImportPreview:
    candidates: tuple[LeafRecord, ...]
    parse_errors: tuple[str, ...]
    validation: ValidationResult
    report: ChangeReport

    @property
    def row_count(self) -> int:
        return len(self.candidates)

    @property
    def error_count(self) -> int:
        return len(self.parse_errors) + len(self.validation.errors)

    @property
    def can_apply(self) -> bool:
        return bool(self.candidates) and not self.parse_errors and self.validation.ok

    def to_dict(self) -> dict[str, object]:
        return {
            "row_count": self.row_count,
            "error_count": self.error_count,
            "can_apply": self.can_apply,
            "parse_errors": list(self.parse_errors),
            "validation": self.validation.to_dict(),
            "report": self.report.to_dict(),
        }


def candidates_from_dicts(
    rows: Sequence[object],
    *,
    allocate_id: Callable[[], int],
) -> tuple[tuple[LeafRecord, ...], tuple[str, ...]]:
    """
    Build persisted-shape candidates from imported wire rows.

    Rows without a positive ``id`` get one from ``allocate_id``; placeholder
    references are dropped. A row that cannot be turned into a record
    becomes a ``"row N: ..."`` parse error instead of raising.
    """
    candidates: list[LeafRecord] = []
    errors: list[str] = []
    for number, row in enumerate(rows, start=1):
        if not isinstance(row, Mapping):
            errors.append(f"row {number}: expected object, got {type(row).__name__}")
            continue
        payload = {key: value for key, value in row.items() if key != "groupPlaceholderId"}
        raw_id = payload.get("id")
        if not isinstance(raw_id, int) or isinstance(raw_id, bool) or raw_id <= 0:
            payload["id"] = allocate_id()
        try:
            candidates.append(leaf_from_dict(payload))
        except ValueError as exc:
            errors.append(f"row {number}: {exc}")
    return tuple(candidates), tuple(errors)


def review_import(
    baseline: Sequence[LeafRecord],
    candidates: Sequence[LeafRecord],
    parse_errors: Sequence[str] = (),
    *,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    normalized_match_score: float = DEFAULT_NORMALIZED_MATCH_SCORE,
    logger: Any | None = None,
) -> ImportPreview:
    """Validate ``candidates`` and diff them against ``baseline`` exactly like manual edits."""
    log = logger if logger is not None else _logger
    preview = ImportPreview(
        candidates=tuple(candidates),
        parse_errors=tuple(parse_errors),
        validation=validate(candidates),
        report=diff(
            baseline,
            candidates,
            threshold=threshold,
            normalized_match_score=normalized_match_score,
            logger=log,
        ),
    )
    log.info(
        "import_reviewed",
        rows=preview.row_count,
        errors=preview.error_count,
        can_apply=preview.can_apply,
    )
    return preview


__all__ = ["ImportPreview", "candidates_from_dicts", "review_import"]
