"""
skill-matrix — pre-commit review

File: src/skill_matrix/review/__init__.py
Last updated: 2026-10-19

Purpose
- Validator (blocking business rules) and Taxonomy Differ (informational change report).

Functional requirements
- Validation is total and never raises for bad business values.
- The change report never blocks a commit on its own.
"""

from skill_matrix.review.differ import (
    ChangedRecord,
    ChangeReport,
    changed_cells,
    diff,
    distinct_labels,
)
from skill_matrix.review.validator import ValidationResult, is_valid_phase, validate

__all__ = [
    "ChangeReport",
    "ChangedRecord",
    "ValidationResult",
    "changed_cells",
    "diff",
    "distinct_labels",
    "is_valid_phase",
    "validate",
]
