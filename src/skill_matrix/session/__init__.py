"""
skill-matrix — edit sessions

File: src/skill_matrix/session/__init__.py
Last updated: 2026-10-19

Purpose
- Identity Manager, ``EditSession`` handle and import review.

Functional requirements
- Nothing persists while the last validation reported errors.
- No placeholder identity survives a commit.
"""

from skill_matrix.session.edit_session import (
    CheckResult,
    CommitBlockedError,
    CommitResult,
    EditSession,
)
from skill_matrix.session.identity import IdentityError, IdentityManager
from skill_matrix.session.importing import ImportPreview, candidates_from_dicts, review_import

__all__ = [
    "CheckResult",
    "CommitBlockedError",
    "CommitResult",
    "EditSession",
    "IdentityError",
    "IdentityManager",
    "ImportPreview",
    "candidates_from_dicts",
    "review_import",
]
