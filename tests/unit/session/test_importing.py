"""Unit tests for import review."""

from __future__ import annotations

import itertools

from structlog.testing import capture_logs

from skill_matrix.domain.models import PersistedLeaf
from skill_matrix.session.importing import candidates_from_dicts, review_import

BASELINE = (
    PersistedLeaf(
        id=1,
        category="RedTeam",
        item="Recon",
        sub_category="OSINT",
        small_category="Tools",
        name="Maltego",
        phase=1,
    ),
)


def _row(**overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": 1,
        "category": "RedTeam",
        "item": "Recon",
        "subCategory": "OSINT",
        "smallCategory": "Tools",
        "name": "Maltego",
        "phase": 1,
    }
    row.update(overrides)
    return row


def test_rows_become_persisted_candidates_with_allocated_ids() -> None:
    counter = itertools.count(100)
    rows = [
        _row(),
        _row(id=None, name="Shodan"),
        _row(id=-3, groupPlaceholderId="grp-X", name="Amass"),
    ]

    candidates, errors = candidates_from_dicts(rows, allocate_id=lambda: next(counter))

    assert errors == ()
    assert [record.id for record in candidates] == [1, 100, 101]
    assert all(isinstance(record, PersistedLeaf) for record in candidates)


def test_broken_rows_become_numbered_parse_errors() -> None:
    candidates, errors = candidates_from_dicts(
        [_row(), "not a row", _row(displayOrder="later")],
        allocate_id=lambda: 50,
    )

    assert len(candidates) == 1
    assert errors[0] == "row 2: expected object, got str"
    assert errors[1].startswith("row 3: LeafRecord.displayOrder")


def test_review_import_matches_manual_edit_review() -> None:
    candidates, _ = candidates_from_dicts(
        [_row(), _row(id=2, category="Red Team", name="Shodan")],
        allocate_id=lambda: 99,
    )

    with capture_logs() as logs:
        preview = review_import(BASELINE, candidates)

    assert preview.can_apply
    assert preview.row_count == 2
    assert preview.error_count == 0
    assert preview.report.has_similar_labels
    assert [record.id for record in preview.report.added_records] == [2]
    imported = [entry for entry in logs if entry["event"] == "import_reviewed"]
    assert imported[0]["can_apply"] is True


def test_preview_cannot_apply_with_errors_or_without_rows() -> None:
    invalid, _ = candidates_from_dicts([_row(phase=7)], allocate_id=lambda: 5)

    assert not review_import(BASELINE, invalid).can_apply
    assert not review_import(BASELINE, (), ()).can_apply
    assert not review_import(BASELINE, BASELINE, ("row 4: broken",)).can_apply

    payload = review_import(BASELINE, invalid).to_dict()
    assert payload["error_count"] == 1
    assert payload["can_apply"] is False
