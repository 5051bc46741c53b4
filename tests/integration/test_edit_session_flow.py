"""
skill-matrix — edit session end-to-end flow

File: tests/integration/test_edit_session_flow.py
Last updated: 2026-10-19

Purpose
- Drive a full editing session the way an interactive matrix editor would:
  build, reorder, insert, edit, delete, check and commit.
- Verify the persisted payload and the matrix view at each step.
"""

from __future__ import annotations

from structlog.testing import capture_logs

from skill_matrix.domain.models import TaxonomyLevel, leaf_from_dict
from skill_matrix.ordering.matrix import matrix_rows
from skill_matrix.ordering.tree import build_tree
from skill_matrix.session.edit_session import EditSession


def _row(
    record_id: int,
    category: str,
    item: str,
    sub: str,
    small: str,
    name: str,
    *,
    phase: int,
    order: int,
) -> dict[str, object]:
    return {
        "id": record_id,
        "category": category,
        "item": item,
        "subCategory": sub,
        "smallCategory": small,
        "name": name,
        "phase": phase,
        "displayOrder": order,
    }


STORED = [
    _row(10, "RedTeam", "Recon", "OSINT", "Tools", "Maltego", phase=1, order=2),
    _row(11, "RedTeam", "Recon", "OSINT", "Tools", "Amass", phase=3, order=2),
    _row(12, "RedTeam", "Recon", "Scan", "Tools", "Nmap", phase=1, order=3),
    _row(20, "共通", "Base", "OS", "Shells", "Bash", phase=2, order=1),
    _row(30, "BlueTeam", "Detect", "SIEM", "Rules", "Sigma", phase=4, order=4),
]

OSINT = "RedTeam|Recon|OSINT"
SCAN = "RedTeam|Recon|Scan"
BASE = "共通|Base|OS"
SIEM = "BlueTeam|Detect|SIEM"


def _start() -> EditSession:
    return EditSession.start([leaf_from_dict(row) for row in STORED], session_id="flow")


def test_stored_display_order_drives_initial_order() -> None:
    session = _start()

    assert session.order == (BASE, OSINT, SCAN, SIEM)
    rows = matrix_rows(session.nodes())
    assert [(row.category, row.category_rowspan) for row in rows] == [
        ("共通", 1),
        ("RedTeam", 2),
        (None, 0),
        ("BlueTeam", 1),
    ]
    assert [(row.item, row.item_rowspan) for row in rows][1:3] == [("Recon", 2), (None, 0)]


def test_deleting_leaves_keeps_then_removes_group() -> None:
    session = _start()

    session.remove_leaf(11)

    assert OSINT in session.order
    rows = {row.node_key: row for row in matrix_rows(session.nodes())}
    assert rows[OSINT].phases == ("Tools: Maltego", "", "", "", "")
    assert rows[OSINT].category_rowspan == 2

    session.remove_leaf(10)

    assert session.order == (BASE, SCAN, SIEM)
    rows_after = matrix_rows(session.nodes())
    assert [(row.node_key, row.category_rowspan) for row in rows_after] == [
        (BASE, 1),
        (SCAN, 1),
        (SIEM, 1),
    ]


def test_full_edit_and_commit_round_trip() -> None:
    session = _start()

    session.move_group(SIEM, BASE)
    group = session.insert_group(SIEM)
    session.set_group_field(group.placeholder_id, "category", "BlueTeam")
    session.set_group_field(group.placeholder_id, "item", "Respond")
    session.set_group_field(group.placeholder_id, "subCategory", "IR")
    playbook = session.add_leaf(group.placeholder_id, 3, small_category="Docs", name="Playbook")
    nmap_peer = session.add_leaf(SCAN, 1, small_category="Tools", name="Masscan")
    assert playbook is not None and nmap_peer is not None
    session.move_phase_item(SCAN, 1, nmap_peer.id, 12)
    session.set_field(20, "description", "default shell")

    check = session.check()
    assert check.can_commit
    assert check.report.added(TaxonomyLevel.ITEM) == ("Respond",)
    assert (BASE, 2) in check.changed_cells

    with capture_logs() as logs:
        result = session.commit()

    payload = result.to_payload()
    assert [row["id"] for row in payload] == [30, 31, 20, 10, 11, 32, 12]
    assert [row["displayOrder"] for row in payload] == [1, 2, 3, 4, 4, 5, 5]
    assert dict(result.display_order) == {
        SIEM: 1,
        "BlueTeam|Respond|IR": 2,
        BASE: 3,
        OSINT: 4,
        SCAN: 5,
    }
    assert all("groupPlaceholderId" not in row for row in payload)
    assert {entry["event"] for entry in logs} >= {"commit_flattened", "session_committed"}

    rebuilt = build_tree(result.records)
    assert rebuilt.keys == (SIEM, "BlueTeam|Respond|IR", BASE, OSINT, SCAN)
    scan = rebuilt.get(SCAN)
    assert scan is not None
    assert [leaf.name for leaf in scan.phase(1)] == ["Masscan", "Nmap"]


def test_discard_restores_stored_records() -> None:
    session = _start()
    session.insert_group(None)
    session.delete_group(OSINT)
    session.set_field(30, "name", "YARA")

    session.discard()

    assert [record.to_dict() for record in session.records] == [
        {**row, "description": ""} for row in STORED
    ]
