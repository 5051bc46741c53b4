"""Unit tests for spreadsheet-style matrix rows."""

from __future__ import annotations

from skill_matrix.domain.models import PendingGroup, PersistedLeaf
from skill_matrix.ordering.matrix import cell_text, matrix_rows
from skill_matrix.ordering.tree import build_tree


def _leaf(
    record_id: int,
    category: str,
    item: str,
    sub: str,
    *,
    small: str = "S",
    phase: int = 1,
) -> PersistedLeaf:
    return PersistedLeaf(
        id=record_id,
        category=category,
        item=item,
        sub_category=sub,
        small_category=small,
        name=f"n{record_id}",
        phase=phase,
    )


def test_cell_text_groups_names_by_small_category() -> None:
    leaves = [
        _leaf(1, "c", "i", "s", small="Tools"),
        _leaf(2, "c", "i", "s", small="Docs"),
        _leaf(3, "c", "i", "s", small="Tools"),
    ]

    assert cell_text(leaves) == "Tools: n1\nTools: n3\nDocs: n2"
    assert cell_text([]) == ""


def test_rowspans_cover_consecutive_runs() -> None:
    records = [
        _leaf(1, "共通", "Base", "OS"),
        _leaf(2, "共通", "Base", "Shell"),
        _leaf(3, "共通", "Net", "TCP"),
        _leaf(4, "RedTeam", "Recon", "OSINT", phase=3),
    ]

    rows = matrix_rows(build_tree(records).nodes)

    assert [(row.category, row.category_rowspan) for row in rows] == [
        ("共通", 3),
        (None, 0),
        (None, 0),
        ("RedTeam", 1),
    ]
    assert [(row.item, row.item_rowspan) for row in rows] == [
        ("Base", 2),
        (None, 0),
        ("Net", 1),
        ("Recon", 1),
    ]
    assert rows[3].phases == ("", "", "S: n4", "", "")


def test_same_item_in_other_category_starts_new_run() -> None:
    records = [_leaf(1, "共通", "Base", "a"), _leaf(2, "RedTeam", "Base", "b")]

    rows = matrix_rows(build_tree(records).nodes)

    assert [row.item_rowspan for row in rows] == [1, 1]


def test_empty_nodes_are_skipped_and_rows_serialize_camel_case() -> None:
    tree = build_tree([_leaf(1, "共通", "Base", "OS")], [PendingGroup(placeholder_id="grp-E")])

    rows = matrix_rows(tree.nodes)

    assert len(tree.nodes) == 2
    assert len(rows) == 1
    assert rows[0].to_dict() == {
        "nodeKey": "共通|Base|OS",
        "category": "共通",
        "categoryRowspan": 1,
        "item": "Base",
        "itemRowspan": 1,
        "subCategory": "OS",
        "phases": ["S: n1", "", "", "", ""],
    }
