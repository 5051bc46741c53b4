"""
skill-matrix — unit tests for the edit session

File: tests/unit/session/test_edit_session.py
Last updated: 2026-10-19

Purpose
- Validate structural events, stale-event handling, check, commit and discard.

What this test file should cover
- Each event's effect on records, pending groups, leaf order and the group order.
- Unknown keys and ids are no-ops logged at debug level.
- Commit is refused while validation fails; closed sessions reject events.
"""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from skill_matrix.config.settings import EngineSettings
from skill_matrix.domain.models import PendingLeaf, PersistedLeaf
from skill_matrix.ordering.order_entry import OrderStateError, SessionState
from skill_matrix.session.edit_session import CommitBlockedError, EditSession

COMMON = "共通|Base|OS"
RED = "RedTeam|Recon|OSINT"
BLUE = "BlueTeam|Detect|SIEM"


def _leaf(record_id: int, key: str, phase: int, name: str) -> PersistedLeaf:
    category, item, sub = key.split("|")
    return PersistedLeaf(
        id=record_id,
        category=category,
        item=item,
        sub_category=sub,
        small_category="S",
        name=name,
        phase=phase,
    )


def _baseline() -> list[PersistedLeaf]:
    return [
        _leaf(1, COMMON, 1, "Linux"),
        _leaf(2, COMMON, 3, "Bash"),
        _leaf(3, RED, 1, "Maltego"),
        _leaf(4, BLUE, 2, "Sigma"),
    ]


def _session() -> EditSession:
    return EditSession.start(_baseline(), session_id="sess-1")


def test_start_builds_natural_order_and_logs_session() -> None:
    with capture_logs() as logs:
        session = _session()

    assert session.state is SessionState.ORDERED
    assert session.order == (COMMON, RED, BLUE)
    assert session.baseline == tuple(_baseline())
    assert logs[-1] == {
        "event": "session_started",
        "session_id": "sess-1",
        "records": 4,
        "groups": 3,
        "log_level": "info",
    }


def test_settings_control_category_priority() -> None:
    session = EditSession.start(
        _baseline(), settings=EngineSettings(category_priority=("BlueTeam", "RedTeam"))
    )

    assert session.order == (BLUE, RED, COMMON)
    assert session.session_id


def test_move_group_and_stale_moves() -> None:
    session = _session()

    with capture_logs() as logs:
        assert session.move_group(BLUE, COMMON) is True
        assert session.move_group("gone|x|y", COMMON) is False

    assert session.order == (BLUE, COMMON, RED)
    assert [node.key for node in session.nodes()] == [BLUE, COMMON, RED]
    stale = [entry for entry in logs if entry["event"] == "stale_event_ignored"]
    assert stale[0]["event_name"] == "move_group"
    assert stale[0]["log_level"] == "debug"


def test_insert_group_follows_anchor_even_after_reordering() -> None:
    session = _session()
    session.move_group(BLUE, COMMON)

    anchored = session.insert_group(BLUE)
    trailing = session.insert_group(None)
    unknown = session.insert_group("missing|key|here")

    assert anchored.insert_after == BLUE
    assert unknown.insert_after is None
    assert session.order == (
        BLUE,
        anchored.placeholder_id,
        COMMON,
        RED,
        trailing.placeholder_id,
        unknown.placeholder_id,
    )
    assert session.pending_group(anchored.placeholder_id) == anchored


def test_delete_group_removes_members_and_pending_groups() -> None:
    session = _session()
    group = session.insert_group(COMMON)
    session.set_group_field(group.placeholder_id, "category", "インフラ")
    pending = session.add_leaf(group.placeholder_id, 1, small_category="S", name="pfSense")
    assert pending is not None

    assert session.delete_group(group.placeholder_id) is True
    assert session.delete_group(RED) is True
    assert session.delete_group(RED) is False

    assert session.order == (COMMON, BLUE)
    assert session.pending_groups == ()
    assert session.record(pending.id) is None
    assert session.record(3) is None


def test_set_field_moves_leaf_and_places_new_group_after_old_one() -> None:
    session = _session()

    updated = session.set_field(3, "category", "インフラ")

    assert updated is not None and updated.group_key == "インフラ|Recon|OSINT"
    assert session.order == (COMMON, "インフラ|Recon|OSINT", BLUE)


def test_set_field_phase_change_appends_to_target_cell() -> None:
    session = _session()

    session.set_field(1, "phase", "3")

    node = session.tree.get(COMMON)
    assert node is not None
    assert [leaf.id for leaf in node.phase(3)] == [2, 1]
    assert node.phase(1) == ()


def test_set_field_accepts_wire_names_and_ignores_unknown_ids() -> None:
    session = _session()

    updated = session.set_field(2, "smallCategory", "Shells")

    assert updated is not None and updated.small_category == "Shells"
    assert session.set_field(99, "name", "ghost") is None
    with pytest.raises(ValueError, match="unknown leaf field"):
        session.set_field(2, "colour", "red")


def test_group_fields_of_pending_leaves_apply_to_their_group() -> None:
    session = _session()
    group = session.insert_group(RED)
    leaf = session.add_leaf(group.placeholder_id, 2, small_category="S", name="Nmap")
    assert isinstance(leaf, PendingLeaf)

    updated = session.set_field(leaf.id, "item", "Scan")

    assert updated is not None and updated.item == "Scan"
    refreshed = session.pending_group(group.placeholder_id)
    assert refreshed is not None and refreshed.item == "Scan"
    assert session.order.index(group.placeholder_id) == session.order.index(RED) + 1
    with pytest.raises(ValueError, match="pending groups have no field"):
        session.set_group_field(group.placeholder_id, "name", "x")
    assert session.set_group_field("grp-missing", "item", "x") is None


def test_rename_group_substitutes_key_in_place() -> None:
    session = _session()
    session.move_group(RED, COMMON)

    new_key = session.rename_group(RED, item="Exploit")

    assert new_key == "RedTeam|Exploit|OSINT"
    assert session.order == (new_key, COMMON, BLUE)
    assert {record.item for record in session.records if record.category == "RedTeam"} == {
        "Exploit"
    }
    assert session.rename_group("gone|x|y", item="z") is None


def test_rename_pending_group_keeps_placeholder_key() -> None:
    session = _session()
    group = session.insert_group(None)

    key = session.rename_group(
        group.placeholder_id, category="共通", item="Net", sub_category="IP"
    )

    assert key == group.placeholder_id
    renamed = session.pending_group(group.placeholder_id)
    assert renamed is not None and renamed.group_key == "共通|Net|IP"


def test_add_leaf_allocates_fresh_ids_per_group_kind() -> None:
    session = _session()
    group = session.insert_group(None)

    persisted = session.add_leaf(COMMON, 1, small_category="Shells", name="Zsh")
    pending = session.add_leaf(group.placeholder_id, 2)

    assert isinstance(persisted, PersistedLeaf) and persisted.id == 5
    assert isinstance(pending, PendingLeaf) and pending.id == -6
    assert pending.placeholder_group_id == group.placeholder_id
    assert session.add_leaf("gone|x|y", 1) is None


def test_move_phase_item_reorders_within_one_cell() -> None:
    session = _session()
    added = session.add_leaf(COMMON, 1, small_category="Shells", name="Zsh")
    assert added is not None

    assert session.move_phase_item(COMMON, 1, added.id, 1) is True
    assert session.move_phase_item(COMMON, 1, 99, 1) is False

    node = session.tree.get(COMMON)
    assert node is not None
    assert [leaf.id for leaf in node.phase(1)] == [added.id, 1]


def test_removed_ids_are_never_reissued() -> None:
    session = _session()
    added = session.add_leaf(COMMON, 2, small_category="S", name="tmp")
    assert added is not None
    session.remove_leaf(added.id)

    again = session.add_leaf(COMMON, 2, small_category="S", name="tmp")

    assert again is not None and again.id == added.id + 1
    assert session.remove_leaf(added.id) is False


def test_check_reports_validation_and_changes() -> None:
    session = _session()
    session.set_field(1, "name", "Ubuntu")
    session.set_field(4, "category", "Blue Team")

    result = session.check()

    assert result.can_commit
    assert result.needs_review
    payload = result.to_dict()
    assert {"groupKey": COMMON, "phase": 1} in payload["changed_cells"]
    assert payload["validation"] == {"errors": [], "error_keys": []}


def test_commit_is_blocked_while_validation_fails() -> None:
    session = _session()
    group = session.insert_group(COMMON)

    with pytest.raises(CommitBlockedError, match="validation failed") as excinfo:
        session.commit()

    assert excinfo.value.validation.error_keys == {f"new-{group.placeholder_id}"}
    assert session.state is SessionState.ORDERED


def test_commit_resolves_placeholders_and_flattens_order() -> None:
    session = _session()
    session.move_group(BLUE, RED)
    group = session.insert_group(COMMON)
    session.rename_group(
        group.placeholder_id, category="インフラ", item="Net", sub_category="FW"
    )
    session.add_leaf(group.placeholder_id, 2, small_category="Appliance", name="pfSense")

    with capture_logs() as logs:
        result = session.commit()

    assert [record.id for record in result.records] == [1, 2, 5, 4, 3]
    assert [record.display_order for record in result.records] == [1, 1, 2, 3, 4]
    assert dict(result.display_order) == {COMMON: 1, "インフラ|Net|FW": 2, BLUE: 3, RED: 4}
    assert all(isinstance(record, PersistedLeaf) for record in result.records)
    assert all("groupPlaceholderId" not in row for row in result.to_payload())
    assert session.state is SessionState.COMMITTED
    assert logs[-1]["event"] == "session_committed"

    with pytest.raises(OrderStateError):
        session.move_group(RED, BLUE)


def test_discard_reverts_to_baseline() -> None:
    session = _session()
    session.insert_group(None)
    session.remove_leaf(1)

    session.discard()

    assert session.state is SessionState.DISCARDED
    assert session.records == tuple(_baseline())
    assert session.pending_groups == ()
    assert session.order == ()
    with pytest.raises(OrderStateError):
        session.add_leaf(COMMON, 1)
    with pytest.raises(OrderStateError):
        session.discard()


def test_apply_import_replaces_records_and_resets_order() -> None:
    session = _session()
    session.move_group(BLUE, COMMON)
    rows = [record.to_dict() for record in _baseline()]
    rows.append({**rows[0], "name": "Debian"})
    rows.append({**rows[2], "id": None, "name": "Shodan"})

    preview = session.review_import(rows)
    tree = session.apply_import(preview)

    assert preview.can_apply
    ids = [record.id for record in session.records]
    assert ids[:4] == [1, 2, 3, 4]
    assert len(set(ids)) == len(ids) == 6
    assert session.order == tree.keys == (COMMON, RED, BLUE)
    assert session.state is SessionState.ORDERED


def test_apply_import_refuses_invalid_preview() -> None:
    session = _session()
    preview = session.review_import([{"id": 1, "phase": 1}], ["row 9: unreadable"])

    assert not preview.can_apply
    assert preview.error_count >= 2
    with pytest.raises(CommitBlockedError, match="import preview cannot be applied"):
        session.apply_import(preview)
    assert session.records == tuple(_baseline())
