"""
skill-matrix — edit session

File: src/skill_matrix/session/edit_session.py
Last updated: 2026-10-19

Purpose
- One editing session over a baseline snapshot: structural events, check,
  commit and discard.

What should be included in this file
- The ``EditSession`` handle that owns edited records, pending groups, the
  per-cell leaf layout, the group order entry and the identity manager.
- Check/commit result types and ``CommitBlockedError``.

Functional requirements
- Events referencing unknown keys or ids are no-ops (stale UI replay).
- Commit re-validates, resolves placeholders and flattens the group order.
- Discard reverts to the baseline and drops every session artefact.

Non-functional requirements
- Synchronous and I/O free; single writer per session.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final

import structlog

from skill_matrix.config.settings import EngineSettings
from skill_matrix.domain.ids import generate_ulid
from skill_matrix.domain.models import (
    GROUP_LEVELS,
    LeafRecord,
    PendingGroup,
    PendingLeaf,
    PersistedLeaf,
    PhaseValue,
    canonical_field,
    coerce_phase,
    group_key,
)
from skill_matrix.ordering.flatten import flatten
from skill_matrix.ordering.layout import PhaseLayout
from skill_matrix.ordering.order_entry import OrderEntry, OrderStateError, SessionState
from skill_matrix.ordering.tree import GroupNode, GroupTree, build_tree
from skill_matrix.review.differ import ChangeReport, changed_cells, diff
from skill_matrix.review.validator import ValidationResult, validate
from skill_matrix.session.identity import IdentityManager
from skill_matrix.session.importing import ImportPreview, candidates_from_dicts, review_import

_GROUP_FIELDS: Final[frozenset[str]] = frozenset(level.value for level in GROUP_LEVELS)
_LABEL_FIELDS: Final[frozenset[str]] = frozenset(
    {"category", "item", "sub_category", "small_category", "name", "description"}
)
_CLOSED_STATES: Final[frozenset[SessionState]] = frozenset(
    {SessionState.COMMITTED, SessionState.DISCARDED}
)


class CommitBlockedError(RuntimeError):
    """Raised when commit or import is attempted while validation reports errors."""

    def __init__(self, validation: ValidationResult, *, reason: str = "validation failed") -> None:
        self.validation = validation
        detail = "; ".join(validation.errors[:3])
        more = len(validation.errors) - 3
        if more > 0:
            detail = f"{detail}; ... {more} more"
        super().__init__(f"{reason}: {detail}" if detail else reason)


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Validator outcome plus the informational change report for review."""

    validation: ValidationResult
    report: ChangeReport
    changed_cells: frozenset[tuple[str, PhaseValue]]

    @property
    def can_commit(self) -> bool:
        return self.validation.ok

    @property
    def needs_review(self) -> bool:
        return self.report.needs_review

    def to_dict(self) -> dict[str, object]:
        return {
            "can_commit": self.can_commit,
            "needs_review": self.needs_review,
            "validation": self.validation.to_dict(),
            "report": self.report.to_dict(),
            "changed_cells": [
                {"groupKey": key, "phase": phase}
                for key, phase in sorted(self.changed_cells, key=_cell_sort_key)
            ],
        }


@dataclass(frozen=True, slots=True)
class CommitResult:
    """Flattened, placeholder-free record set ready for the persistence collaborator."""

    records: tuple[LeafRecord, ...]
    display_order: Mapping[str, int]

    def to_payload(self) -> list[dict[str, object]]:
        return [record.to_dict() for record in self.records]


class EditSession:
    """Mutable editing state for one user over one baseline snapshot."""

    def __init__(
        self,
        records: Iterable[LeafRecord],
        *,
        settings: EngineSettings | None = None,
        logger: Any | None = None,
        session_id: str | None = None,
    ) -> None:
        self._settings = settings if settings is not None else EngineSettings()
        self.session_id = session_id if session_id is not None else generate_ulid()
        base_logger = logger if logger is not None else structlog.get_logger(__name__)
        self._logger = base_logger.bind(session_id=self.session_id)

        self._baseline: tuple[LeafRecord, ...] = tuple(records)
        self._records: list[LeafRecord] = list(self._baseline)
        self._pending_groups: list[PendingGroup] = []
        self._layout = PhaseLayout.from_records(self._records)
        self._order = OrderEntry()
        self._identity = IdentityManager(
            (record.id for record in self._baseline),
            placeholder_prefix=self._settings.placeholder_prefix,
            logger=self._logger,
        )
        self._tree = GroupTree(nodes=())

    @classmethod
    def start(
        cls,
        records: Iterable[LeafRecord],
        *,
        settings: EngineSettings | None = None,
        logger: Any | None = None,
        session_id: str | None = None,
    ) -> EditSession:
        """Snapshot ``records`` as the baseline and build the initial tree and order."""
        session = cls(records, settings=settings, logger=logger, session_id=session_id)
        session._order.mark_built()
        session.rebuild()
        session._logger.info(
            "session_started",
            records=len(session._baseline),
            groups=len(session._order),
        )
        return session

    # ------------------------
    # Read-only views
    # ------------------------

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def state(self) -> SessionState:
        return self._order.state

    @property
    def baseline(self) -> tuple[LeafRecord, ...]:
        return self._baseline

    @property
    def records(self) -> tuple[LeafRecord, ...]:
        return tuple(self._records)

    @property
    def pending_groups(self) -> tuple[PendingGroup, ...]:
        return tuple(self._pending_groups)

    @property
    def order(self) -> tuple[str, ...]:
        return self._order.keys

    @property
    def tree(self) -> GroupTree:
        return self._tree

    @property
    def identity(self) -> IdentityManager:
        return self._identity

    def nodes(self) -> tuple[GroupNode, ...]:
        """Group nodes in the current user order."""
        return self._tree.ordered(self._order.keys)

    def record(self, record_id: int) -> LeafRecord | None:
        index = self._index_of(record_id)
        return None if index is None else self._records[index]

    def pending_group(self, placeholder_id: str) -> PendingGroup | None:
        for group in self._pending_groups:
            if group.placeholder_id == placeholder_id:
                return group
        return None

    # ------------------------
    # Structural events
    # ------------------------

    def rebuild(self) -> GroupTree:
        """Rebuild the tree and reconcile the order entry against it."""
        self._guard("rebuild")
        self._tree = build_tree(
            self._records,
            self._pending_groups,
            leaf_order=self._layout.as_mapping(),
            category_priority=self._settings.category_priority,
        )
        self._order.reconcile(self._tree.keys)
        return self._tree

    def move_group(self, from_key: str, to_key: str) -> bool:
        self._guard("move_group")
        moved = self._order.reorder(from_key, to_key)
        if moved:
            self._logger.info("group_reordered", from_key=from_key, to_key=to_key)
        else:
            self._stale("move_group", from_key=from_key, to_key=to_key)
        return moved

    def move_phase_item(self, node_key: str, phase: PhaseValue, from_id: int, to_id: int) -> bool:
        self._guard("move_phase_item")
        moved = self._layout.move_leaf((node_key, phase), from_id, to_id)
        if not moved:
            self._stale(
                "move_phase_item", node_key=node_key, phase=phase, from_id=from_id, to_id=to_id
            )
            return False
        self.rebuild()
        self._logger.debug("leaf_reordered", node_key=node_key, phase=phase, from_id=from_id)
        return True

    def insert_group(self, anchor_key: str | None = None) -> PendingGroup:
        """Create an empty pending group right after ``anchor_key`` (or at the end)."""
        self._guard("insert_group")
        anchor = anchor_key if anchor_key is not None and anchor_key in self._order else None
        group = PendingGroup(
            placeholder_id=self._identity.allocate_group_placeholder(),
            insert_after=anchor,
        )
        self._pending_groups.append(group)
        if not self._order.is_empty:
            self._order.insert_after(group.placeholder_id, anchor)
        self.rebuild()
        self._logger.info("group_inserted", placeholder_id=group.placeholder_id, anchor=anchor)
        return group

    def delete_group(self, node_key: str) -> bool:
        self._guard("delete_group")
        pending = self.pending_group(node_key)
        members = [record for record in self._records if record.node_key == node_key]
        if pending is None and not members:
            self._stale("delete_group", node_key=node_key)
            return False

        if pending is not None:
            self._pending_groups.remove(pending)
        self._records = [record for record in self._records if record.node_key != node_key]
        self._layout.drop_node(node_key)
        self.rebuild()
        self._logger.info("group_deleted", node_key=node_key, leaves=len(members))
        return True

    def set_field(self, record_id: int, field: str, value: object) -> LeafRecord | None:
        """
        Update one leaf attribute.

        Group-level labels of a pending leaf are applied to its whole pending
        group. A persisted leaf whose group key or phase changes moves to the
        end of its new cell; a brand new group key is placed right after the
        old one in the order entry.
        """
        self._guard("set_field")
        attr = canonical_field(field)
        index = self._index_of(record_id)
        if index is None:
            self._stale("set_field", record_id=record_id, field=attr)
            return None

        current = self._records[index]
        if isinstance(current, PendingLeaf) and attr in _GROUP_FIELDS:
            self.set_group_field(current.placeholder_group_id, attr, value)
            return self._records[index]

        updated = current.with_changes(**{attr: _coerce_field(attr, value)})
        self._records[index] = updated

        old_cell = (current.node_key, current.phase)
        new_cell = (updated.node_key, updated.phase)
        if old_cell != new_cell:
            new_key = updated.node_key
            is_new_group = new_key != current.node_key and new_key not in self._order
            if is_new_group and not self._order.is_empty:
                self._order.insert_after(new_key, current.node_key)
            self._layout.relocate(record_id, new_cell)
            self._logger.debug(
                "leaf_moved", record_id=record_id, to_key=new_key, phase=updated.phase
            )
        self.rebuild()
        return updated

    def set_group_field(
        self, placeholder_id: str, field: str, value: object
    ) -> PendingGroup | None:
        """Set a label of a pending group and mirror it onto the group's leaves."""
        self._guard("set_group_field")
        attr = canonical_field(field)
        if attr not in _GROUP_FIELDS:
            raise ValueError(f"pending groups have no field {field!r}")
        group = self.pending_group(placeholder_id)
        if group is None:
            self._stale("set_group_field", placeholder_id=placeholder_id, field=attr)
            return None

        label = _coerce_field(attr, value)
        updated = dataclasses.replace(group, **{attr: label})
        self._pending_groups[self._pending_groups.index(group)] = updated
        self._records = [
            record.with_changes(**{attr: label}) if record.node_key == placeholder_id else record
            for record in self._records
        ]
        self.rebuild()
        return updated

    def rename_group(
        self,
        node_key: str,
        *,
        category: str | None = None,
        item: str | None = None,
        sub_category: str | None = None,
    ) -> str | None:
        """Rewrite the group labels of every member; returns the new node key."""
        self._guard("rename_group")
        changes = {
            attr: value
            for attr, value in (
                ("category", category),
                ("item", item),
                ("sub_category", sub_category),
            )
            if value is not None
        }

        if self.pending_group(node_key) is not None:
            for attr, value in changes.items():
                self.set_group_field(node_key, attr, value)
            return node_key

        members = [record for record in self._records if record.node_key == node_key]
        if not members:
            self._stale("rename_group", node_key=node_key)
            return None

        head = members[0]
        new_key = group_key(
            changes.get("category", head.category),
            changes.get("item", head.item),
            changes.get("sub_category", head.sub_category),
        )
        self._records = [
            record.with_changes(**changes) if record.node_key == node_key else record
            for record in self._records
        ]
        if new_key != node_key:
            self._layout.rename_node(node_key, new_key)
            self._order.replace(node_key, new_key)
        self.rebuild()
        self._logger.info("group_renamed", from_key=node_key, to_key=new_key)
        return new_key

    def add_leaf(
        self,
        node_key: str,
        phase: PhaseValue,
        *,
        small_category: str = "",
        name: str = "",
        description: str = "",
    ) -> LeafRecord | None:
        """Append a new leaf to ``(node_key, phase)`` with a freshly allocated id."""
        self._guard("add_leaf")
        node = self._tree.get(node_key)
        if node is None:
            self._stale("add_leaf", node_key=node_key, phase=phase)
            return None

        leaf: LeafRecord
        if node.is_pending:
            leaf = PendingLeaf(
                id=self._identity.allocate_pending_leaf_id(),
                placeholder_group_id=node_key,
                category=node.category,
                item=node.item,
                sub_category=node.sub_category,
                small_category=small_category,
                name=name,
                description=description,
                phase=coerce_phase(phase),
            )
        else:
            leaf = PersistedLeaf(
                id=self._identity.allocate_leaf_id(),
                category=node.category,
                item=node.item,
                sub_category=node.sub_category,
                small_category=small_category,
                name=name,
                description=description,
                phase=coerce_phase(phase),
                display_order=node.first_display_order,
            )
        self._records.append(leaf)
        self._layout.append((node_key, leaf.phase), leaf.id)
        self.rebuild()
        self._logger.debug("leaf_added", node_key=node_key, phase=leaf.phase, record_id=leaf.id)
        return leaf

    def remove_leaf(self, record_id: int) -> bool:
        self._guard("remove_leaf")
        index = self._index_of(record_id)
        if index is None:
            self._stale("remove_leaf", record_id=record_id)
            return False
        removed = self._records.pop(index)
        self._layout.remove(record_id)
        self.rebuild()
        self._logger.debug("leaf_removed", record_id=record_id, node_key=removed.node_key)
        return True

    # ------------------------
    # Review, commit, discard
    # ------------------------

    def check(self) -> CheckResult:
        """Run the Validator, then the Differ and Duplicate Detector."""
        validation = validate(self._records, self._pending_groups)
        report = diff(
            self._baseline,
            self._records,
            threshold=self._settings.similarity_threshold,
            normalized_match_score=self._settings.normalized_match_score,
            logger=self._logger,
        )
        result = CheckResult(
            validation=validation,
            report=report,
            changed_cells=changed_cells(self._baseline, self._records),
        )
        self._logger.info(
            "session_checked",
            errors=len(validation.errors),
            added_records=len(report.added_records),
            removed_records=len(report.removed_records),
            needs_review=result.needs_review,
        )
        return result

    def commit(self) -> CommitResult:
        """
        Validate, resolve placeholders and flatten the group order.

        Raises ``CommitBlockedError`` when validation reports errors; the
        session stays open so the user can fix them.
        """
        self._guard("commit")
        validation = validate(self._records, self._pending_groups)
        if not validation.ok:
            self._logger.warning("commit_blocked", errors=len(validation.errors))
            raise CommitBlockedError(validation)

        self.rebuild()
        resolved = self._identity.resolve(self._records, self._pending_groups)
        by_session_id = {
            original.id: final for original, final in zip(self._records, resolved, strict=True)
        }
        flattened = flatten(self.nodes(), by_session_id, logger=self._logger)
        self._order.commit()
        self._logger.info(
            "session_committed",
            records=len(flattened.records),
            groups=len(flattened.display_order),
        )
        return CommitResult(records=flattened.records, display_order=flattened.display_order)

    def discard(self) -> None:
        """Drop pending groups, the order entry and every edit; revert to the baseline."""
        self._order.discard()
        self._records = list(self._baseline)
        self._pending_groups = []
        self._layout = PhaseLayout.from_records(self._records)
        self._tree = GroupTree(nodes=())
        self._logger.info("session_discarded")

    # ------------------------
    # Import review
    # ------------------------

    def review_import(
        self,
        rows: Sequence[object],
        parse_errors: Sequence[str] = (),
    ) -> ImportPreview:
        """Parse candidate rows and review them against the baseline."""
        self._guard("review_import")
        candidates, row_errors = candidates_from_dicts(
            rows, allocate_id=self._identity.allocate_leaf_id
        )
        return review_import(
            self._baseline,
            candidates,
            (*parse_errors, *row_errors),
            threshold=self._settings.similarity_threshold,
            normalized_match_score=self._settings.normalized_match_score,
            logger=self._logger,
        )

    def apply_import(self, preview: ImportPreview) -> GroupTree:
        """Replace the edited records with an accepted import preview."""
        self._guard("apply_import")
        if not preview.can_apply:
            raise CommitBlockedError(preview.validation, reason="import preview cannot be applied")

        seen: set[int] = set()
        accepted: list[LeafRecord] = []
        for candidate in preview.candidates:
            record = candidate
            if isinstance(record, PendingLeaf) or record.id in seen:
                record = PersistedLeaf(
                    **{**_leaf_fields(record), "id": self._identity.allocate_leaf_id()}
                )
            seen.add(record.id)
            accepted.append(record)
        self._identity.observe(seen)

        self._records = accepted
        self._pending_groups = []
        self._layout = PhaseLayout.from_records(accepted)
        self._order.reset()
        tree = self.rebuild()
        self._logger.info("import_applied", records=len(accepted), groups=len(self._order))
        return tree

    # ------------------------
    # Internal helper routines
    # ------------------------

    def _guard(self, operation: str) -> None:
        if self._order.state in _CLOSED_STATES:
            raise OrderStateError(f"cannot {operation} after the session was {self._order.state}")

    def _stale(self, event: str, **fields: object) -> None:
        self._logger.debug("stale_event_ignored", event_name=event, **fields)

    def _index_of(self, record_id: int) -> int | None:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        return None


def _cell_sort_key(cell: tuple[str, PhaseValue]) -> tuple[str, str]:
    return cell[0], str(cell[1])


def _coerce_field(attr: str, value: object) -> object:
    if attr == "phase":
        return coerce_phase(value)
    if attr == "display_order":
        return value
    if attr in _LABEL_FIELDS:
        return "" if value is None else str(value)
    raise ValueError(f"unsupported leaf field {attr!r}")


def _leaf_fields(record: LeafRecord) -> dict[str, Any]:
    return {
        "category": record.category,
        "item": record.item,
        "sub_category": record.sub_category,
        "small_category": record.small_category,
        "name": record.name,
        "description": record.description,
        "phase": record.phase,
        "display_order": record.display_order,
    }


__all__ = ["CheckResult", "CommitBlockedError", "CommitResult", "EditSession"]
