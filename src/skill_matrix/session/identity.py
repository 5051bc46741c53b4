"""
skill-matrix — identity manager

File: src/skill_matrix/session/identity.py
Last updated: 2026-10-19

Purpose
- Allocate provisional identities for new groups and leaves, and rewrite
  them to persisted identities at commit.

Functional requirements
- Group placeholders are ``<prefix>-<ULID>`` and never parse as numbers.
- Leaf ids come from a high-water mark over every id ever observed, so a
  freed id is never handed out again within the session.
- Resolution is total: no pending leaf survives, and no two records share an id.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Any

import structlog

from skill_matrix.constants import DEFAULT_PLACEHOLDER_PREFIX
from skill_matrix.domain.ids import generate_placeholder_id, validate_prefix
from skill_matrix.domain.models import LeafRecord, PendingGroup, PendingLeaf, PersistedLeaf

_logger = structlog.get_logger(__name__)


class IdentityError(RuntimeError):
    """Raised when placeholder resolution would lose or collide identities."""


class IdentityManager:
    def __init__(
        self,
        observed_ids: Iterable[int] = (),
        *,
        placeholder_prefix: str = DEFAULT_PLACEHOLDER_PREFIX,
        placeholder_factory: Callable[[str], str] | None = None,
        logger: Any | None = None,
    ) -> None:
        validate_prefix(placeholder_prefix)
        self._prefix = placeholder_prefix
        self._factory = (
            placeholder_factory if placeholder_factory is not None else generate_placeholder_id
        )
        self._issued_placeholders: set[str] = set()
        self._high_water = 0
        self._logger = logger if logger is not None else _logger
        self.observe(observed_ids)

    @property
    def high_water(self) -> int:
        return self._high_water

    @property
    def placeholder_prefix(self) -> str:
        return self._prefix

    def observe(self, ids: Iterable[int]) -> None:
        """Raise the high-water mark to cover ``ids``; it never goes down."""
        for value in ids:
            self._high_water = max(self._high_water, abs(value))

    def allocate_group_placeholder(self) -> str:
        while True:
            placeholder = self._factory(self._prefix)
            if placeholder not in self._issued_placeholders:
                self._issued_placeholders.add(placeholder)
                return placeholder

    def allocate_pending_leaf_id(self) -> int:
        self._high_water += 1
        return -self._high_water

    def allocate_leaf_id(self) -> int:
        self._high_water += 1
        return self._high_water

    def resolve(
        self,
        records: Sequence[LeafRecord],
        pending_groups: Sequence[PendingGroup] = (),
    ) -> tuple[PersistedLeaf, ...]:
        """
        Rewrite every pending leaf into a persisted leaf.

        The new id is ``abs(id)``; taxonomy labels come from the owning
        pending group when it is known. Raises ``IdentityError`` if two
        records end up with the same id.
        """
        groups = {group.placeholder_id: group for group in pending_groups}
        resolved: list[PersistedLeaf] = []
        seen: dict[int, LeafRecord] = {}
        rewritten = 0
        for record in records:
            if isinstance(record, PendingLeaf):
                leaf = self._materialize(record, groups.get(record.placeholder_group_id))
                rewritten += 1
            else:
                leaf = record
            clash = seen.get(leaf.id)
            if clash is not None:
                raise IdentityError(
                    f"id {leaf.id} would be shared by records {clash.comparison_key!r} "
                    f"and {record.comparison_key!r}"
                )
            seen[leaf.id] = record
            resolved.append(leaf)

        self._logger.debug("placeholders_resolved", leaves=rewritten, records=len(resolved))
        return tuple(resolved)

    @staticmethod
    def _materialize(record: PendingLeaf, group: PendingGroup | None) -> PersistedLeaf:
        return PersistedLeaf(
            id=abs(record.id),
            category=group.category if group is not None else record.category,
            item=group.item if group is not None else record.item,
            sub_category=group.sub_category if group is not None else record.sub_category,
            small_category=record.small_category,
            name=record.name,
            description=record.description,
            phase=record.phase,
            display_order=record.display_order,
        )


__all__ = ["IdentityError", "IdentityManager"]
