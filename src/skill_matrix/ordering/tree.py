"""Group tree build: partition leaves by group and phase, then sort groups."""

from __future__ import annotations

import math
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

from skill_matrix.constants import DEFAULT_CATEGORY_PRIORITY, MAX_PHASE, MIN_PHASE, PHASES
from skill_matrix.domain.models import (
    CellKey,
    LeafRecord,
    PendingGroup,
    PendingLeaf,
    PhaseValue,
    group_key,
)
from skill_matrix.review.validator import is_valid_phase


@dataclass(frozen=True, slots=True)
class GroupNode:
    """One ``category|item|subCategory`` row with five ordered phase buckets."""

    key: str
    category: str
    item: str
    sub_category: str
    phases: tuple[tuple[LeafRecord, ...], ...]
    stray: tuple[LeafRecord, ...] = ()
    placeholder_id: str | None = None
    head_display_order: int | None = None

    @property
    def is_pending(self) -> bool:
        return self.placeholder_id is not None

    @property
    def group_key(self) -> str:
        """Real group key; equals ``key`` except for pending groups."""
        return group_key(self.category, self.item, self.sub_category)

    @property
    def leaf_count(self) -> int:
        return sum(len(bucket) for bucket in self.phases) + len(self.stray)

    @property
    def first_display_order(self) -> int | None:
        """``display_order`` of the group's first member in input order."""
        return self.head_display_order

    def phase(self, number: int) -> tuple[LeafRecord, ...]:
        if not MIN_PHASE <= number <= MAX_PHASE:
            raise ValueError(f"phase must be between {MIN_PHASE} and {MAX_PHASE}, got {number}")
        return self.phases[number - MIN_PHASE]

    def leaves(self) -> Iterator[LeafRecord]:
        """Members in display order: phases 1..5, then out-of-range phases."""
        for bucket in self.phases:
            yield from bucket
        yield from self.stray


@dataclass(frozen=True, slots=True)
class GroupTree:
    """Nodes in natural order (explicit display order, then category priority)."""

    nodes: tuple[GroupNode, ...]

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(node.key for node in self.nodes)

    def get(self, key: str) -> GroupNode | None:
        for node in self.nodes:
            if node.key == key:
                return node
        return None

    def ordered(self, order: Sequence[str]) -> tuple[GroupNode, ...]:
        """Nodes arranged by ``order``; nodes missing from it follow in natural order."""
        by_key = {node.key: node for node in self.nodes}
        arranged: list[GroupNode] = []
        for key in order:
            node = by_key.pop(key, None)
            if node is not None:
                arranged.append(node)
        arranged.extend(node for node in self.nodes if node.key in by_key)
        return tuple(arranged)


def build_tree(
    records: Sequence[LeafRecord],
    pending_groups: Sequence[PendingGroup] = (),
    *,
    leaf_order: Mapping[CellKey, Sequence[int]] | None = None,
    category_priority: Sequence[str] = DEFAULT_CATEGORY_PRIORITY,
) -> GroupTree:
    """
    Partition ``records`` into group nodes and order them.

    Persisted-shape leaves group by their group key; pending leaves group
    under their placeholder id. Groups are sorted by the first member's
    ``display_order`` (absent sorts last), then by ``category_priority``
    (unknown categories after, in first-seen order), then ``item``, then
    ``sub_category``. Pending groups are placed afterwards, each right
    after its anchor when present, else at the end.
    """
    order_map = MappingProxyType(dict(leaf_order or {}))
    members: dict[str, list[LeafRecord]] = {}
    for record in records:
        members.setdefault(record.node_key, []).append(record)

    pending_by_id = {group.placeholder_id: group for group in pending_groups}
    persisted_nodes: list[GroupNode] = []
    orphan_nodes: list[GroupNode] = []
    for key, leaves in members.items():
        if key in pending_by_id:
            continue
        head = leaves[0]
        node = _make_node(
            key,
            head.category,
            head.item,
            head.sub_category,
            leaves,
            order_map,
            placeholder_id=key if isinstance(head, PendingLeaf) else None,
        )
        if node.is_pending:
            orphan_nodes.append(node)
        else:
            persisted_nodes.append(node)

    ranks = _category_ranks(persisted_nodes, category_priority)
    persisted_nodes.sort(
        key=lambda node: (
            _display_sort_value(node.first_display_order),
            ranks[node.category],
            node.item,
            node.sub_category,
        )
    )

    arranged = persisted_nodes
    for group in pending_groups:
        node = _make_node(
            group.placeholder_id,
            group.category,
            group.item,
            group.sub_category,
            members.get(group.placeholder_id, []),
            order_map,
            placeholder_id=group.placeholder_id,
        )
        anchor_index = _index_of(arranged, group.insert_after)
        if anchor_index is None:
            arranged.append(node)
        else:
            arranged.insert(anchor_index + 1, node)
    arranged.extend(orphan_nodes)

    return GroupTree(nodes=tuple(arranged))


def natural_order(tree: GroupTree) -> tuple[str, ...]:
    return tree.keys


def _make_node(
    key: str,
    category: str,
    item: str,
    sub_category: str,
    leaves: Sequence[LeafRecord],
    leaf_order: Mapping[CellKey, Sequence[int]],
    *,
    placeholder_id: str | None,
) -> GroupNode:
    buckets: dict[PhaseValue, list[LeafRecord]] = {phase: [] for phase in PHASES}
    stray: list[LeafRecord] = []
    for leaf in leaves:
        if is_valid_phase(leaf.phase):
            buckets[leaf.phase].append(leaf)
        else:
            stray.append(leaf)

    phases = tuple(
        tuple(_apply_leaf_order(buckets[phase], leaf_order.get((key, phase), ())))
        for phase in PHASES
    )
    return GroupNode(
        key=key,
        category=category,
        item=item,
        sub_category=sub_category,
        phases=phases,
        stray=tuple(stray),
        placeholder_id=placeholder_id,
        head_display_order=leaves[0].display_order if leaves else None,
    )


def _apply_leaf_order(leaves: list[LeafRecord], explicit: Sequence[int]) -> list[LeafRecord]:
    if not explicit:
        return leaves
    position = {leaf_id: index for index, leaf_id in enumerate(explicit)}
    unplaced = len(position)
    return [
        leaf
        for _, leaf in sorted(
            enumerate(leaves),
            key=lambda pair: (position.get(pair[1].id, unplaced), pair[0]),
        )
    ]


def _category_ranks(nodes: Sequence[GroupNode], priority: Sequence[str]) -> dict[str, int]:
    ranks = {category: index for index, category in enumerate(priority)}
    next_rank = len(ranks)
    for node in nodes:
        if node.category not in ranks:
            ranks[node.category] = next_rank
            next_rank += 1
    return ranks


def _display_sort_value(display_order: int | None) -> float:
    return math.inf if display_order is None else float(display_order)


def _index_of(nodes: Sequence[GroupNode], key: str | None) -> int | None:
    if key is None:
        return None
    for index, node in enumerate(nodes):
        if node.key == key:
            return index
    return None


__all__ = ["GroupNode", "GroupTree", "build_tree", "natural_order"]
