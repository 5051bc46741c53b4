"""Commit flattening: turn the final group order into per-record ``display_order``."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

import structlog

from skill_matrix.domain.models import LeafRecord
from skill_matrix.ordering.tree import GroupNode

_logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class FlattenResult:
    records: tuple[LeafRecord, ...]
    display_order: Mapping[str, int]

    def to_payload(self) -> list[dict[str, object]]:
        return [record.to_dict() for record in self.records]


def flatten(
    nodes: Sequence[GroupNode],
    resolved: Mapping[int, LeafRecord] | None = None,
    *,
    logger: Any | None = None,
) -> FlattenResult:
    """
    Number groups 1..n in ``nodes`` order and stamp the number on every member.

    ``resolved`` maps a leaf's session id to its commit-time record; leaves
    missing from it are used as-is. Numbers are dense over distinct group
    keys, so two nodes that resolve to the same key share one number. Nodes
    without leaves get no number.
    """
    log = logger if logger is not None else _logger
    lookup = resolved or {}

    numbers: dict[str, int] = {}
    flattened: list[LeafRecord] = []
    for node in nodes:
        for leaf in node.leaves():
            record = lookup.get(leaf.id, leaf)
            number = numbers.setdefault(record.group_key, len(numbers) + 1)
            flattened.append(record.with_changes(display_order=number))

    log.debug("commit_flattened", groups=len(numbers), records=len(flattened))
    return FlattenResult(records=tuple(flattened), display_order=MappingProxyType(numbers))


__all__ = ["FlattenResult", "flatten"]
