"""Explicit per-cell leaf order, addressed by leaf id rather than list position."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from skill_matrix.domain.models import CellKey, LeafRecord
from skill_matrix.ordering.order_entry import move_element


class PhaseLayout:
    """Mutable ``(node_key, phase) -> [leaf id, ...]`` mapping for one session."""

    def __init__(self, cells: Mapping[CellKey, Iterable[int]] | None = None) -> None:
        self._cells: dict[CellKey, list[int]] = {
            cell: list(ids) for cell, ids in (cells or {}).items()
        }

    @classmethod
    def from_records(cls, records: Iterable[LeafRecord]) -> PhaseLayout:
        layout = cls()
        for record in records:
            layout.append((record.node_key, record.phase), record.id)
        return layout

    def cell(self, cell: CellKey) -> tuple[int, ...]:
        return tuple(self._cells.get(cell, ()))

    def append(self, cell: CellKey, leaf_id: int) -> None:
        ids = self._cells.setdefault(cell, [])
        if leaf_id not in ids:
            ids.append(leaf_id)

    def remove(self, leaf_id: int) -> CellKey | None:
        for cell, ids in self._cells.items():
            if leaf_id in ids:
                ids.remove(leaf_id)
                if not ids:
                    del self._cells[cell]
                return cell
        return None

    def move_leaf(self, cell: CellKey, from_id: int, to_id: int) -> bool:
        """Move ``from_id`` to ``to_id``'s position inside one cell; unknown ids are a no-op."""
        ids = self._cells.get(cell)
        if ids is None or from_id == to_id or from_id not in ids or to_id not in ids:
            return False
        self._cells[cell] = move_element(ids, ids.index(from_id), ids.index(to_id))
        return True

    def relocate(self, leaf_id: int, cell: CellKey) -> None:
        """Move a leaf to the end of another cell."""
        self.remove(leaf_id)
        self.append(cell, leaf_id)

    def rename_node(self, old_key: str, new_key: str) -> None:
        """Re-key every cell of ``old_key``; ids already under ``new_key`` stay first."""
        for (node_key, phase) in list(self._cells):
            if node_key != old_key:
                continue
            ids = self._cells.pop((old_key, phase))
            for leaf_id in ids:
                self.append((new_key, phase), leaf_id)

    def drop_node(self, node_key: str) -> None:
        for cell in [cell for cell in self._cells if cell[0] == node_key]:
            del self._cells[cell]

    def as_mapping(self) -> Mapping[CellKey, tuple[int, ...]]:
        return MappingProxyType({cell: tuple(ids) for cell, ids in self._cells.items()})


__all__ = ["PhaseLayout"]
