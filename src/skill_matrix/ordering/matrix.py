"""Spreadsheet-style view rows with merged category/item cells."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from skill_matrix.domain.models import LeafRecord
from skill_matrix.ordering.tree import GroupNode


@dataclass(frozen=True, slots=True)
class MatrixRow:
    """
    One sub-category row.

    ``category``/``item`` are ``None`` on rows covered by a merged cell above;
    the first row of a run carries the label and the run length as rowspan.
    """

    node_key: str
    category: str | None
    category_rowspan: int
    item: str | None
    item_rowspan: int
    sub_category: str
    phases: tuple[str, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "nodeKey": self.node_key,
            "category": self.category,
            "categoryRowspan": self.category_rowspan,
            "item": self.item,
            "itemRowspan": self.item_rowspan,
            "subCategory": self.sub_category,
            "phases": list(self.phases),
        }


def cell_text(leaves: Sequence[LeafRecord]) -> str:
    """``"<small>: <name>"`` per leaf, grouped by small category in first-seen order."""
    by_small: dict[str, list[str]] = {}
    for leaf in leaves:
        by_small.setdefault(leaf.small_category, []).append(leaf.name)
    return "\n".join(
        f"{small}: {name}" for small, names in by_small.items() for name in names
    )


def matrix_rows(nodes: Sequence[GroupNode]) -> tuple[MatrixRow, ...]:
    """Rows in ``nodes`` order; empty nodes are skipped."""
    visible = [node for node in nodes if node.leaf_count]
    category_spans = _run_lengths([node.category for node in visible])
    item_spans = _run_lengths([(node.category, node.item) for node in visible])

    rows: list[MatrixRow] = []
    for index, node in enumerate(visible):
        category_span = category_spans.get(index, 0)
        item_span = item_spans.get(index, 0)
        rows.append(
            MatrixRow(
                node_key=node.key,
                category=node.category if category_span else None,
                category_rowspan=category_span,
                item=node.item if item_span else None,
                item_rowspan=item_span,
                sub_category=node.sub_category,
                phases=tuple(cell_text(bucket) for bucket in node.phases),
            )
        )
    return tuple(rows)


def _run_lengths(values: Sequence[object]) -> dict[int, int]:
    """Map the start index of each run of equal consecutive values to its length."""
    spans: dict[int, int] = {}
    start = 0
    for index in range(1, len(values) + 1):
        if index == len(values) or values[index] != values[start]:
            spans[start] = index - start
            start = index
    return spans


__all__ = ["MatrixRow", "cell_text", "matrix_rows"]
