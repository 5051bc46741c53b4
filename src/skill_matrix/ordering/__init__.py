"""
skill-matrix — group ordering

File: src/skill_matrix/ordering/__init__.py
Last updated: 2026-10-19

Purpose
- Build the group tree, hold the user's group order, and flatten it for persistence.

What should be included in this file
- Re-exports of the tree, order entry, phase layout, flattening and matrix view.

Functional requirements
- A populated order entry is never overwritten by a rebuild.
- Pending groups are placed after the sort pass, next to their anchor.
"""

from skill_matrix.ordering.flatten import FlattenResult, flatten
from skill_matrix.ordering.layout import PhaseLayout
from skill_matrix.ordering.matrix import MatrixRow, cell_text, matrix_rows
from skill_matrix.ordering.order_entry import (
    OrderEntry,
    OrderStateError,
    SessionState,
    move_element,
)
from skill_matrix.ordering.tree import GroupNode, GroupTree, build_tree, natural_order

__all__ = [
    "FlattenResult",
    "GroupNode",
    "GroupTree",
    "MatrixRow",
    "OrderEntry",
    "OrderStateError",
    "PhaseLayout",
    "SessionState",
    "build_tree",
    "cell_text",
    "flatten",
    "matrix_rows",
    "move_element",
    "natural_order",
]
