"""
skill-matrix — group order entry

File: src/skill_matrix/ordering/order_entry.py
Last updated: 2026-10-19

Purpose
- Hold the user-chosen sequence of node keys for one edit session.

Functional requirements
- Once populated, the entry is authoritative: rebuilds only drop vanished
  keys and append unseen ones.
- Moves use move-element semantics and are no-ops for equal or unknown keys.
- Lifecycle is UNINITIALIZED -> BUILT -> ORDERED -> COMMITTED | DISCARDED;
  anything else raises ``OrderStateError``.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum
from typing import Final, TypeVar

T = TypeVar("T")


class SessionState(StrEnum):
    UNINITIALIZED = "uninitialized"
    BUILT = "built"
    ORDERED = "ordered"
    COMMITTED = "committed"
    DISCARDED = "discarded"


_TERMINAL: Final[frozenset[SessionState]] = frozenset(
    {SessionState.COMMITTED, SessionState.DISCARDED}
)


class OrderStateError(RuntimeError):
    """Raised when an order-entry operation is not legal in the current state."""


def move_element(items: Sequence[T], from_index: int, to_index: int) -> list[T]:
    """Remove the element at ``from_index`` and re-insert it at ``to_index``."""
    moved = list(items)
    if from_index == to_index:
        return moved
    element = moved.pop(from_index)
    moved.insert(to_index, element)
    return moved


class OrderEntry:
    """Ordered node keys plus the session lifecycle that guards them."""

    def __init__(self) -> None:
        self._keys: list[str] = []
        self._state = SessionState.UNINITIALIZED

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self._keys)

    @property
    def is_empty(self) -> bool:
        return not self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def position(self, key: str) -> int | None:
        try:
            return self._keys.index(key)
        except ValueError:
            return None

    def mark_built(self) -> None:
        self._require_open("build")
        if self._state is SessionState.UNINITIALIZED:
            self._state = SessionState.BUILT

    def reconcile(self, natural: Sequence[str]) -> tuple[str, ...]:
        """
        Align the entry with the keys present after a rebuild.

        An empty entry adopts ``natural``. A populated entry keeps its order,
        drops keys absent from ``natural`` and appends the missing ones in
        natural order.
        """
        self._require_open("reconcile")
        if self._state is SessionState.UNINITIALIZED:
            self._state = SessionState.BUILT

        present = set(natural)
        if not self._keys:
            self._keys = list(dict.fromkeys(natural))
        else:
            kept = [key for key in self._keys if key in present]
            known = set(kept)
            kept.extend(key for key in dict.fromkeys(natural) if key not in known)
            self._keys = kept

        if self._keys and self._state is SessionState.BUILT:
            self._state = SessionState.ORDERED
        return self.keys

    def reorder(self, from_key: str, to_key: str) -> bool:
        """Move ``from_key`` to the position of ``to_key``; returns whether anything moved."""
        self._require_open("reorder")
        if from_key == to_key:
            return False
        from_index = self.position(from_key)
        to_index = self.position(to_key)
        if from_index is None or to_index is None:
            return False
        self._keys = move_element(self._keys, from_index, to_index)
        return True

    def insert_after(self, key: str, anchor: str | None) -> None:
        """Place ``key`` right after ``anchor``; an absent anchor appends it."""
        self._require_open("insert")
        if key in self._keys:
            self._keys.remove(key)
        anchor_index = self.position(anchor) if anchor is not None else None
        if anchor_index is None:
            self._keys.append(key)
        else:
            self._keys.insert(anchor_index + 1, key)
        if self._state is not SessionState.ORDERED:
            self._state = SessionState.ORDERED

    def replace(self, old_key: str, new_key: str) -> bool:
        """Substitute ``old_key`` in place; a duplicate ``new_key`` elsewhere is dropped."""
        self._require_open("replace")
        index = self.position(old_key)
        if index is None:
            return False
        if old_key == new_key:
            return True
        self._keys = [key for key in self._keys if key != new_key or key == old_key]
        self._keys[self._keys.index(old_key)] = new_key
        return True

    def remove(self, key: str) -> bool:
        self._require_open("remove")
        if key not in self._keys:
            return False
        self._keys.remove(key)
        return True

    def reset(self) -> None:
        """Forget the custom order; the next reconcile adopts the natural order."""
        self._require_open("reset")
        self._keys = []
        self._state = SessionState.BUILT

    def commit(self) -> tuple[str, ...]:
        self._require_open("commit")
        if self._state is SessionState.UNINITIALIZED:
            raise OrderStateError("cannot commit an order entry that was never built")
        self._state = SessionState.COMMITTED
        return self.keys

    def discard(self) -> None:
        self._require_open("discard")
        self._keys = []
        self._state = SessionState.DISCARDED

    def _require_open(self, operation: str) -> None:
        if self._state in _TERMINAL:
            raise OrderStateError(f"cannot {operation} after the session was {self._state}")


__all__ = ["OrderEntry", "OrderStateError", "SessionState", "move_element"]
