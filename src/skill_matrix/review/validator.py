"""Per-record business-rule checks run before any persistence attempt."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

from skill_matrix.constants import KEY_SEPARATOR, MAX_PHASE, MIN_PHASE
from skill_matrix.domain.models import LeafRecord, PendingGroup, PhaseValue

_LEAF_REQUIRED: Final[tuple[tuple[str, str], ...]] = (
    ("category", "category"),
    ("item", "item"),
    ("sub_category", "sub-category"),
    ("small_category", "small category"),
    ("name", "name"),
)
_GROUP_REQUIRED: Final[tuple[tuple[str, str], ...]] = _LEAF_REQUIRED[:3]
# Labels that form the group key must not contain the separator.
_KEYED_ATTRS: Final[frozenset[str]] = frozenset(attr for attr, _ in _GROUP_REQUIRED)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Advisory outcome; callers must not persist while ``ok`` is false."""

    errors: tuple[str, ...]
    error_keys: frozenset[str]

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, object]:
        return {"errors": list(self.errors), "error_keys": sorted(self.error_keys)}


def is_valid_phase(phase: PhaseValue) -> bool:
    return (
        isinstance(phase, int)
        and not isinstance(phase, bool)
        and MIN_PHASE <= phase <= MAX_PHASE
    )


def validate(
    records: Sequence[LeafRecord],
    pending_groups: Sequence[PendingGroup] = (),
) -> ValidationResult:
    """
    Check every leaf and every pending group.

    Leaves contribute one message per failing field and their
    ``category|item|subCategory|phase`` key. Pending groups only need their
    three group labels and contribute ``new-<placeholder_id>``.
    """
    errors: list[str] = []
    error_keys: set[str] = set()

    for index, record in enumerate(records, start=1):
        where = f"record {index} (id={record.id})"
        messages = _label_messages(record, _LEAF_REQUIRED, where)
        if not is_valid_phase(record.phase):
            messages.append(
                f"{where}: phase must be an integer from {MIN_PHASE} to {MAX_PHASE} "
                f"(got {record.phase!r})"
            )
        if messages:
            errors.extend(messages)
            error_keys.add(record.error_key)

    for index, group in enumerate(pending_groups, start=1):
        where = f"new group {index}"
        messages = _label_messages(group, _GROUP_REQUIRED, where)
        if messages:
            errors.extend(messages)
            error_keys.add(group.error_key)

    return ValidationResult(errors=tuple(errors), error_keys=frozenset(error_keys))


def _label_messages(
    target: LeafRecord | PendingGroup,
    required: tuple[tuple[str, str], ...],
    where: str,
) -> list[str]:
    messages: list[str] = []
    for attr, title in required:
        value = getattr(target, attr)
        if not value.strip():
            messages.append(f"{where}: {title} is blank")
        elif attr in _KEYED_ATTRS and KEY_SEPARATOR in value:
            messages.append(f"{where}: {title} must not contain {KEY_SEPARATOR!r}")
    return messages


__all__ = ["ValidationResult", "is_valid_phase", "validate"]
