"""Leaf-record tagged union, pending groups, and composite key helpers."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, Final, NoReturn

from skill_matrix.constants import KEY_SEPARATOR, PENDING_ERROR_KEY_PREFIX

# Raw phase values from import survive until validation; only negative ints are rejected.
PhaseValue = int | float | str | None
CellKey = tuple[str, PhaseValue]

_GROUP_KEY_PARTS: Final[int] = 3

# Wire (camelCase) name -> attribute name.
FIELD_ALIASES: Final[dict[str, str]] = {
    "subCategory": "sub_category",
    "smallCategory": "small_category",
    "displayOrder": "display_order",
    "groupPlaceholderId": "placeholder_group_id",
}
EDITABLE_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "category",
        "item",
        "sub_category",
        "small_category",
        "name",
        "description",
        "phase",
        "display_order",
    }
)


class LeafKind(StrEnum):
    PERSISTED = "persisted"
    PENDING = "pending"


class TaxonomyLevel(StrEnum):
    CATEGORY = "category"
    ITEM = "item"
    SUB_CATEGORY = "sub_category"
    SMALL_CATEGORY = "small_category"

    @property
    def report_key(self) -> str:
        """Plural key used in change reports (``categories``, ``items``, ...)."""
        return _REPORT_KEYS[self]


_REPORT_KEYS: Final[dict[TaxonomyLevel, str]] = {
    TaxonomyLevel.CATEGORY: "categories",
    TaxonomyLevel.ITEM: "items",
    TaxonomyLevel.SUB_CATEGORY: "sub_categories",
    TaxonomyLevel.SMALL_CATEGORY: "small_categories",
}

TAXONOMY_LEVELS: Final[tuple[TaxonomyLevel, ...]] = tuple(TaxonomyLevel)
GROUP_LEVELS: Final[tuple[TaxonomyLevel, ...]] = (
    TaxonomyLevel.CATEGORY,
    TaxonomyLevel.ITEM,
    TaxonomyLevel.SUB_CATEGORY,
)


def group_key(category: str, item: str, sub_category: str) -> str:
    """Build the exact, case-sensitive ``category|item|subCategory`` key."""
    return KEY_SEPARATOR.join((category, item, sub_category))


def parse_group_key(key: str) -> tuple[str, str, str]:
    """Split a group key; a key without exactly three parts is a caller bug."""
    if not isinstance(key, str):
        raise ValueError(f"group key must be a string, got {type(key).__name__}")
    parts = key.split(KEY_SEPARATOR)
    if len(parts) != _GROUP_KEY_PARTS:
        raise ValueError(
            f"malformed group key {key!r}: expected {_GROUP_KEY_PARTS} parts, got {len(parts)}"
        )
    return parts[0], parts[1], parts[2]


def canonical_field(name: str) -> str:
    """Map a wire field name to its attribute name; unknown names are rejected."""
    resolved = FIELD_ALIASES.get(name, name)
    if resolved not in EDITABLE_FIELDS:
        raise ValueError(f"unknown leaf field {name!r}")
    return resolved


@dataclass(frozen=True, slots=True, kw_only=True)
class LeafBase:
    """Fields shared by both leaf variants."""

    kind: ClassVar[LeafKind]

    id: int
    category: str
    item: str
    sub_category: str
    small_category: str
    name: str
    phase: PhaseValue
    description: str = ""
    display_order: int | None = None

    def __post_init__(self) -> None:
        path = type(self).__name__
        for attr in ("category", "item", "sub_category", "small_category", "name", "description"):
            if not isinstance(getattr(self, attr), str):
                _fail(f"{path}.{attr}", f"expected str, got {type(getattr(self, attr)).__name__}")
        if _is_int(self.phase) and self.phase < 0:
            _fail(f"{path}.phase", f"must not be negative (got {self.phase})")
        if self.display_order is not None and not _is_int(self.display_order):
            _fail(f"{path}.display_order", "expected int or None")

    @property
    def group_key(self) -> str:
        return group_key(self.category, self.item, self.sub_category)

    @property
    def node_key(self) -> str:
        """Key of the tree node that owns this leaf."""
        return self.group_key

    @property
    def comparison_key(self) -> str:
        return KEY_SEPARATOR.join(
            (
                self.category,
                self.item,
                self.sub_category,
                self.small_category,
                str(self.phase),
                self.name,
            )
        )

    @property
    def error_key(self) -> str:
        return f"{self.group_key}{KEY_SEPARATOR}{self.phase}"

    def label(self, level: TaxonomyLevel) -> str:
        value = getattr(self, level.value)
        return value if isinstance(value, str) else ""

    def with_changes(self, **changes: object) -> LeafRecord:
        return dataclasses.replace(self, **changes)  # type: ignore[arg-type]

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "category": self.category,
            "item": self.item,
            "subCategory": self.sub_category,
            "smallCategory": self.small_category,
            "name": self.name,
            "description": self.description,
            "phase": self.phase,
            "displayOrder": self.display_order,
        }


@dataclass(frozen=True, slots=True, kw_only=True)
class PersistedLeaf(LeafBase):
    """Leaf addressed by a positive id (stored, or new inside a stored group)."""

    kind: ClassVar[LeafKind] = LeafKind.PERSISTED

    def __post_init__(self) -> None:
        LeafBase.__post_init__(self)
        if not _is_int(self.id) or self.id <= 0:
            _fail("PersistedLeaf.id", f"must be a positive int (got {self.id!r})")


@dataclass(frozen=True, slots=True, kw_only=True)
class PendingLeaf(LeafBase):
    """Leaf of a not-yet-materialized group; negative id, owned by a placeholder."""

    kind: ClassVar[LeafKind] = LeafKind.PENDING

    placeholder_group_id: str

    def __post_init__(self) -> None:
        LeafBase.__post_init__(self)
        if not _is_int(self.id) or self.id >= 0:
            _fail("PendingLeaf.id", f"must be a negative int (got {self.id!r})")
        if not isinstance(self.placeholder_group_id, str) or not self.placeholder_group_id:
            _fail("PendingLeaf.placeholder_group_id", "must be a non-empty string")

    @property
    def node_key(self) -> str:
        return self.placeholder_group_id

    def to_dict(self) -> dict[str, object]:
        payload = LeafBase.to_dict(self)
        payload["groupPlaceholderId"] = self.placeholder_group_id
        return payload


LeafRecord = PersistedLeaf | PendingLeaf


@dataclass(frozen=True, slots=True)
class PendingGroup:
    """A group row created in this session that has not been persisted yet."""

    placeholder_id: str
    category: str = ""
    item: str = ""
    sub_category: str = ""
    insert_after: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.placeholder_id, str) or not self.placeholder_id:
            _fail("PendingGroup.placeholder_id", "must be a non-empty string")
        for attr in ("category", "item", "sub_category"):
            if not isinstance(getattr(self, attr), str):
                _fail(f"PendingGroup.{attr}", "expected str")

    @property
    def group_key(self) -> str:
        return group_key(self.category, self.item, self.sub_category)

    @property
    def error_key(self) -> str:
        return f"{PENDING_ERROR_KEY_PREFIX}{self.placeholder_id}"

    def label(self, level: TaxonomyLevel) -> str:
        return str(getattr(self, level.value))

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.placeholder_id,
            "category": self.category,
            "item": self.item,
            "subCategory": self.sub_category,
            "insertAfter": self.insert_after,
        }


def leaf_from_dict(data: Mapping[str, object]) -> LeafRecord:
    """Build a leaf from the persistence/import wire shape.

    Missing or non-string labels become strings so the Validator can flag
    them; only structurally impossible input raises ``ValueError``.
    """
    if not isinstance(data, Mapping):
        _fail("LeafRecord", f"expected object, got {type(data).__name__}")
    if "id" not in data:
        _fail("LeafRecord.id", "missing required field")

    fields: dict[str, object] = {
        "id": _as_optional_int(data["id"], "LeafRecord.id"),
        "category": _as_label(data.get("category")),
        "item": _as_label(data.get("item")),
        "sub_category": _as_label(data.get("subCategory")),
        "small_category": _as_label(data.get("smallCategory")),
        "name": _as_label(data.get("name")),
        "description": _as_label(data.get("description")),
        "phase": coerce_phase(data.get("phase")),
        "display_order": _as_optional_int(data.get("displayOrder"), "LeafRecord.displayOrder"),
    }
    placeholder = data.get("groupPlaceholderId")
    if placeholder is not None:
        return PendingLeaf(
            placeholder_group_id=_as_label(placeholder), **fields  # type: ignore[arg-type]
        )
    return PersistedLeaf(**fields)  # type: ignore[arg-type]


def pending_group_from_dict(data: Mapping[str, object]) -> PendingGroup:
    if not isinstance(data, Mapping):
        _fail("PendingGroup", f"expected object, got {type(data).__name__}")
    insert_after = data.get("insertAfter")
    return PendingGroup(
        placeholder_id=_as_label(data.get("id")),
        category=_as_label(data.get("category")),
        item=_as_label(data.get("item")),
        sub_category=_as_label(data.get("subCategory")),
        insert_after=insert_after if isinstance(insert_after, str) and insert_after else None,
    )


def coerce_phase(raw: object) -> PhaseValue:
    """Normalize integral phase inputs; anything else is kept for the Validator."""
    if isinstance(raw, bool):
        return str(raw)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return raw
    if isinstance(raw, str):
        stripped = raw.strip()
        if stripped.isdecimal():
            return int(stripped)
        return raw
    if raw is None:
        return None
    return str(raw)


def _as_label(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _as_optional_int(value: object, path: str) -> int | None:
    if value is None or value == "":
        return None
    if _is_int(value):
        return value  # type: ignore[return-value]
    if isinstance(value, str) and value.strip().lstrip("-").isdecimal():
        return int(value.strip())
    _fail(path, f"expected int or null, got {value!r}")


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


__all__ = [
    "EDITABLE_FIELDS",
    "FIELD_ALIASES",
    "GROUP_LEVELS",
    "TAXONOMY_LEVELS",
    "CellKey",
    "LeafBase",
    "LeafKind",
    "LeafRecord",
    "PendingGroup",
    "PendingLeaf",
    "PersistedLeaf",
    "PhaseValue",
    "TaxonomyLevel",
    "canonical_field",
    "coerce_phase",
    "group_key",
    "leaf_from_dict",
    "parse_group_key",
    "pending_group_from_dict",
]
