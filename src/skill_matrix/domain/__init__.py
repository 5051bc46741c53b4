"""
skill-matrix — domain layer

File: src/skill_matrix/domain/__init__.py
Last updated: 2026-10-19

Purpose
- Domain types shared across layers: leaf records, pending groups, keys, placeholder ids.

Functional requirements
- Domain objects are immutable and serializable to the persistence wire shape.

Non-functional requirements
- Domain layer must stay free of IO side effects.
"""

from skill_matrix.domain.models import (
    GROUP_LEVELS,
    TAXONOMY_LEVELS,
    CellKey,
    LeafKind,
    LeafRecord,
    PendingGroup,
    PendingLeaf,
    PersistedLeaf,
    TaxonomyLevel,
    group_key,
    leaf_from_dict,
    parse_group_key,
    pending_group_from_dict,
)

__all__ = [
    "GROUP_LEVELS",
    "TAXONOMY_LEVELS",
    "CellKey",
    "LeafKind",
    "LeafRecord",
    "PendingGroup",
    "PendingLeaf",
    "PersistedLeaf",
    "TaxonomyLevel",
    "group_key",
    "leaf_from_dict",
    "parse_group_key",
    "pending_group_from_dict",
]
