"""
skill-matrix — label similarity

File: src/skill_matrix/similarity/__init__.py
Last updated: 2026-10-19

Purpose
- Similarity Scorer and Duplicate Detector for taxonomy labels.

Functional requirements
- Pure functions; exact matches score 1.0 and are never reported as duplicates.

Non-functional requirements
- Pairwise scan is O(new x existing); sized for tens to low hundreds of labels per level.
"""

from skill_matrix.similarity.duplicates import SimilarPair, detect_duplicates, find_similar
from skill_matrix.similarity.scorer import edit_distance, normalize_label, similarity

__all__ = [
    "SimilarPair",
    "detect_duplicates",
    "edit_distance",
    "find_similar",
    "normalize_label",
    "similarity",
]
