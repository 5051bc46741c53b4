"""
skill-matrix — reconciliation engine for skill-taxonomy matrices.

File: src/skill_matrix/__init__.py
Last updated: 2026-10-19

Purpose
- Package root. Defines package-level metadata and import boundaries.

What should be included in this file
- Version export and a minimal public API surface.
- Import boundary rules: avoid importing heavy submodules at import time.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
