"""
skill-matrix — integration test package

File: tests/integration/__init__.py
Last updated: 2026-10-19

Purpose
- Test package marker for end-to-end session and CLI tests.

Functional requirements
- Must not import heavy modules at import time; keep test collection fast.
"""
