"""
skill-matrix config package public API.

File: src/skill_matrix/config/__init__.py
Last updated: 2026-10-19

Purpose
- Export config loading/validation entrypoints, public error types and engine settings.

What should be included in this file
- Public schema constants and validation/report types.
- Loader APIs for effective runtime config and deterministic dumps.

Functional requirements
- Support loading from ``skill_matrix.toml`` + ``SKILL_MATRIX_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from skill_matrix.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    load_config,
)
from skill_matrix.config.schema import (
    BUILTIN_PROFILE_NAMES,
    DEFAULT_CONFIG,
    ConfigSchemaVersion,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    ProfileOverlay,
    SkillMatrixConfig,
    apply_profile_overlay,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    validate_config,
)
from skill_matrix.config.settings import EngineSettings

__all__ = [
    "BUILTIN_PROFILE_NAMES",
    "ConfigLoadError",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "EngineSettings",
    "ProfileOverlay",
    "SkillMatrixConfig",
    "apply_profile_overlay",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "load_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
