"""
skill-matrix — runtime config loader.

File: src/skill_matrix/config/loader.py
Last updated: 2026-10-19

Purpose
- Load effective runtime config from defaults, TOML file, env vars, and CLI overrides.

What should be included in this file
- Precedence logic: CLI > env (SKILL_MATRIX_) > file > defaults.
- TOML loading via ``tomllib``.
- The fixed table of environment variables and how each one is coerced.

Functional requirements
- Reject invalid config via schema validation.
- Support profile overlays selected by CLI/env.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Final

from skill_matrix.config.schema import (
    apply_profile_overlay,
    assert_valid_config,
    default_config,
    merge_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "skill_matrix.toml"
ENV_PREFIX: Final[str] = "SKILL_MATRIX_"
PROFILE_ENV: Final[str] = f"{ENV_PREFIX}PROFILE"


class ConfigLoadError(ValueError):
    """Raised when config cannot be loaded or overrides cannot be coerced."""


def _as_text(raw: str) -> str:
    return raw.strip()


def _as_number(raw: str) -> float:
    return float(raw.strip())


def _as_labels(raw: str) -> list[str]:
    """Comma-separated category labels, blanks dropped."""
    return [part.strip() for part in raw.split(",") if part.strip()]


# env name -> (config path, coercer). ``meta`` and ``profiles`` are file-only.
_ENV_BINDINGS: Final[dict[str, tuple[tuple[str, str], Callable[[str], object]]]] = {
    f"{ENV_PREFIX}SIMILARITY_THRESHOLD": (("similarity", "threshold"), _as_number),
    f"{ENV_PREFIX}SIMILARITY_NORMALIZED_MATCH_SCORE": (
        ("similarity", "normalized_match_score"),
        _as_number,
    ),
    f"{ENV_PREFIX}ORDERING_CATEGORY_PRIORITY": (("ordering", "category_priority"), _as_labels),
    f"{ENV_PREFIX}IDENTITY_PLACEHOLDER_PREFIX": (("identity", "placeholder_prefix"), _as_text),
    f"{ENV_PREFIX}OBSERVABILITY_LOG_LEVEL": (("observability", "log_level"), _as_text),
    f"{ENV_PREFIX}OBSERVABILITY_LOG_FORMAT": (("observability", "log_format"), _as_text),
}


def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load effective config with deterministic precedence: CLI > env > file > defaults."""

    env_map = os.environ if environ is None else environ
    cli_map = dict(cli_overrides or {})
    cli_profile = cli_map.pop("profile", None)
    if cli_profile is not None and not isinstance(cli_profile, str):
        raise ConfigLoadError("cli override 'profile' must be a string")

    path = _resolve_config_path(config_path)
    merged = assert_valid_config(
        merge_config(default_config(), _load_toml_file(path, required=config_path is not None))
    )

    selected = _pick_profile(profile, cli_profile, env_map.get(PROFILE_ENV))
    if selected is not None:
        merged = apply_profile_overlay(merged, selected)

    merged = merge_config(merged, _env_overrides(env_map))
    merged = merge_config(merged, _dotted_overrides(cli_map))
    return assert_valid_config(merged)


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Return deterministic JSON dump of effective config."""

    return json.dumps(config, sort_keys=True, indent=2, ensure_ascii=False)


def _resolve_config_path(config_path: str | Path | None) -> Path:
    if config_path is None:
        return (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    return Path(config_path).expanduser().resolve()


def _load_toml_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}

    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _pick_profile(*candidates: str | None) -> str | None:
    # An explicitly blank profile still wins and means "no profile".
    for candidate in candidates:
        if candidate is not None:
            return candidate.strip() or None
    return None


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for env_name, (path, coerce) in _ENV_BINDINGS.items():
        raw = environ.get(env_name)
        if raw is None:
            continue
        try:
            value = coerce(raw)
        except ValueError as exc:
            raise ConfigLoadError(f"{env_name} -> {'.'.join(path)} must be a number") from exc
        _set_nested(overrides, path, value)
    return overrides


def _dotted_overrides(cli_overrides: Mapping[str, object]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for key, value in cli_overrides.items():
        path = tuple(part for part in key.split(".") if part)
        if not path:
            raise ConfigLoadError(f"invalid CLI override key {key!r}")
        _set_nested(payload, path, value)
    return payload


def _set_nested(target: dict[str, Any], path: tuple[str, ...], value: object) -> None:
    cursor = target
    for part in path[:-1]:
        cursor = cursor.setdefault(part, {})
    cursor[path[-1]] = value


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "PROFILE_ENV",
    "dump_effective_config",
    "load_config",
]
