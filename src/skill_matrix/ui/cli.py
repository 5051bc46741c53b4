"""Command-line interface router for skill-matrix."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
import yaml

from skill_matrix.config import (
    ConfigLoadError,
    ConfigValidationError,
    EngineSettings,
    load_config,
)
from skill_matrix.domain.models import (
    TAXONOMY_LEVELS,
    LeafRecord,
    PendingGroup,
    leaf_from_dict,
    pending_group_from_dict,
)
from skill_matrix.observability import configure_from_config, session_scope
from skill_matrix.ordering import build_tree, flatten, matrix_rows
from skill_matrix.review import changed_cells, diff, validate
from skill_matrix.ui.render import CLIRenderer, color_allowed, create_renderer

_PHASE_HEADERS = ("1", "2", "3", "4", "5")


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="skill-matrix",
        description=(
            "skill-matrix — skill taxonomy reconciliation engine.\n\n"
            "Common workflows:\n"
            "  skill-matrix check --baseline stored.yaml --edited edited.yaml\n"
            "  skill-matrix order records.yaml\n"
            "  skill-matrix config --profile strict\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to skill_matrix.toml (default: ./skill_matrix.toml if present).",
    )
    common.add_argument(
        "--profile",
        default=None,
        help="Optional config profile overlay name (strict, lenient, ...).",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Show detailed output and debug logs.",
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # check ---------------------------------------------------------------
    check_parser = subparsers.add_parser(
        "check",
        parents=[common],
        help="Validate an edited record set and report taxonomy changes",
        description=(
            "Run the validator on the edited records, then diff them against the\n"
            "baseline and list new labels that look like existing ones.\n"
            "Exit code 1 means validation failed and the set must not be saved.\n\n"
            "Examples:\n"
            "  skill-matrix check --baseline stored.yaml --edited edited.yaml\n"
            "  skill-matrix check --baseline a.json --edited b.json --json\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    check_parser.add_argument("--baseline", required=True, help="Stored records (YAML/JSON)")
    check_parser.add_argument("--edited", required=True, help="Edited records (YAML/JSON)")
    check_parser.add_argument(
        "--pending",
        default=None,
        help="Pending (not yet saved) groups (YAML/JSON)",
    )
    check_parser.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    check_parser.set_defaults(handler=_cmd_check)

    # order ---------------------------------------------------------------
    order_parser = subparsers.add_parser(
        "order",
        parents=[common],
        help="Show the natural group order and the matrix view",
        description=(
            "Build the group tree for a record file and print the group order\n"
            "with the display numbers a commit would assign.\n\n"
            "Examples:\n"
            "  skill-matrix order records.yaml\n"
            "  skill-matrix order records.json --json\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    order_parser.add_argument("records", help="Record file (YAML/JSON)")
    order_parser.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    order_parser.set_defaults(handler=_cmd_order)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show effective configuration",
        description=(
            "Display the effective config after merging defaults, file, env, and profile.\n\n"
            "Examples:\n"
            "  skill-matrix config\n"
            "  skill-matrix config --json\n"
            "  skill-matrix config --profile strict\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    config_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    config_parser.set_defaults(handler=_cmd_config)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    with session_scope(command=namespace.command):
        try:
            result = handler(namespace)
        except CLIError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_check(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    settings = EngineSettings.from_config(config)
    logger = structlog.get_logger(__name__)

    baseline, _ = _load_record_file(Path(args.baseline))
    edited, inline_pending = _load_record_file(Path(args.edited))
    pending = inline_pending
    if args.pending is not None:
        pending = (*pending, *_load_pending_file(Path(args.pending)))

    validation = validate(edited, pending)
    report = diff(
        baseline,
        edited,
        threshold=settings.similarity_threshold,
        normalized_match_score=settings.normalized_match_score,
        logger=logger,
    )
    cells = sorted(changed_cells(baseline, edited), key=lambda cell: (cell[0], str(cell[1])))
    logger.info("check_completed", errors=len(validation.errors), needs_review=report.needs_review)
    exit_code = 0 if validation.ok else 1

    if _flag(args, "json"):
        _emit_json(
            {
                "command": "check",
                "ok": validation.ok,
                "validation": validation.to_dict(),
                "report": report.to_dict(),
                "changed_cells": [{"groupKey": key, "phase": phase} for key, phase in cells],
            }
        )
        return exit_code

    renderer = _get_renderer(args)
    renderer.kv("Baseline records", len(baseline))
    renderer.kv("Edited records", len(edited))
    if validation.ok:
        renderer.ok("validation passed")
    else:
        renderer.fail(f"validation failed ({len(validation.errors)} errors)")
        renderer.items(list(validation.errors))
        renderer.section("Offending cells:")
        renderer.items(sorted(validation.error_keys))

    renderer.section("Changes:")
    renderer.kv("  added", len(report.added_records))
    renderer.kv("  removed", len(report.removed_records))
    renderer.kv("  changed", len(report.changed_records))
    for level in TAXONOMY_LEVELS:
        added = report.added(level)
        if added:
            renderer.kv(f"  new {level.report_key}", ", ".join(added))
    if report.has_similar_labels:
        renderer.section("Possible duplicates (please confirm):")
        for level in TAXONOMY_LEVELS:
            for pair in report.similar(level):
                renderer.warning(
                    f"{level.value}: {pair.new!r} resembles {pair.existing!r} ({pair.percent}%)"
                )
    if renderer.verbose and cells:
        renderer.section("Changed cells:")
        renderer.items([f"{key} phase {phase}" for key, phase in cells])
    return exit_code


def _cmd_order(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    settings = EngineSettings.from_config(config)

    records, pending = _load_record_file(Path(args.records))
    tree = build_tree(records, pending, category_priority=settings.category_priority)
    numbers = flatten(tree.nodes).display_order
    rows = matrix_rows(tree.nodes)

    if _flag(args, "json"):
        _emit_json(
            {
                "command": "order",
                "order": [
                    {"key": node.key, "displayOrder": numbers.get(node.group_key)}
                    for node in tree.nodes
                ],
                "rows": [row.to_dict() for row in rows],
            }
        )
        return 0

    renderer = _get_renderer(args)
    renderer.table(
        ("#", "Group"),
        [(str(numbers.get(node.group_key, "-")), node.key) for node in tree.nodes],
        title="Group order:",
    )
    renderer.table(
        ("Category", "Item", "Sub-category", *_PHASE_HEADERS),
        [
            (row.category or "", row.item or "", row.sub_category, *row.phases)
            for row in rows
        ],
        title="Matrix:",
    )
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    profile = _optional_str(getattr(args, "profile", None))

    payload: dict[str, object] = {
        "command": "config",
        "active_profile": profile,
        "config": config,
    }

    if _flag(args, "json"):
        _emit_json(payload)
        return 0

    renderer = _get_renderer(args)
    renderer.kv("Active profile", profile or "(default)")
    renderer.text(json.dumps(config, indent=2, sort_keys=True, ensure_ascii=False))
    return 0


# ---------------------------------------------------------------------------
# Helpers: config, input files, output
# ---------------------------------------------------------------------------


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=_flag(args, "no_color"), verbose=_flag(args, "verbose"))


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    config_path = _optional_str(getattr(args, "config_path", None))
    profile = _optional_str(getattr(args, "profile", None))

    try:
        config = load_config(config_path, profile=profile)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc

    configure_from_config(
        config.get("observability"),
        verbose=_flag(args, "verbose"),
        colors=color_allowed(_flag(args, "no_color")),
    )
    return config


def _load_record_file(path: Path) -> tuple[tuple[LeafRecord, ...], tuple[PendingGroup, ...]]:
    """
    Read a list of camelCase records, or a mapping with ``records`` and
    optional ``pendingGroups`` lists.
    """
    payload = _read_structured(path)
    raw_groups: object = None
    if isinstance(payload, Mapping):
        raw_records = payload.get("records", [])
        raw_groups = payload.get("pendingGroups", [])
    else:
        raw_records = payload
    records = tuple(_parse_entries(raw_records, path, "records", leaf_from_dict))
    groups = tuple(_parse_entries(raw_groups, path, "pendingGroups", pending_group_from_dict))
    return records, groups


def _load_pending_file(path: Path) -> tuple[PendingGroup, ...]:
    payload = _read_structured(path)
    if isinstance(payload, Mapping):
        payload = payload.get("pendingGroups", [])
    return tuple(_parse_entries(payload, path, "pendingGroups", pending_group_from_dict))


def _read_structured(path: Path) -> object:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"unable to read {path}: {exc}", exit_code=2) from exc
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise CLIError(f"invalid YAML/JSON in {path}: {exc}", exit_code=2) from exc


def _parse_entries(raw: object, path: Path, label: str, parse: Any) -> list[Any]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise CLIError(f"{path}: {label} must be a list", exit_code=2)
    parsed: list[Any] = []
    for index, entry in enumerate(raw, start=1):
        try:
            parsed.append(parse(entry))
        except ValueError as exc:
            raise CLIError(f"{path}: {label} entry {index}: {exc}", exit_code=2) from exc
    return parsed


def _optional_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = ["CLIError", "build_parser", "run_cli"]
