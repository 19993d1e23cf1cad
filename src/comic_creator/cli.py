"""
Command-line interface for comic-creator.

This file focuses on parsing arguments and dispatching to the pipelines.
Keeping this separate makes the code easier to read and test.
"""

from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path
from typing import Any, Dict

from . import __version__
from .config import (
    DEFAULT_SETTINGS,
    deep_merge,
    dump_default_settings_yaml,
    extract_settings_section,
    geometry_from_settings,
    load_yaml,
    workers_from_settings,
)
from .manifest import ManifestRecorder
from .pipeline import run
from .utils import UserError, normalize_path


TOOL_NAME = "comic-creator"

EXAMPLES = """Examples:
  comic-creator
  comic-creator --root "book1" --print
  comic-creator --print --no-online --page-size 29.7 42 --trim-size 28.7 41
  comic-creator --config "configs\\comic.yaml" --manifest "out\\manifest.json" --verbose
  comic-creator --dump-default-config
"""


def _require_bool(value: Any, key: str) -> bool:
    """Require a strict boolean value from config/CLI merge output."""

    if isinstance(value, bool):
        return value
    raise UserError(f"{key} must be true or false.")


def _size_override(values: list[float]) -> Dict[str, float]:
    width, height = values
    return {"width": width, "height": height}


def _build_effective_settings(
    args: argparse.Namespace,
) -> tuple[Dict[str, Any], Path | None]:
    """Resolve defaults < YAML config < explicit CLI flags."""

    effective = deep_merge(DEFAULT_SETTINGS, {})
    config_path: Path | None = None
    if hasattr(args, "config"):
        config_path = normalize_path(args.config)
        loaded = load_yaml(config_path)
        effective = deep_merge(effective, extract_settings_section(loaded))

    raw_args = vars(args)
    cli_overrides: Dict[str, Any] = {}
    for key in DEFAULT_SETTINGS:
        if key in raw_args:
            cli_overrides[key] = raw_args[key]
    for key in ("page_size", "trim_size"):
        if key in cli_overrides:
            cli_overrides[key] = _size_override(cli_overrides[key])

    effective = deep_merge(effective, cli_overrides)
    return effective, config_path


def _verbosity_from_args(args: argparse.Namespace) -> str:
    """Resolve global verbosity mode from top-level flags."""

    if getattr(args, "quiet", False):
        return "quiet"
    if getattr(args, "verbose", False):
        return "verbose"
    return "normal"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=TOOL_NAME,
        description=(
            "Turn the page images in <root>/pages into resized online copies "
            "and two-up print spreads."
        ),
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=__version__)
    verbosity_group = parser.add_mutually_exclusive_group()
    verbosity_group.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress non-error console logs.",
    )
    verbosity_group.add_argument(
        "--verbose",
        action="store_true",
        help="Show debug and trace console logs.",
    )
    parser.add_argument(
        "--root",
        default=".",
        help="Folder holding the pages folder; online and print are recreated here (default: .).",
    )
    parser.add_argument(
        "--config",
        default=argparse.SUPPRESS,
        help="Optional YAML config with page geometry and run settings.",
    )
    parser.add_argument(
        "--dump-default-config",
        action="store_true",
        help="Print default YAML config and exit.",
    )
    parser.add_argument(
        "--print",
        dest="print",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Also build booklet spreads in the print folder (page count must be a multiple of 4).",
    )
    parser.add_argument(
        "--no-online",
        dest="online",
        action="store_false",
        default=argparse.SUPPRESS,
        help="Skip the resized online copies.",
    )
    parser.add_argument(
        "--page-size",
        dest="page_size",
        nargs=2,
        type=float,
        metavar=("WIDTH", "HEIGHT"),
        default=argparse.SUPPRESS,
        help="Physical sheet size (any unit, must match --trim-size).",
    )
    parser.add_argument(
        "--trim-size",
        dest="trim_size",
        nargs=2,
        type=float,
        metavar=("WIDTH", "HEIGHT"),
        default=argparse.SUPPRESS,
        help="Trimmed page size inside the sheet.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=argparse.SUPPRESS,
        help="Worker threads (default: chosen by the thread pool).",
    )
    parser.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Show actions without writing files.",
    )
    parser.add_argument(
        "--manifest",
        default=argparse.SUPPRESS,
        help="Write a JSON manifest of the run to this path.",
    )
    return parser


def _command_string(argv: list[str]) -> str:
    """Reconstruct a command string for the manifest."""

    # list2cmdline produces a Windows-friendly command representation.
    return subprocess.list2cmdline(argv)


def _command_argv_for_manifest(argv: list[str] | None) -> list[str]:
    """Choose argv used to record manifest command faithfully."""

    if argv is None:
        return list(sys.argv)
    return [sys.argv[0], *argv]


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.dump_default_config:
        print(dump_default_settings_yaml())
        return 0

    try:
        settings, config_path = _build_effective_settings(args)
        geometry = geometry_from_settings(settings)
        workers = workers_from_settings(settings)
        online = _require_bool(settings["online"], "config.online")
        print_layout = _require_bool(settings["print"], "config.print")
        dry_run = _require_bool(settings["dry_run"], "config.dry_run")
        if not online and not print_layout:
            raise UserError("Nothing to do: online output is disabled and --print is not set.")

        root = normalize_path(args.root)
        manifest_value = settings.get("manifest")
        manifest_path = normalize_path(str(manifest_value)) if manifest_value else None

        options = deep_merge(settings, {})
        options["version"] = __version__
        options["verbosity"] = _verbosity_from_args(args)
        options["root"] = str(root)
        if config_path is not None:
            options["config_path"] = str(config_path)

        recorder = ManifestRecorder(
            tool_name=TOOL_NAME,
            tool_version=__version__,
            command=_command_string(_command_argv_for_manifest(argv)),
            options=options,
            inputs={"root": str(root)},
            outputs={"manifest": str(manifest_path) if manifest_path else None},
            dry_run=dry_run,
            verbosity=options["verbosity"],
        )
        recorder.log(f"ComicCreator {__version__}")

        summary: Dict[str, Any] = {}
        error_message: str | None = None
        try:
            summary = run(
                root=root,
                geometry=geometry,
                recorder=recorder,
                online=online,
                print_layout=print_layout,
                workers=workers,
                dry_run=dry_run,
            )
        except Exception as exc:  # pragma: no cover - includes filesystem and codec errors
            if isinstance(exc, UserError):
                error_message = str(exc)
            else:
                error_message = f"Failed to create comic images in {root}: {exc}"
            recorder.log(error_message, level="error")
            if isinstance(exc, UserError):
                raise
            raise UserError(error_message) from exc
        finally:
            if manifest_path is not None:
                summary["status"] = "error" if error_message else "ok"
                if error_message is not None:
                    summary["error"] = error_message
                recorder.write_manifest(manifest_path, summary)
        return 0
    except UserError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
