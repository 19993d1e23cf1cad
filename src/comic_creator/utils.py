"""
Shared utility helpers.

This module keeps the "sharp edges" (validation and filesystem setup) in one
place so the rest of the code can stay focused on page images.
"""

from __future__ import annotations

from pathlib import Path
import shutil


class UserError(Exception):
    """Raised for user-facing problems that should show a clear message."""


class MissingInputError(UserError):
    """The pages directory is missing or holds no pages."""


class LayoutError(UserError):
    """The page count cannot be imposed into a booklet."""


def normalize_path(value: str) -> Path:
    """
    Convert user input to a Path.

    We do not resolve() here because we want to preserve relative paths in
    manifests and error messages.
    """

    return Path(value).expanduser()


def ensure_file_exists(path: Path, label: str) -> Path:
    """Validate that a path exists and is a file."""

    if not path.exists():
        raise UserError(f"{label} not found: {path}")
    if not path.is_file():
        raise UserError(f"{label} is not a file: {path}")
    return path


def ensure_dir(path: Path, dry_run: bool) -> None:
    """Create a directory if needed, unless this is a dry-run."""

    if dry_run:
        return
    path.mkdir(parents=True, exist_ok=True)


def ensure_dir_path(path: Path, label: str) -> None:
    """Ensure a path is either a directory or does not exist yet."""

    if path.exists() and not path.is_dir():
        raise UserError(f"{label} is not a directory: {path}")


def recreate_dir(path: Path, label: str = "Output directory") -> Path:
    """
    Delete a directory tree if present and create it again, empty.

    Prior output is always discarded, so a second run never sees stale files.
    """

    ensure_dir_path(path, label)
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)
    return path


def validate_positive_int(value: int, label: str) -> int:
    """Common validation for options like --workers."""

    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise UserError(f"{label} must be a positive integer.")
    return value


def validate_positive_number(value: object, label: str) -> float:
    """Validate a strictly positive int/float coming from YAML or argv."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise UserError(f"{label} must be a number.")
    if value <= 0:
        raise UserError(f"{label} must be > 0.")
    return float(value)
