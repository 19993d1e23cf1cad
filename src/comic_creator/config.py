"""
Configuration helpers for YAML-backed run settings.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .utils import UserError, ensure_file_exists, validate_positive_int, validate_positive_number


# A3 sheet in centimetres; trim equal to page means no bleed is removed.
DEFAULT_SETTINGS: dict[str, Any] = {
    "page_size": {"width": 29.70, "height": 42.00},
    "trim_size": {"width": 29.70, "height": 42.00},
    "online": True,
    "print": False,
    "workers": None,
    "dry_run": False,
    "manifest": None,
}

SETTINGS_KEYS = set(DEFAULT_SETTINGS.keys())
SIZE_KEYS = {"width", "height"}
CONFIG_SECTION = "comic_creator"


@dataclass(frozen=True)
class PageSize:
    width: float
    height: float


@dataclass(frozen=True)
class PageGeometry:
    """Physical sheet size and the trimmed area inside it."""

    page_size: PageSize
    trim_size: PageSize

    def validate(self) -> "PageGeometry":
        """Fail fast when the trim area does not fit on the page."""

        for label, size in (("page_size", self.page_size), ("trim_size", self.trim_size)):
            validate_positive_number(size.width, f"{label}.width")
            validate_positive_number(size.height, f"{label}.height")
        if self.trim_size.width > self.page_size.width:
            raise UserError("trim_size.width must be <= page_size.width.")
        if self.trim_size.height > self.page_size.height:
            raise UserError("trim_size.height must be <= page_size.height.")
        return self


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file into a dictionary."""

    ensure_file_exists(path, "Config file")
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise UserError(f"Failed to parse YAML config {path}: {exc}") from exc
    except OSError as exc:
        raise UserError(f"Failed to read config {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise UserError(f"Config {path} must contain a YAML mapping/object at top level.")
    return loaded


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge dictionaries where overlay values win.
    """

    merged = deepcopy(base)
    for key, value in overlay.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(value, dict)
        ):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def validate_keys(cfg: dict[str, Any], allowed: set[str], ctx: str) -> None:
    """
    Validate dictionary keys and fail fast on unknown entries.
    """

    unknown = sorted(str(key) for key in cfg.keys() if key not in allowed)
    if unknown:
        allowed_list = ", ".join(sorted(allowed))
        unknown_list = ", ".join(unknown)
        raise UserError(
            f"Unknown keys in {ctx}: {unknown_list}. Allowed keys: {allowed_list}."
        )


def extract_settings_section(loaded: dict[str, Any]) -> dict[str, Any]:
    """Support either root config keys or a comic_creator wrapper."""

    if CONFIG_SECTION in loaded:
        section = loaded[CONFIG_SECTION]
        if not isinstance(section, dict):
            raise UserError(f"config.{CONFIG_SECTION} must be a mapping/object.")
        ctx = f"config.{CONFIG_SECTION}"
    else:
        section = loaded
        ctx = "config"

    validate_keys(section, SETTINGS_KEYS, ctx)
    for key in ("page_size", "trim_size"):
        if key in section:
            if not isinstance(section[key], dict):
                raise UserError(f"{ctx}.{key} must be a mapping with width and height.")
            validate_keys(section[key], SIZE_KEYS, f"{ctx}.{key}")
    return section


def _size_from_settings(settings: dict[str, Any], key: str) -> PageSize:
    raw = settings[key]
    return PageSize(
        width=validate_positive_number(raw.get("width"), f"{key}.width"),
        height=validate_positive_number(raw.get("height"), f"{key}.height"),
    )


def geometry_from_settings(settings: dict[str, Any]) -> PageGeometry:
    """Build validated page geometry from merged settings."""

    return PageGeometry(
        page_size=_size_from_settings(settings, "page_size"),
        trim_size=_size_from_settings(settings, "trim_size"),
    ).validate()


def workers_from_settings(settings: dict[str, Any]) -> int | None:
    """None lets the thread pool pick its default size."""

    value = settings.get("workers")
    if value is None:
        return None
    return validate_positive_int(value, "workers")


def dump_default_settings_yaml() -> str:
    """Serialize wrapped defaults as YAML."""

    return yaml.safe_dump({CONFIG_SECTION: DEFAULT_SETTINGS}, sort_keys=False).rstrip()
