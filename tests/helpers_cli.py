"""
Shared helpers for comic-creator tests: in-process CLI runs, scratch
folders, and synthetic page images.
"""

from __future__ import annotations

import importlib
import io
import shutil
import sys
from contextlib import contextmanager, redirect_stderr, redirect_stdout
from pathlib import Path
from typing import Iterator
from uuid import uuid4

from PIL import Image


SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


def _normalize_exit_code(value: object) -> int:
    """Normalize return values/SystemExit payloads into process-style int codes."""

    if value is None:
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        return 1


def run_comic_creator_cli(argv: list[str]) -> tuple[int, str, str]:
    """
    Run comic-creator CLI in-process with isolated argv and captured stdio.

    Returns: (exit_code, stdout_text, stderr_text)
    """

    original_argv = list(sys.argv)
    stdout_stream = io.StringIO()
    stderr_stream = io.StringIO()
    exit_code = 0

    try:
        sys.argv = ["comic-creator", *argv]
        with redirect_stdout(stdout_stream), redirect_stderr(stderr_stream):
            cli_mod = importlib.import_module("comic_creator.cli")
            try:
                result = cli_mod.main(argv)
            except SystemExit as exc:
                exit_code = _normalize_exit_code(exc.code)
            else:
                exit_code = _normalize_exit_code(result)
    finally:
        sys.argv = original_argv

    return exit_code, stdout_stream.getvalue(), stderr_stream.getvalue()


@contextmanager
def capture_output() -> Iterator[tuple[io.StringIO, io.StringIO]]:
    """Capture stdout/stderr for test assertions without leaking console noise."""

    stdout_stream = io.StringIO()
    stderr_stream = io.StringIO()
    with redirect_stdout(stdout_stream), redirect_stderr(stderr_stream):
        yield stdout_stream, stderr_stream


@contextmanager
def workspace_temp_dir(prefix: str = "test") -> Iterator[Path]:
    root = Path(__file__).resolve().parents[1] / ".tmp_tests"
    root.mkdir(parents=True, exist_ok=True)
    tmp = root / f"{prefix}_{uuid4().hex}"
    tmp.mkdir(parents=True, exist_ok=False)
    try:
        yield tmp
    finally:
        shutil.rmtree(tmp, ignore_errors=True)


def write_page(
    path: Path,
    size: tuple[int, int] = (40, 60),
    color: tuple[int, int, int, int] = (200, 30, 30, 255),
) -> Path:
    """Write a solid RGBA PNG page."""

    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGBA", size, color).save(path, format="PNG")
    return path


def page_color(index: int) -> tuple[int, int, int, int]:
    """Distinct opaque colour per page index so spreads can be checked by pixel."""

    return (10 * index + 5, 255 - 10 * index, 40 + index, 255)


def make_recorder(verbosity: str = "verbose", dry_run: bool = False):
    """Recorder writing to a private buffer; read it back via console_stream."""

    from comic_creator.manifest import ManifestRecorder

    return ManifestRecorder(
        tool_name="comic-creator",
        tool_version="0.0.0",
        command="comic-creator",
        options={},
        inputs={},
        outputs={},
        dry_run=dry_run,
        verbosity=verbosity,
        console_stream=io.StringIO(),
    )
