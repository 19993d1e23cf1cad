"""
Page discovery.
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from .utils import MissingInputError


PAGES_DIR_NAME = "pages"


def discover_pages(pages_dir: Path) -> List[Path]:
    """
    Return every regular file directly inside pages_dir, sorted by path.

    No extension filter is applied; files that fail to decode are reported
    later by the loader.
    """

    if not pages_dir.exists():
        raise MissingInputError(f"Pages directory not found: {pages_dir}")
    if not pages_dir.is_dir():
        raise MissingInputError(f"Pages path is not a directory: {pages_dir}")

    return sorted(path for path in pages_dir.iterdir() if not path.is_dir())
