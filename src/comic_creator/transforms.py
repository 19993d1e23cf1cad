"""
Pure page transforms: trim crop, online resize, and two-up print spreads.

Every function returns a new PageImage and leaves its input untouched.
"""

from __future__ import annotations

import math
from typing import List, Sequence, Tuple, TypeVar

from PIL import Image

from .config import PageGeometry
from .raster import PageImage
from .utils import LayoutError


ONLINE_WIDTH = 1024
PAGES_PER_SHEET = 4
ALPHA_MODES = {"LA", "RGBA"}
WHITE = 255

T = TypeVar("T")


def _scaled_length(length: int, trim: float, page: float) -> int:
    if trim == page:
        return length
    return math.floor(length * trim / page)


def trim_box(width: int, height: int, geometry: PageGeometry) -> Tuple[int, int, int, int]:
    """Return the centered (left, top, right, bottom) trim rectangle in pixels."""

    trim_width = _scaled_length(width, geometry.trim_size.width, geometry.page_size.width)
    trim_height = _scaled_length(height, geometry.trim_size.height, geometry.page_size.height)
    start_x = (width - trim_width) // 2
    start_y = (height - trim_height) // 2
    return start_x, start_y, start_x + trim_width, start_y + trim_height


def crop_to_trim(image: PageImage, geometry: PageGeometry) -> PageImage:
    """
    Cut away the bleed margin, keeping the centered trim area.

    This is a direct pixel copy; no resampling happens.
    """

    box = trim_box(image.width, image.height, geometry)
    if box[2] - box[0] <= 0 or box[3] - box[1] <= 0:
        raise ValueError(
            f"Trim area of {image.name} is empty "
            f"({image.width}x{image.height} page, box {box})."
        )
    return PageImage.from_pil(image.name, image.to_pil().crop(box))


def online_height(width: int, height: int, target_width: int = ONLINE_WIDTH) -> int:
    """Height that keeps the aspect ratio at target_width (truncated)."""

    return max(1, target_width * height // width)


def resize_to_width(image: PageImage, target_width: int = ONLINE_WIDTH) -> PageImage:
    """
    Resample a page to a fixed width, preserving aspect ratio.

    Narrow sources are upscaled; callers decide whether to warn about it.
    """

    size = (target_width, online_height(image.width, image.height, target_width))
    resized = image.to_pil().resize(size, Image.Resampling.LANCZOS)
    return PageImage.from_pil(image.name, resized)


def spread_pairs(pages: Sequence[T]) -> List[Tuple[T, T]]:
    """
    Pair pages for saddle-stitch imposition.

    Spread i puts the physically last unpaired page on the left and page i
    on the right: (P-1, 0), (P-2, 1), ...
    """

    count = len(pages)
    if count % PAGES_PER_SHEET != 0:
        raise LayoutError(
            f"Cannot create printing layout. Incorrect number of pages: {count} "
            f"(must be a multiple of {PAGES_PER_SHEET})."
        )
    return [(pages[count - 1 - index], pages[index]) for index in range(count // 2)]


def spread_name(index: int) -> str:
    return f"page_{index}.png"


def composite_spread(left: PageImage, right: PageImage, name: str) -> PageImage:
    """
    Place two equally sized pages side by side on a white canvas.

    Only colour channels are copied. The canvas alpha stays fully opaque.
    """

    if left.size != right.size or left.channels != right.channels:
        raise ValueError(
            f"Spread pages differ: {left.name} is {left.width}x{left.height}x{left.channels}, "
            f"{right.name} is {right.width}x{right.height}x{right.channels}."
        )

    mode = left.mode
    fill = WHITE if left.channels == 1 else (WHITE,) * left.channels
    canvas = Image.new(mode, (2 * left.width, left.height), fill)
    bands = list(canvas.split())
    colour_bands = left.channels - 1 if mode in ALPHA_MODES else left.channels

    for offset_x, page in ((0, left), (left.width, right)):
        page_bands = page.to_pil().split()
        for index in range(colour_bands):
            bands[index].paste(page_bands[index], (offset_x, 0))

    return PageImage.from_pil(name, Image.merge(mode, bands))
