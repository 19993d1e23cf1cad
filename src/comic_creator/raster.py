"""
Decoded page images and the Pillow-backed load/save adapters.

A PageImage is an immutable raw pixel buffer. Transforms never touch the
codec; they only go through PageImage.to_pil()/from_pil().
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from .manifest import ManifestRecorder


MODES_BY_CHANNELS = {1: "L", 2: "LA", 3: "RGB", 4: "RGBA"}
CHANNELS_BY_MODE = {mode: channels for channels, mode in MODES_BY_CHANNELS.items()}

# Loader output is always forced to RGBA.
LOAD_MODE = "RGBA"
SAVE_FORMAT = "PNG"


@dataclass(frozen=True)
class PageImage:
    """Row-major, channel-interleaved pixels plus their dimensions."""

    name: str
    width: int
    height: int
    channels: int
    pixels: bytes

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image size must be positive, got {self.width}x{self.height}.")
        if self.channels not in MODES_BY_CHANNELS:
            raise ValueError(f"Unsupported channel count: {self.channels}")
        expected = self.width * self.height * self.channels
        if len(self.pixels) != expected:
            raise ValueError(
                f"Pixel buffer holds {len(self.pixels)} bytes, expected {expected}."
            )

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def mode(self) -> str:
        return MODES_BY_CHANNELS[self.channels]

    @classmethod
    def from_pil(cls, name: str, image: Image.Image) -> "PageImage":
        if image.mode not in CHANNELS_BY_MODE:
            image = image.convert(LOAD_MODE)
        width, height = image.size
        return cls(
            name=name,
            width=width,
            height=height,
            channels=CHANNELS_BY_MODE[image.mode],
            pixels=image.tobytes(),
        )

    def to_pil(self) -> Image.Image:
        return Image.frombytes(self.mode, self.size, self.pixels)


@dataclass(frozen=True)
class LoadResult:
    """
    Outcome of decoding one page file.

    Callers must check `ok` before touching `image`.
    """

    path: Path
    image: Optional[PageImage] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.image is not None


def load_image(path: Path, recorder: ManifestRecorder) -> LoadResult:
    """Decode a file into a 4-channel PageImage at its native size."""

    if not path.exists():
        message = f"{path} does not exist"
        recorder.log(message, level="error")
        return LoadResult(path=path, error=message)

    try:
        with Image.open(path) as opened:
            # Convert inside the context so the file can close cleanly.
            rgba = opened.convert(LOAD_MODE)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        message = f"Failed to load image {path}: {exc}"
        recorder.log(message, level="error")
        return LoadResult(path=path, error=message)

    image = PageImage.from_pil(path.name, rgba)
    recorder.log(f"Loaded {path}", level="debug")
    return LoadResult(path=path, image=image)


def save_image(image: PageImage, path: Path, recorder: ManifestRecorder) -> Path:
    """
    Encode a PageImage as PNG, overwriting any existing file.

    The output suffix does not pick the format; pages are always PNG.
    """

    image.to_pil().save(path, format=SAVE_FORMAT)
    recorder.log(f"Saved {path}", level="debug")
    return path
