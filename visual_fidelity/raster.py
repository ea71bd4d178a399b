"""Canonical RGBA pixel buffers and the conversions into and out of them.

Every other stage works on :class:`RasterImage` values: row-major
``height x width x 4`` uint8 arrays that are read-only once built. Decoding,
encoding and resampling go through Pillow; resampling a mask always uses the
nearest-neighbour kernel so no partial alpha appears at region edges.
"""
from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, DimensionMismatchError

logger = logging.getLogger(__name__)

QUALITY = "lanczos"
NEAREST = "nearest"

_KERNELS = {
    "nearest": Image.Resampling.NEAREST,
    "bilinear": Image.Resampling.BILINEAR,
    "bicubic": Image.Resampling.BICUBIC,
    "lanczos": Image.Resampling.LANCZOS,
}

_WIDE_GRAY_MODES = ("I", "F")


@dataclass(frozen=True, eq=False)
class RasterImage:
    """Owned RGBA buffer, 4 bytes per pixel, no row padding."""

    pixels: np.ndarray

    def __post_init__(self) -> None:
        pixels = self.pixels
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"RGBA pixels must have shape (h, w, 4), got {pixels.shape}")
        if pixels.dtype != np.uint8:
            raise ValueError(f"RGBA pixels must be uint8, got {pixels.dtype}")
        pixels = np.array(pixels, dtype=np.uint8, order="C", copy=True)
        pixels.setflags(write=False)
        object.__setattr__(self, "pixels", pixels)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[:, :, 3]

    def tobytes(self) -> bytes:
        return self.pixels.tobytes()

    @classmethod
    def new(cls, width: int, height: int, color: Sequence[int] = (0, 0, 0, 0)) -> "RasterImage":
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = np.asarray(color, dtype=np.uint8)
        return cls(pixels)

    @classmethod
    def frombytes(cls, data: bytes, width: int, height: int) -> "RasterImage":
        expected = width * height * 4
        if len(data) != expected:
            raise ValueError(f"Expected {expected} bytes for {width}x{height} RGBA, got {len(data)}")
        return cls(np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4).copy())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RasterImage):
            return NotImplemented
        return self.size == other.size and bool(np.array_equal(self.pixels, other.pixels))

    __hash__ = None  # type: ignore[assignment]


def _to_8bit_gray(image: Image.Image) -> Image.Image:
    # 16-bit samples are scaled to 8 bits; convert("RGBA") would clip them.
    values = np.clip(np.asarray(image, dtype=np.float64), 0, 65535).astype(np.uint32) >> 8
    return Image.fromarray(values.astype(np.uint8))


def from_pil(image: Image.Image) -> RasterImage:
    """Convert any Pillow image to a canonical RGBA raster."""
    if image.mode in _WIDE_GRAY_MODES or image.mode.startswith("I;16"):
        image = _to_8bit_gray(image)
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    return RasterImage(np.array(image, dtype=np.uint8))


def to_pil(image: RasterImage) -> Image.Image:
    return Image.fromarray(np.array(image.pixels))


def decode(data: bytes) -> RasterImage:
    """Decode PNG/JPEG/WebP/... bytes into RGBA."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return from_pil(img)
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Unable to decode image ({len(data)} bytes): {exc}") from exc


def encode(image: RasterImage) -> bytes:
    """Encode losslessly as PNG."""
    buffer = io.BytesIO()
    to_pil(image).save(buffer, format="PNG")
    return buffer.getvalue()


def load_image(path: str) -> RasterImage:
    with open(path, "rb") as f:
        data = f.read()
    try:
        return decode(data)
    except DecodeError as exc:
        raise DecodeError(f"{path}: {exc}") from exc.__cause__


def save_image(image: RasterImage, path: str) -> str:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "wb") as f:
        f.write(encode(image))
    return path


def resample(image: RasterImage, width: int, height: int, kernel: str = QUALITY) -> RasterImage:
    """Resize to exactly ``width x height`` (aspect ratio is not kept)."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Target size must be positive, got {width}x{height}")
    try:
        resample_filter = _KERNELS[kernel]
    except KeyError:
        raise ValueError(f"Unsupported resampling kernel: {kernel}") from None

    if image.size == (width, height):
        return image

    logger.info(
        "Resampling %dx%d -> %dx%d (%s)", image.width, image.height, width, height, kernel
    )
    resized = to_pil(image).resize((width, height), resample=resample_filter)
    return from_pil(resized)


def resample_mask(mask: RasterImage, width: int, height: int) -> RasterImage:
    return resample(mask, width, height, kernel=NEAREST)


def fit_within(image: RasterImage, max_width: int, max_height: int) -> RasterImage:
    """Downscale preserving the aspect ratio so the image fits the bounds."""
    if image.width <= max_width and image.height <= max_height:
        return image

    aspect = image.width / image.height
    new_width = max_width
    new_height = max(1, int(round(max_width / aspect)))
    if new_height > max_height:
        new_height = max_height
        new_width = max(1, int(round(max_height * aspect)))
    return resample(image, new_width, new_height)


def ensure_same_size(reference: RasterImage, *others: RasterImage) -> None:
    """Fail fast when any image differs in size from ``reference``."""
    for other in others:
        if other.size != reference.size:
            raise DimensionMismatchError(reference.size, other.size)


def align_to(
    base: RasterImage,
    candidate: RasterImage,
    mask: RasterImage,
) -> Tuple[RasterImage, RasterImage]:
    """Resample candidate (quality) and mask (nearest) to the base size."""
    width, height = base.size
    return resample(candidate, width, height), resample_mask(mask, width, height)


__all__ = [
    "QUALITY",
    "NEAREST",
    "RasterImage",
    "from_pil",
    "to_pil",
    "decode",
    "encode",
    "load_image",
    "save_image",
    "resample",
    "resample_mask",
    "fit_within",
    "ensure_same_size",
    "align_to",
]
