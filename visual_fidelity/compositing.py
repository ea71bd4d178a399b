"""Pixel-perfect compositing of a generated candidate back onto its base."""
from __future__ import annotations

import logging

import numpy as np

from .eval.drift import preserve_region
from .raster import RasterImage, align_to, ensure_same_size

logger = logging.getLogger(__name__)


def select_pixels(base: RasterImage, candidate: RasterImage, mask: RasterImage) -> RasterImage:
    """Take base pixels where the mask preserves, candidate pixels elsewhere.

    All three buffers must already share one size.
    """
    ensure_same_size(base, candidate, mask)
    keep = preserve_region(mask)[:, :, np.newaxis]
    return RasterImage(np.where(keep, base.pixels, candidate.pixels))


def composite(base: RasterImage, candidate: RasterImage, mask: RasterImage) -> RasterImage:
    """Resample candidate and mask to the base size, then select per pixel.

    The result is byte-identical to ``base`` wherever the mask preserves.
    """
    candidate, mask = align_to(base, candidate, mask)
    result = select_pixels(base, candidate, mask)
    logger.info("Applied pixel-perfect composite (%dx%d)", result.width, result.height)
    return result


__all__ = ["select_pixels", "composite"]
