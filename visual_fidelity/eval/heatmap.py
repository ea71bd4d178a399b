"""Colour-coded drift heatmaps and their overlay onto the candidate image."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np
from PIL import Image

from ..raster import RasterImage, from_pil, resample, to_pil
from ..utils import round_half_up
from .drift import DiffMap

logger = logging.getLogger(__name__)

NO_CHANGE_CUTOFF = 5
SEGMENT_LOW = 0.33
SEGMENT_HIGH = 0.66


def intensity_to_color(value: int) -> Tuple[int, int, int, int]:
    """Map a diff-map byte to RGBA on a blue -> cyan -> yellow -> red ramp.

    Values under the cutoff are fully transparent. Alpha grows with the
    value so stronger change is drawn more opaquely.
    """
    if value < NO_CHANGE_CUTOFF:
        return 0, 0, 0, 0

    t = value / 255
    if t < SEGMENT_LOW:
        s = t / SEGMENT_LOW
        r, g, b = 0, round_half_up(s * 255), 255
    elif t < SEGMENT_HIGH:
        s = (t - SEGMENT_LOW) / (SEGMENT_HIGH - SEGMENT_LOW)
        r, g, b = round_half_up(s * 255), 255, round_half_up((1 - s) * 255)
    else:
        s = (t - SEGMENT_HIGH) / (1 - SEGMENT_HIGH)
        r, g, b = 255, round_half_up((1 - s) * 255), 0

    a = min(255, round_half_up(128 + value * 0.5))
    return r, g, b, a


def _build_palette() -> np.ndarray:
    return np.array([intensity_to_color(v) for v in range(256)], dtype=np.uint8)


HEAT_PALETTE = _build_palette()


@dataclass(frozen=True)
class HeatmapResult:
    heatmap: RasterImage
    overlay: RasterImage


def render_heatmap(diff_map: DiffMap) -> RasterImage:
    """Colourise every diff-map byte through the heat palette."""
    return RasterImage(HEAT_PALETTE[diff_map.values])


def render_overlay(heatmap: RasterImage, candidate: RasterImage) -> RasterImage:
    """Composite the heatmap over the candidate with its own per-pixel alpha."""
    candidate = resample(candidate, heatmap.width, heatmap.height)
    overlay = Image.alpha_composite(to_pil(candidate), to_pil(heatmap))
    return from_pil(overlay)


def generate_heatmap(diff_map: DiffMap, candidate: RasterImage) -> HeatmapResult:
    heatmap = render_heatmap(diff_map)
    overlay = render_overlay(heatmap, candidate)
    logger.info("Generated heatmap (%dx%d)", heatmap.width, heatmap.height)
    return HeatmapResult(heatmap=heatmap, overlay=overlay)


__all__ = [
    "NO_CHANGE_CUTOFF",
    "HEAT_PALETTE",
    "HeatmapResult",
    "intensity_to_color",
    "render_heatmap",
    "render_overlay",
    "generate_heatmap",
]
