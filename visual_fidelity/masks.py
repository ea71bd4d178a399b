"""Edit-mask synthesis from detected text regions.

Detected boxes are denormalized, padded in proportion to their size and
rasterized as hard-edged transparent rectangles on an opaque black canvas:

- alpha = 0   -> pixel may be repainted (edit)
- alpha = 255 -> pixel must be preserved

Overlapping boxes can optionally be merged into their union first.
"""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from PIL import Image, ImageDraw

from .config import MaskSynthesisConfig
from .raster import RasterImage, from_pil
from .utils import DetectedRegion, MaskRegion, NormalizedBox, clamp, round_half_up

logger = logging.getLogger(__name__)

PRESERVE_ALPHA = 255
EDIT_ALPHA = 0
SAME_ROW_TOLERANCE = 5


@dataclass(frozen=True)
class MaskSuggestion:
    """Rasterized mask plus the regions it was drawn from."""

    regions: List[MaskRegion]
    mask: RasterImage
    coverage: float
    width: int
    height: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "regions": [region.to_dict() for region in self.regions],
            "coverage": self.coverage,
            "image_dimensions": {"width": self.width, "height": self.height},
        }


def regions_from_analysis(payload: Any) -> List[DetectedRegion]:
    """Read detected regions from the text-detection JSON payload.

    Accepts ``{"textRegions": [...]}`` or a bare list. Each entry carries
    ``text`` (or ``label``) and ``boundingBox`` (or ``box``).
    """
    if isinstance(payload, dict):
        entries = payload.get("textRegions", payload.get("regions"))
        if entries is None:
            raise ValueError("Detection payload has no 'textRegions' list.")
    else:
        entries = payload
    if not isinstance(entries, list):
        raise ValueError("Detected regions must be a list.")

    regions: List[DetectedRegion] = []
    for idx, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ValueError(f"Region {idx} is not an object.")
        box_payload = entry.get("boundingBox", entry.get("box"))
        if box_payload is None:
            raise ValueError(f"Region {idx} has no boundingBox.")
        label = entry.get("text", entry.get("label", ""))
        regions.append(DetectedRegion(label=str(label), box=NormalizedBox.from_dict(box_payload)))
    return regions


def adaptive_padding(width: int, height: int, config: MaskSynthesisConfig) -> int:
    avg_dimension = (width + height) / 2
    padding = round_half_up(avg_dimension * config.padding_percent / 100)
    return int(clamp(padding, config.min_padding, config.max_padding))


def to_pixel_region(
    region: DetectedRegion,
    image_width: int,
    image_height: int,
    config: MaskSynthesisConfig,
) -> MaskRegion:
    """Denormalize one detected box and pad it, staying inside the image."""
    box = region.box.clamped()

    x = round_half_up(box.x * image_width)
    y = round_half_up(box.y * image_height)
    width = round_half_up(box.width * image_width)
    height = round_half_up(box.height * image_height)

    padding = adaptive_padding(width, height, config)

    x0 = max(0, x - padding)
    y0 = max(0, y - padding)
    x1 = min(image_width, x + width + padding)
    y1 = min(image_height, y + height + padding)

    return MaskRegion(
        x=x0,
        y=y0,
        width=max(0, x1 - x0),
        height=max(0, y1 - y0),
        padding=padding,
        label=region.label,
        normalized_box=box,
    )


def regions_overlap(a: MaskRegion, b: MaskRegion, tolerance: int = 2) -> bool:
    """True if the rectangles share pixels or lie within ``tolerance`` px."""
    horizontal = not (a.x > b.right + tolerance or a.right + tolerance < b.x)
    vertical = not (a.y > b.bottom + tolerance or a.bottom + tolerance < b.y)
    return horizontal and vertical


def merge_pair(a: MaskRegion, b: MaskRegion) -> MaskRegion:
    x = min(a.x, b.x)
    y = min(a.y, b.y)
    right = max(a.right, b.right)
    bottom = max(a.bottom, b.bottom)
    return MaskRegion(
        x=x,
        y=y,
        width=right - x,
        height=bottom - y,
        padding=max(a.padding, b.padding),
        label=f"{a.label} + {b.label}",
        normalized_box=NormalizedBox(
            x=(a.normalized_box.x + b.normalized_box.x) / 2,
            y=(a.normalized_box.y + b.normalized_box.y) / 2,
            width=(a.normalized_box.width + b.normalized_box.width) / 2,
            height=(a.normalized_box.height + b.normalized_box.height) / 2,
        ),
    )


def _reading_order(a: MaskRegion, b: MaskRegion) -> int:
    # Top to bottom; left to right when tops are within a few pixels.
    if abs(a.y - b.y) < SAME_ROW_TOLERANCE:
        return a.x - b.x
    return a.y - b.y


def merge_overlapping_regions(regions: Sequence[MaskRegion], tolerance: int = 2) -> List[MaskRegion]:
    """Collapse overlapping or touching rectangles into their union.

    Sweeps in reading order and repeats until no pair overlaps, so a union
    that grows into an earlier rectangle is merged as well.
    """
    merged = list(regions)
    while len(merged) > 1:
        ordered = sorted(merged, key=functools.cmp_to_key(_reading_order))
        swept: List[MaskRegion] = []
        for region in ordered:
            for idx, existing in enumerate(swept):
                if regions_overlap(existing, region, tolerance):
                    swept[idx] = merge_pair(existing, region)
                    logger.debug("Merged overlapping: %r", swept[idx].label)
                    break
            else:
                swept.append(region)
        if len(swept) == len(merged):
            break
        merged = swept

    logger.debug("Merge result: %d regions -> %d", len(regions), len(merged))
    return merged


def rasterize_regions(regions: Iterable[MaskRegion], width: int, height: int) -> RasterImage:
    """Draw edit rectangles as alpha=0 on an opaque black canvas."""
    alpha = Image.new("L", (width, height), color=PRESERVE_ALPHA)
    draw = ImageDraw.Draw(alpha)
    for region in regions:
        if region.width <= 0 or region.height <= 0:
            continue
        # ImageDraw rectangles include their far edge.
        draw.rectangle(
            [region.x, region.y, region.right - 1, region.bottom - 1],
            fill=EDIT_ALPHA,
        )
    black = Image.new("L", (width, height), color=0)
    return from_pil(Image.merge("RGBA", (black, black, black, alpha)))


def calculate_coverage(regions: Iterable[MaskRegion], width: int, height: int) -> float:
    """Summed region area as a percentage of the image (overlaps count twice)."""
    total = width * height
    if total == 0:
        return 0.0
    covered = sum(region.area for region in regions)
    return covered / total * 100


def synthesize_mask(
    detected: Sequence[DetectedRegion],
    image_width: int,
    image_height: int,
    config: Optional[MaskSynthesisConfig] = None,
) -> MaskSuggestion:
    """Build an edit mask covering every detected text region."""
    if image_width <= 0 or image_height <= 0:
        raise ValueError(f"Image size must be positive, got {image_width}x{image_height}")
    config = config or MaskSynthesisConfig()

    logger.info(
        "Generating mask for %d regions (%dx%d)", len(detected), image_width, image_height
    )
    regions = [to_pixel_region(r, image_width, image_height, config) for r in detected]
    for idx, r in enumerate(regions):
        logger.debug(
            "  [%d] %r at (%d, %d) size %dx%d pad=%d",
            idx, r.label[:25], r.x, r.y, r.width, r.height, r.padding,
        )

    if config.merge_regions:
        regions = merge_overlapping_regions(regions, tolerance=config.merge_tolerance)

    mask = rasterize_regions(regions, image_width, image_height)
    coverage = calculate_coverage(regions, image_width, image_height)
    logger.info(
        "Generated mask with %.1f%% coverage (%d regions, merge %s)",
        coverage,
        len(regions),
        "on" if config.merge_regions else "off",
    )

    return MaskSuggestion(
        regions=regions,
        mask=mask,
        coverage=coverage,
        width=image_width,
        height=image_height,
    )


__all__ = [
    "MaskSuggestion",
    "regions_from_analysis",
    "adaptive_padding",
    "to_pixel_region",
    "regions_overlap",
    "merge_pair",
    "merge_overlapping_regions",
    "rasterize_regions",
    "calculate_coverage",
    "synthesize_mask",
]
