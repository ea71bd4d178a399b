"""Utility types shared between the mask, drift and compositing stages.

Boxes arrive from an external text-detection step and are normalized to the
unit square; mask regions are the pixel rectangles derived from them.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict

from .errors import InvalidBoundingBoxError


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


@dataclass(frozen=True)
class NormalizedBox:
    """Axis-aligned bounding box normalized to the unit square."""

    x: float
    y: float
    width: float
    height: float

    def clamped(self) -> "NormalizedBox":
        """Return a copy pulled inside [0, 1], right/bottom edges included."""
        values = (self.x, self.y, self.width, self.height)
        if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in values):
            raise InvalidBoundingBoxError(f"Non-finite bounding box: {values}")

        x = clamp(float(self.x), 0.0, 1.0)
        y = clamp(float(self.y), 0.0, 1.0)
        width = clamp(float(self.width), 0.0, 1.0 - x)
        height = clamp(float(self.height), 0.0, 1.0 - y)
        box = NormalizedBox(x=x, y=y, width=width, height=height)
        box.validate()
        return box

    def validate(self) -> None:
        for name in ("x", "y", "width", "height"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise InvalidBoundingBoxError(f"{name}={value} is outside [0, 1]")
        if self.x + self.width > 1.0 + 1e-9 or self.y + self.height > 1.0 + 1e-9:
            raise InvalidBoundingBoxError(f"Box extends past the unit square: {self}")

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "NormalizedBox":
        try:
            return cls(
                x=float(payload["x"]),
                y=float(payload["y"]),
                width=float(payload["width"]),
                height=float(payload["height"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidBoundingBoxError(f"Malformed bounding box: {payload!r}") from exc


@dataclass(frozen=True)
class DetectedRegion:
    """A text region reported by the detection step."""

    label: str
    box: NormalizedBox


@dataclass(frozen=True)
class MaskRegion:
    """Editable rectangle in pixel coordinates."""

    x: int
    y: int
    width: int
    height: int
    padding: int
    label: str
    normalized_box: NormalizedBox = field(default_factory=lambda: NormalizedBox(0.0, 0.0, 0.0, 0.0))

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "padding": self.padding,
            "label": self.label,
            "normalized_box": self.normalized_box.to_dict(),
        }


__all__ = [
    "round_half_up",
    "clamp",
    "NormalizedBox",
    "DetectedRegion",
    "MaskRegion",
]
