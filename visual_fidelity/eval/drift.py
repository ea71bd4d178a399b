"""Drift evaluation: how much changed outside the editable region."""
from __future__ import annotations

import enum
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from ..raster import RasterImage, align_to, ensure_same_size, load_image, save_image

logger = logging.getLogger(__name__)

CHANGE_THRESHOLD = 10
PASS_THRESHOLD = 2.0
WARN_THRESHOLD = 5.0
PRESERVE_ALPHA_CUTOFF = 127
DIFF_AMPLIFICATION = 2


class DriftStatus(str, enum.Enum):
    PENDING = "PENDING"
    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


_STATUS_DESCRIPTIONS = {
    DriftStatus.PENDING: "Drift analysis pending",
    DriftStatus.PASS: "Low drift - excellent preservation",
    DriftStatus.WARN: "Moderate drift - review recommended",
    DriftStatus.FAIL: "High drift - regeneration recommended",
}


def classify_drift(score: float) -> DriftStatus:
    if score <= PASS_THRESHOLD:
        return DriftStatus.PASS
    if score <= WARN_THRESHOLD:
        return DriftStatus.WARN
    return DriftStatus.FAIL


def describe_drift_status(status: DriftStatus) -> str:
    return _STATUS_DESCRIPTIONS[DriftStatus(status)]


@dataclass(frozen=True)
class DriftResult:
    """Percentage of preserve-region pixels that changed."""

    score: float
    status: DriftStatus
    changed_pixels: int
    total_considered_pixels: int

    @classmethod
    def from_counts(cls, changed_pixels: int, total_considered_pixels: int) -> "DriftResult":
        if total_considered_pixels > 0:
            score = changed_pixels / total_considered_pixels * 100
        else:
            # Nothing to preserve counts as no drift.
            score = 0.0
        return cls(
            score=float(score),
            status=classify_drift(score),
            changed_pixels=int(changed_pixels),
            total_considered_pixels=int(total_considered_pixels),
        )

    @classmethod
    def pending(cls) -> "DriftResult":
        return cls(score=0.0, status=DriftStatus.PENDING, changed_pixels=0, total_considered_pixels=0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "status": self.status.value,
            "description": describe_drift_status(self.status),
            "changed_pixels": self.changed_pixels,
            "total_considered_pixels": self.total_considered_pixels,
        }


@dataclass(frozen=True, eq=False)
class DiffMap:
    """Per-pixel amplified RGB distance, zero inside the edit region."""

    values: np.ndarray

    def __post_init__(self) -> None:
        values = np.array(self.values, dtype=np.uint8, copy=True)
        if values.ndim != 2:
            raise ValueError(f"diff map must be 2D, got shape {values.shape}")
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

    @property
    def width(self) -> int:
        return int(self.values.shape[1])

    @property
    def height(self) -> int:
        return int(self.values.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.array(self.values))

    def save(self, path: str) -> str:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        self.to_image().save(path, format="PNG")
        return path


@dataclass(frozen=True)
class DriftReport:
    result: DriftResult
    diff_map: DiffMap


def preserve_region(mask: RasterImage) -> np.ndarray:
    """Boolean map of pixels the mask says must not change."""
    return mask.alpha > PRESERVE_ALPHA_CUTOFF


def measure_drift(base: RasterImage, candidate: RasterImage, mask: RasterImage) -> DriftReport:
    """Score drift for equally sized buffers.

    Raises DimensionMismatchError if sizes differ; use :func:`compute_drift`
    to resample first.
    """
    ensure_same_size(base, candidate, mask)

    preserve = preserve_region(mask)
    channel_diff = np.abs(
        base.pixels[:, :, :3].astype(np.int16) - candidate.pixels[:, :, :3].astype(np.int16)
    )
    avg_diff = channel_diff.sum(axis=2) / 3.0

    amplified = np.floor(avg_diff * DIFF_AMPLIFICATION + 0.5)
    diff_values = np.where(preserve, np.clip(amplified, 0, 255), 0).astype(np.uint8)

    total = int(np.count_nonzero(preserve))
    changed = int(np.count_nonzero(preserve & (avg_diff > CHANGE_THRESHOLD)))

    result = DriftResult.from_counts(changed, total)
    logger.info(
        "Computed drift: %.2f%% (%d/%d pixels changed outside mask) -> %s",
        result.score,
        changed,
        total,
        result.status.value,
    )
    return DriftReport(result=result, diff_map=DiffMap(diff_values))


def compute_drift(base: RasterImage, candidate: RasterImage, mask: RasterImage) -> DriftReport:
    """Resample candidate and mask to the base size, then score drift."""
    candidate, mask = align_to(base, candidate, mask)
    return measure_drift(base, candidate, mask)


@dataclass(frozen=True)
class CandidateSelection:
    index: int
    candidate: RasterImage
    report: DriftReport
    scores: List[float]


def select_least_drift(
    base: RasterImage,
    candidates: Sequence[RasterImage],
    mask: RasterImage,
) -> CandidateSelection:
    """Pick the candidate with the lowest drift score (earliest wins ties)."""
    if not candidates:
        raise ValueError("At least one candidate is required.")

    reports = [compute_drift(base, candidate, mask) for candidate in candidates]
    scores = [report.result.score for report in reports]
    for idx, score in enumerate(scores):
        logger.info("Candidate %d: drift = %.2f%%", idx, score)

    best = min(range(len(reports)), key=lambda idx: scores[idx])
    logger.info("Selected candidate %d with %.2f%% drift", best, scores[best])
    return CandidateSelection(index=best, candidate=candidates[best], report=reports[best], scores=scores)


def evaluate_drift(
    base_path: str,
    candidate_path: str,
    mask_path: str,
    out_path: Optional[str] = None,
    save_diff: Optional[str] = None,
    save_heatmap: Optional[str] = None,
    save_overlay: Optional[str] = None,
) -> Dict[str, Any]:
    """Compute drift from image paths and optionally save outputs."""
    base = load_image(base_path)
    candidate = load_image(candidate_path)
    mask = load_image(mask_path)

    report = compute_drift(base, candidate, mask)
    metrics = report.result.to_dict()
    metrics["image_size"] = [base.width, base.height]

    if save_diff:
        report.diff_map.save(save_diff)

    if save_heatmap or save_overlay:
        from .heatmap import generate_heatmap

        rendered = generate_heatmap(report.diff_map, candidate)
        if save_heatmap:
            save_image(rendered.heatmap, save_heatmap)
        if save_overlay:
            save_image(rendered.overlay, save_overlay)

    if out_path:
        os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
        with open(out_path, "w", encoding="utf-8") as f:
            json.dump(metrics, f, indent=2)

    return metrics


__all__ = [
    "CHANGE_THRESHOLD",
    "PASS_THRESHOLD",
    "WARN_THRESHOLD",
    "PRESERVE_ALPHA_CUTOFF",
    "DriftStatus",
    "DriftResult",
    "DiffMap",
    "DriftReport",
    "CandidateSelection",
    "classify_drift",
    "describe_drift_status",
    "preserve_region",
    "measure_drift",
    "compute_drift",
    "select_least_drift",
    "evaluate_drift",
]
