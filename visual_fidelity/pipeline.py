"""One generation-and-verification cycle over a base image.

The pipeline is built with an explicit editor and configuration. It
suggests a mask (unless one is supplied), asks the editor for candidates,
keeps the least-drifting one, optionally composites it pixel-perfectly onto
the base and measures the final drift.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .compositing import composite
from .config import EngineConfig
from .editing import EditRequest, Editor
from .eval.drift import DiffMap, DriftResult, compute_drift, select_least_drift
from .eval.heatmap import HeatmapResult, generate_heatmap
from .masks import MaskSuggestion, synthesize_mask
from .raster import RasterImage, resample_mask, save_image
from .utils import DetectedRegion

logger = logging.getLogger(__name__)


@dataclass
class CycleResult:
    mask: RasterImage
    candidate: RasterImage
    final: RasterImage
    drift: DriftResult
    diff_map: DiffMap
    selected_index: int = 0
    candidate_scores: List[float] = field(default_factory=list)
    pixel_perfect_applied: bool = False
    suggestion: Optional[MaskSuggestion] = None
    heatmap: Optional[HeatmapResult] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "drift": self.drift.to_dict(),
            "selected_index": self.selected_index,
            "candidate_scores": self.candidate_scores,
            "pixel_perfect_applied": self.pixel_perfect_applied,
            "image_size": [self.final.width, self.final.height],
        }
        if self.suggestion is not None:
            payload["mask_suggestion"] = self.suggestion.to_dict()
        return payload

    def save(self, output_dir: str) -> Dict[str, str]:
        """Write all artifacts as PNG plus report.json; returns their paths."""
        os.makedirs(output_dir, exist_ok=True)
        paths = {
            "mask": save_image(self.mask, os.path.join(output_dir, "mask.png")),
            "candidate": save_image(self.candidate, os.path.join(output_dir, "candidate.png")),
            "final": save_image(self.final, os.path.join(output_dir, "final.png")),
            "diff": self.diff_map.save(os.path.join(output_dir, "diff.png")),
        }
        if self.heatmap is not None:
            paths["heatmap"] = save_image(self.heatmap.heatmap, os.path.join(output_dir, "heatmap.png"))
            paths["overlay"] = save_image(self.heatmap.overlay, os.path.join(output_dir, "overlay.png"))

        report_path = os.path.join(output_dir, "report.json")
        with open(report_path, "w", encoding="utf-8") as f:
            json.dump({**self.to_dict(), "paths": paths}, f, indent=2, ensure_ascii=False)
        paths["report"] = report_path
        return paths


@dataclass
class LocalizationPipeline:
    editor: Editor
    config: EngineConfig = field(default_factory=EngineConfig)

    def suggest_mask(self, base: RasterImage, detected: Sequence[DetectedRegion]) -> MaskSuggestion:
        return synthesize_mask(detected, base.width, base.height, self.config.mask)

    def run(
        self,
        base: RasterImage,
        prompt: str,
        mask: Optional[RasterImage] = None,
        detected: Optional[Sequence[DetectedRegion]] = None,
        seed: int = 0,
        **edit_options: Any,
    ) -> CycleResult:
        """Run one cycle. Exactly one of ``mask`` or ``detected`` is required."""
        if (mask is None) == (detected is None):
            raise ValueError("Provide either mask or detected regions.")

        suggestion = None
        if detected is not None:
            suggestion = self.suggest_mask(base, detected)
            mask = suggestion.mask
        mask = resample_mask(mask, base.width, base.height)
        logger.info(
            "Running cycle on %dx%d base (%d candidate(s), pixel_perfect=%s)",
            base.width,
            base.height,
            self.config.num_candidates,
            self.config.pixel_perfect,
        )

        candidates: List[RasterImage] = []
        for offset in range(self.config.num_candidates):
            request = EditRequest(image=base, mask=mask, prompt=prompt, seed=seed + offset, **edit_options)
            candidates.append(self.editor.edit(request).image)

        selection = select_least_drift(base, candidates, mask)
        candidate, report = selection.candidate, selection.report

        final = candidate
        if self.config.pixel_perfect:
            final = composite(base, candidate, mask)
            report = compute_drift(base, final, mask)

        heatmap = generate_heatmap(report.diff_map, final) if self.config.save_heatmap else None

        return CycleResult(
            mask=mask,
            candidate=candidate,
            final=final,
            drift=report.result,
            diff_map=report.diff_map,
            selected_index=selection.index,
            candidate_scores=selection.scores,
            pixel_perfect_applied=self.config.pixel_perfect,
            suggestion=suggestion,
            heatmap=heatmap,
        )


__all__ = ["CycleResult", "LocalizationPipeline"]
