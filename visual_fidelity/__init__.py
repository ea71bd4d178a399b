"""Top level package for the visual fidelity and mask synthesis engine."""

from .compositing import composite
from .eval.drift import DriftResult, DriftStatus, compute_drift
from .masks import MaskSuggestion, synthesize_mask
from .pipeline import CycleResult, LocalizationPipeline
from .raster import RasterImage, decode, encode, resample

__all__ = [
    "composite",
    "DriftResult",
    "DriftStatus",
    "compute_drift",
    "MaskSuggestion",
    "synthesize_mask",
    "CycleResult",
    "LocalizationPipeline",
    "RasterImage",
    "decode",
    "encode",
    "resample",
]
