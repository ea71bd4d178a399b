"""Evaluation utilities for generated candidates."""

from .drift import (
    DiffMap,
    DriftReport,
    DriftResult,
    DriftStatus,
    classify_drift,
    compute_drift,
    describe_drift_status,
    evaluate_drift,
    measure_drift,
    select_least_drift,
)
from .heatmap import HeatmapResult, generate_heatmap, render_heatmap, render_overlay

__all__ = [
    "DiffMap",
    "DriftReport",
    "DriftResult",
    "DriftStatus",
    "classify_drift",
    "compute_drift",
    "describe_drift_status",
    "evaluate_drift",
    "measure_drift",
    "select_least_drift",
    "HeatmapResult",
    "generate_heatmap",
    "render_heatmap",
    "render_overlay",
]
