"""Configuration objects for mask synthesis and the localization cycle."""
from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from typing import Any, Dict

DEFAULT_PADDING_PERCENT = 10.0
DEFAULT_MIN_PADDING = 5
DEFAULT_MAX_PADDING = 50
DEFAULT_MERGE_TOLERANCE = 2


def _require_bool(name: str, value: Any) -> None:
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be true or false, got {value!r}")


def _require_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")


def _require_number(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")


@dataclass(frozen=True)
class MaskSynthesisConfig:
    """How detected boxes become mask rectangles."""

    padding_percent: float = DEFAULT_PADDING_PERCENT
    min_padding: int = DEFAULT_MIN_PADDING
    max_padding: int = DEFAULT_MAX_PADDING
    merge_regions: bool = False
    merge_tolerance: int = DEFAULT_MERGE_TOLERANCE

    def __post_init__(self) -> None:
        _require_number("padding_percent", self.padding_percent)
        _require_int("min_padding", self.min_padding)
        _require_int("max_padding", self.max_padding)
        _require_bool("merge_regions", self.merge_regions)
        _require_int("merge_tolerance", self.merge_tolerance)
        if self.padding_percent < 0:
            raise ValueError(f"padding_percent must be >= 0: {self.padding_percent}")
        if self.min_padding < 0 or self.max_padding < 0:
            raise ValueError("min_padding and max_padding must be >= 0.")
        if self.min_padding > self.max_padding:
            raise ValueError(
                f"min_padding ({self.min_padding}) exceeds max_padding ({self.max_padding})."
            )
        if self.merge_tolerance < 0:
            raise ValueError(f"merge_tolerance must be >= 0: {self.merge_tolerance}")


@dataclass(frozen=True)
class EngineConfig:
    """Settings for one generation-and-verification cycle."""

    mask: MaskSynthesisConfig = field(default_factory=MaskSynthesisConfig)
    pixel_perfect: bool = True
    num_candidates: int = 1
    save_heatmap: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.mask, MaskSynthesisConfig):
            raise ValueError("mask must be a MaskSynthesisConfig.")
        _require_bool("pixel_perfect", self.pixel_perfect)
        _require_int("num_candidates", self.num_candidates)
        _require_bool("save_heatmap", self.save_heatmap)
        if self.num_candidates < 1:
            raise ValueError(f"num_candidates must be >= 1: {self.num_candidates}")

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "EngineConfig":
        _reject_unknown(payload, cls, "config")
        kwargs = dict(payload)
        mask_payload = kwargs.pop("mask", None) or {}
        if not isinstance(mask_payload, dict):
            raise ValueError("config.mask must be an object.")
        _reject_unknown(mask_payload, MaskSynthesisConfig, "config.mask")
        return cls(mask=MaskSynthesisConfig(**mask_payload), **kwargs)


def _reject_unknown(payload: Dict[str, Any], cls: type, where: str) -> None:
    known = {f.name for f in dataclasses.fields(cls)}
    for key in payload:
        if key not in known:
            raise ValueError(f"Unknown key in {where}: {key}")


def load_config(path: str) -> EngineConfig:
    with open(path, "r", encoding="utf-8") as f:
        payload = json.load(f)
    if not isinstance(payload, dict):
        raise ValueError(f"Config must be a JSON object: {path}")
    return EngineConfig.from_dict(payload)


__all__ = [
    "DEFAULT_PADDING_PERCENT",
    "DEFAULT_MIN_PADDING",
    "DEFAULT_MAX_PADDING",
    "DEFAULT_MERGE_TOLERANCE",
    "MaskSynthesisConfig",
    "EngineConfig",
    "load_config",
]
