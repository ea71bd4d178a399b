"""Editing interface for the external candidate generator."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from ..raster import RasterImage


@dataclass
class EditRequest:
    """Input payload for one repaint of the editable region."""

    image: RasterImage
    mask: RasterImage
    prompt: str = ""
    negative_prompt: Optional[str] = None
    strength: float = 1.0
    seed: int = 0
    steps: int = 30
    guidance_scale: float = 7.5
    model_id: str = "runwayml/stable-diffusion-inpainting"
    device: str = "auto"
    cache_dir: Optional[str] = None
    local_files_only: bool = False


@dataclass
class EditResult:
    """Candidate produced by an editor."""

    image: RasterImage
    seed: int


class Editor(Protocol):
    """Anything that turns (image, mask, prompt) into a candidate image."""

    def edit(self, request: EditRequest) -> EditResult:
        """Run the edit and return the resulting image."""
        raise NotImplementedError


__all__ = ["EditRequest", "EditResult", "Editor"]
