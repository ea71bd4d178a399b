"""Diffusers-based inpainting editor implementation."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

import numpy as np
from PIL import Image

from ..eval.drift import preserve_region
from ..raster import RasterImage, from_pil, resample, to_pil
from .interface import EditRequest, EditResult, Editor

logger = logging.getLogger(__name__)


def mask_for_inpainting(mask: RasterImage) -> Image.Image:
    """Convert an alpha mask (transparent = edit) to diffusers' white = edit."""
    edit = ~preserve_region(mask)
    return Image.fromarray(np.where(edit, 255, 0).astype(np.uint8))


def _model_size(width: int, height: int) -> Tuple[int, int]:
    # Stable Diffusion works on multiples of 8.
    return max(8, width - width % 8), max(8, height - height % 8)


@dataclass
class InpaintEditor(Editor):
    """Inpainting editor using StableDiffusionInpaintPipeline."""

    _pipelines: Dict[Tuple[str, str], Any] = field(default_factory=dict, repr=False)

    def edit(self, request: EditRequest) -> EditResult:
        try:
            import torch
        except ImportError as exc:  # pragma: no cover
            raise ImportError("PyTorch is required to run diffusers pipelines.") from exc

        device = _select_device(request.device)
        pipe = self._load_pipeline(request, device)

        width, height = _model_size(request.image.width, request.image.height)
        image = to_pil(resample(request.image, width, height)).convert("RGB")
        mask = mask_for_inpainting(resample(request.mask, width, height, kernel="nearest"))

        generator = torch.Generator(device=device).manual_seed(request.seed)
        logger.info(
            "Inpainting %dx%d on %s (seed=%d, steps=%d)", width, height, device, request.seed, request.steps
        )

        try:
            result = pipe(
                prompt=request.prompt,
                image=image,
                mask_image=mask,
                negative_prompt=request.negative_prompt,
                strength=request.strength,
                num_inference_steps=request.steps,
                guidance_scale=request.guidance_scale,
                height=height,
                width=width,
                generator=generator,
            )
        except RuntimeError as exc:
            message = str(exc).lower()
            if "out of memory" in message:
                raise RuntimeError(
                    "CUDA out of memory. Try a smaller image or fewer --steps."
                ) from exc
            raise

        return EditResult(image=from_pil(result.images[0]), seed=request.seed)

    def _load_pipeline(self, request: EditRequest, device: str):
        key = (request.model_id, device)
        if key in self._pipelines:
            return self._pipelines[key]

        try:
            from diffusers import StableDiffusionInpaintPipeline
        except ImportError as exc:  # pragma: no cover
            raise ImportError(
                "diffusers is required. Install diffusers, transformers, accelerate, safetensors."
            ) from exc

        try:
            pipe = StableDiffusionInpaintPipeline.from_pretrained(
                request.model_id,
                torch_dtype=_torch_dtype_for_device(device),
                cache_dir=request.cache_dir,
                local_files_only=request.local_files_only,
            )
        except Exception as exc:
            raise RuntimeError(
                "Failed to load inpainting pipeline. Check model IDs, network access, or use --local-files-only."
            ) from exc

        pipe.to(device)
        self._pipelines[key] = pipe
        return pipe


def _select_device(requested: str) -> str:
    import torch

    if requested == "auto":
        return "cuda" if torch.cuda.is_available() else "cpu"
    if requested.startswith("cuda"):
        return requested if torch.cuda.is_available() else "cpu"
    return requested


def _torch_dtype_for_device(device: str):
    import torch

    if device.startswith("cuda"):
        return torch.float16
    return torch.float32


__all__ = ["InpaintEditor", "mask_for_inpainting"]
