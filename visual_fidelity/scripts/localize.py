"""CLI for one full localization cycle with the inpainting editor."""
from __future__ import annotations

import argparse
import dataclasses
import datetime as _dt
import json
import logging
import os
import sys
from typing import Optional

from ..config import EngineConfig, load_config
from ..editing import InpaintEditor
from ..masks import regions_from_analysis
from ..pipeline import LocalizationPipeline
from ..raster import load_image


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Repaint masked regions and verify nothing else changed.")
    parser.add_argument("--image", required=True, help="Path to the base image")
    parser.add_argument("--prompt", required=True, help="Prompt describing the repainted regions")
    parser.add_argument("--mask", default=None, help="Path to a mask image (transparent = edit)")
    parser.add_argument("--detections", default=None, help="JSON with detected text regions (auto mask)")
    parser.add_argument("--negative-prompt", default=None, help="Negative prompt (optional)")
    parser.add_argument("--out", "--out-dir", dest="output_dir", default="outputs", help="Output directory")
    parser.add_argument("--config", default=None, help="Engine config JSON")
    parser.add_argument("--candidates", type=int, default=None, help="Number of candidates to generate")
    parser.add_argument("--no-pixel-perfect", action="store_true", help="Keep the raw candidate")
    parser.add_argument("--model", dest="model_id", default="runwayml/stable-diffusion-inpainting", help="Inpainting model id")
    parser.add_argument("--seed", type=int, default=0, help="Random seed of the first candidate")
    parser.add_argument("--steps", type=int, default=30, help="Sampling steps")
    parser.add_argument("--guidance-scale", type=float, default=7.5, help="CFG scale")
    parser.add_argument("--device", default="auto", help="Device: auto/cuda/cpu")
    parser.add_argument("--cache-dir", default=None, help="Hugging Face cache directory")
    parser.add_argument("--local-files-only", action="store_true", help="Use local model files only")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def _engine_config(args: argparse.Namespace) -> EngineConfig:
    config = load_config(args.config) if args.config else EngineConfig()
    overrides = {}
    if args.candidates is not None:
        overrides["num_candidates"] = args.candidates
    if args.no_pixel_perfect:
        overrides["pixel_perfect"] = False
    return dataclasses.replace(config, **overrides)


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    if not os.path.exists(args.image):
        print(f"[ERROR] Input image not found: {args.image}", file=sys.stderr)
        sys.exit(1)

    if (args.mask is None) == (args.detections is None):
        print("[ERROR] Provide exactly one of --mask or --detections.", file=sys.stderr)
        sys.exit(1)

    try:
        base = load_image(args.image)
        mask = load_image(args.mask) if args.mask else None
        detected = None
        if args.detections:
            with open(args.detections, "r", encoding="utf-8") as f:
                detected = regions_from_analysis(json.load(f))

        pipeline = LocalizationPipeline(editor=InpaintEditor(), config=_engine_config(args))
        result = pipeline.run(
            base,
            args.prompt,
            mask=mask,
            detected=detected,
            seed=args.seed,
            negative_prompt=args.negative_prompt,
            steps=args.steps,
            guidance_scale=args.guidance_scale,
            model_id=args.model_id,
            device=args.device,
            cache_dir=args.cache_dir,
            local_files_only=args.local_files_only,
        )
    except ImportError as exc:
        print(
            "Missing dependencies for diffusers. Install with:\n"
            "  pip install 'visual-fidelity[diffusion]'",
            file=sys.stderr,
        )
        print(str(exc), file=sys.stderr)
        sys.exit(1)
    except Exception as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        sys.exit(1)

    timestamp = _dt.datetime.now().strftime("%Y%m%d_%H%M%S")
    run_dir = os.path.join(args.output_dir, f"cycle_{timestamp}_seed{args.seed}")
    paths = result.save(run_dir)
    print(
        f"Drift {result.drift.score:.2f}% ({result.drift.status.value}); "
        f"final image saved to {paths['final']}"
    )


if __name__ == "__main__":
    main()
