"""CLI to build an edit mask from detected text regions."""
from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import sys
from typing import Optional

from ..config import MaskSynthesisConfig, load_config
from ..masks import regions_from_analysis, synthesize_mask
from ..raster import load_image, save_image


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create an edit mask from detected text regions.")
    parser.add_argument("--detections", required=True, help="JSON file with textRegions and normalized boxes")
    parser.add_argument("--image", default=None, help="Base image (used for its dimensions)")
    parser.add_argument("--width", type=int, default=None, help="Image width when --image is not given")
    parser.add_argument("--height", type=int, default=None, help="Image height when --image is not given")
    parser.add_argument("--out", default="outputs/mask.png", help="Output mask path")
    parser.add_argument("--regions-out", default=None, help="Optional JSON path for regions and coverage")
    parser.add_argument("--config", default=None, help="Engine config JSON (mask section is used)")
    parser.add_argument("--merge", action="store_true", help="Merge overlapping regions")
    parser.add_argument("--padding-percent", type=float, default=None, help="Padding as %% of region size")
    parser.add_argument("--min-padding", type=int, default=None, help="Minimum padding in pixels")
    parser.add_argument("--max-padding", type=int, default=None, help="Maximum padding in pixels")
    parser.add_argument("--verbose", action="store_true", help="Log per-region details")
    return parser


def _mask_config(args: argparse.Namespace) -> MaskSynthesisConfig:
    config = load_config(args.config).mask if args.config else MaskSynthesisConfig()
    overrides = {}
    if args.merge:
        overrides["merge_regions"] = True
    if args.padding_percent is not None:
        overrides["padding_percent"] = args.padding_percent
    if args.min_padding is not None:
        overrides["min_padding"] = args.min_padding
    if args.max_padding is not None:
        overrides["max_padding"] = args.max_padding
    return dataclasses.replace(config, **overrides)


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    try:
        if args.image:
            width, height = load_image(args.image).size
        elif args.width and args.height:
            width, height = args.width, args.height
        else:
            raise ValueError("Provide --image or both --width and --height.")

        with open(args.detections, "r", encoding="utf-8") as f:
            detected = regions_from_analysis(json.load(f))

        suggestion = synthesize_mask(detected, width, height, _mask_config(args))
        path = save_image(suggestion.mask, args.out)

        if args.regions_out:
            os.makedirs(os.path.dirname(args.regions_out) or ".", exist_ok=True)
            with open(args.regions_out, "w", encoding="utf-8") as f:
                json.dump(suggestion.to_dict(), f, indent=2, ensure_ascii=False)
    except Exception as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Mask saved to {path} ({len(suggestion.regions)} regions, {suggestion.coverage:.1f}% coverage)")


if __name__ == "__main__":
    main()
