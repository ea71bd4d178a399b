"""CLI for drift evaluation."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional

from ..eval.drift import evaluate_drift


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Measure drift outside the mask between two images.")
    parser.add_argument("--base", required=True, help="Path to the base image")
    parser.add_argument("--candidate", required=True, help="Path to the generated image")
    parser.add_argument("--mask", required=True, help="Path to the mask (transparent = edit)")
    parser.add_argument("--out", default=None, help="Optional output JSON path for the report")
    parser.add_argument("--save-diff", default=None, help="Optional path to save the grayscale diff map")
    parser.add_argument("--save-heatmap", default=None, help="Optional path to save the heatmap")
    parser.add_argument("--save-overlay", default=None, help="Optional path to save the heatmap overlay")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    try:
        metrics = evaluate_drift(
            base_path=args.base,
            candidate_path=args.candidate,
            mask_path=args.mask,
            out_path=args.out,
            save_diff=args.save_diff,
            save_heatmap=args.save_heatmap,
            save_overlay=args.save_overlay,
        )
    except Exception as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(metrics, indent=2))


if __name__ == "__main__":
    main()
