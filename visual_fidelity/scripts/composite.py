"""CLI to composite a generated image back onto its base."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from ..compositing import composite
from ..raster import load_image, save_image


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Keep base pixels outside the mask and generated pixels inside it."
    )
    parser.add_argument("--base", required=True, help="Path to the base image")
    parser.add_argument("--candidate", required=True, help="Path to the generated image")
    parser.add_argument("--mask", required=True, help="Path to the mask (transparent = edit)")
    parser.add_argument("--out", required=True, help="Output PNG path")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    try:
        result = composite(load_image(args.base), load_image(args.candidate), load_image(args.mask))
        path = save_image(result, args.out)
    except Exception as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Composite saved to {path}")


if __name__ == "__main__":
    main()
