import argparse
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from ..models.seed_point import SeedPoint
from ..pipeline.rust_detection import RESULTS_DIR, analyze_gallery, log_gallery_summary

logger = logging.getLogger(__name__)


def _parse_point(raw: str) -> SeedPoint:
    try:
        x, y = raw.split(",")
        return SeedPoint(float(x), float(y))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected X,Y but got {raw!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rustscan-batch",
        description="Detect rust in every image of a folder and write overlay + mask PNGs.",
    )
    parser.add_argument("folder", help="directory containing the images")
    parser.add_argument("-o", "--output", default=RESULTS_DIR, help="output directory")
    parser.add_argument("-p", "--point", dest="points", action="append", type=_parse_point,
                        default=[], metavar="X,Y",
                        help="seed point applied to every image (repeatable)")
    parser.add_argument("-r", "--radius", type=float, default=None,
                        help="refinement radius in pixels (default: REFINE_RADIUS or 20)")
    parser.add_argument("--recursive", action="store_true", help="descend into sub-directories")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )
    args = build_parser().parse_args(argv)

    try:
        summaries = analyze_gallery(
            args.folder,
            args.output,
            points=args.points,
            radius=args.radius,
            recursive=args.recursive,
        )
    except NotADirectoryError as err:
        logger.error(f"Not a directory: {err}")
        return 2

    log_gallery_summary(summaries)
    return 0


if __name__ == "__main__":
    sys.exit(main())
