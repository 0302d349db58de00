# pipeline/rust_detection.py
from pathlib import Path
import logging
import os
from typing import Any, Dict, Iterable, List, Optional

from dotenv import load_dotenv

from ..models.analysis_result import AnalysisResult
from ..services.image_service import ImageService
from ..services.overlay_service import OverlayService
from ..services.segmentation_service import SegmentationService

# ------------------------------------------------------------------
# env-vars
load_dotenv()
RESULTS_DIR = os.getenv("RESULTS_FOLDER", "data/rust_results")

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
def detect_rust(
    image_data: str | bytes,
    points: Iterable | None = None,
    *,
    image_service: ImageService = ImageService(),
    segmentation_service: SegmentationService = SegmentationService(),
) -> AnalysisResult:
    """
    Decode an uploaded image (data URL or raw bytes) and return its
    rust mask plus dimensions. Decode failures raise ValueError.
    """
    img = image_service.decode_upload(image_data)
    try:
        return segmentation_service.detect_rust(img, points)
    finally:
        segmentation_service.forget(img)


# ------------------------------------------------------------------
def analyze_gallery(
    folder: str | Path,
    output_dir: str | Path = RESULTS_DIR,
    *,
    points: Iterable | None = None,
    radius: Optional[float] = None,
    recursive: bool = False,
    image_service: ImageService = ImageService(),
    segmentation_service: SegmentationService = SegmentationService(),
    overlay_service: OverlayService = OverlayService(),
) -> List[Dict[str, Any]]:
    """
    For every image in *folder*:
        • run the rust scan (refined around *points* if given)
        • write <name>_rust.png  (overlay) and <name>_mask.png (0/255 mask),
          where <name> keeps the extension (a.png → a.png_rust.png) and
          sub-folders are mirrored under *output_dir*
    Returns one summary dict per processed image.
    """
    folder = Path(folder)
    output_dir = Path(output_dir)
    points = list(points or ())
    summaries = []

    for path, img in image_service.stream_gallery(folder, recursive=recursive):
        result = segmentation_service.detect_rust(img, points, radius=radius)
        segmentation_service.forget(img)

        rel = path.relative_to(folder)
        overlay_path = output_dir / rel.parent / f"{rel.name}_rust.png"
        mask_path = output_dir / rel.parent / f"{rel.name}_mask.png"
        image_service.save(overlay_service.compose(img, result), overlay_path)
        image_service.save(overlay_service.mask_to_pixels(result), mask_path)

        logger.info(f"{path.name}: {result.rust_pixels} rust pixels ({result.coverage:.1%})")
        summaries.append({
            "source": str(path),
            "width": result.width,
            "height": result.height,
            "rust_pixels": result.rust_pixels,
            "coverage": result.coverage,
            "overlay": str(overlay_path),
            "mask": str(mask_path),
        })

    return summaries


def log_gallery_summary(summaries: List[Dict[str, Any]]) -> None:
    if not summaries:
        logger.info("No images processed")
        return
    mean_cov = sum(s["coverage"] for s in summaries) / len(summaries)
    logger.info(f"Processed {len(summaries)} images, mean rust coverage {mean_cov:.1%}")
    for s in sorted(summaries, key=lambda s: s["coverage"], reverse=True):
        logger.info(f"  {s['coverage']:6.1%}  {s['source']}")
