# repositories/segmentation_repository.py
from typing import Iterable, Optional
import numpy as np

from ..models.image_buffer import ImageBuffer
from ..models.segmentation_engine import SegmentationEngine


class SegmentationRepository:
    """
    One-image access to the segmentation engine.

    • Base scan of a whole image.
    • Refinement of an existing mask around seed points.
    """

    def __init__(self, engine: SegmentationEngine | None = None) -> None:
        self.engine = engine or SegmentationEngine()

    def retrieve_base_mask(self, image: ImageBuffer) -> np.ndarray:
        return self.engine.segment_base(image)

    def retrieve_refined_mask(
        self,
        image: ImageBuffer,
        mask: np.ndarray,
        points: Iterable,
        radius: Optional[float] = None,
    ) -> np.ndarray:
        return self.engine.refine(image, mask, points, radius)
