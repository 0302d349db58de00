# services/segmentation_service.py
import os
from collections import OrderedDict
from typing import Iterable, Optional, Tuple
import numpy as np
from dotenv import load_dotenv

from ..models.analysis_result import AnalysisResult
from ..models.image_buffer import ImageBuffer
from ..models.seed_point import SeedPoint
from ..repositories.segmentation_repository import SegmentationRepository

# Load environment variables
load_dotenv()


class SegmentationService:
    """
    Caches base masks at the business-logic layer so a rescan with new
    seed points only pays for the refinement. At most `cache_size` masks
    are kept, least recently used evicted first.
    """

    def __init__(self, radius: Optional[float] = None, cache_size: Optional[int] = None) -> None:
        self.repo = SegmentationRepository()
        self.radius = float(os.getenv("REFINE_RADIUS", "20")) if radius is None else radius
        self.cache_size = int(os.getenv("MASK_CACHE_SIZE", "64")) if cache_size is None else cache_size
        self._mask_cache: "OrderedDict[int, Tuple[ImageBuffer, np.ndarray]]" = OrderedDict()

    def base_mask(self, img: ImageBuffer) -> np.ndarray:
        key = id(img)
        cached = self._mask_cache.get(key)
        # id() can be recycled once an image is collected; keep the image to compare
        if cached is None or cached[0] is not img:
            cached = (img, self.repo.retrieve_base_mask(img))
            self._mask_cache[key] = cached
            while len(self._mask_cache) > max(self.cache_size, 1):
                self._mask_cache.popitem(last=False)
        self._mask_cache.move_to_end(key)
        return cached[1]

    def detect_rust(
        self,
        img: ImageBuffer,
        points: Iterable | None = None,
        radius: Optional[float] = None,
    ) -> AnalysisResult:
        """
        Base scan, then refinement around `points` when any are given.
        The cached base mask is never modified.
        """
        seeds = tuple(SeedPoint.coerce(p) for p in (points or ()))
        mask = self.base_mask(img)
        if seeds:
            mask = self.repo.retrieve_refined_mask(
                img, mask, seeds, self.radius if radius is None else radius
            )
        else:
            mask = mask.copy()
        return AnalysisResult(mask=mask, width=img.width, height=img.height, points=seeds)

    def forget(self, img: ImageBuffer) -> None:
        """Drop the cached base mask for `img`."""
        cached = self._mask_cache.get(id(img))
        if cached is not None and cached[0] is img:
            del self._mask_cache[id(img)]

    def clear_cache(self) -> None:
        self._mask_cache.clear()
