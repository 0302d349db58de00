# models/segmentation_engine.py
"""
Deterministic rust segmentation.

• BaseSegmenter   : full-image scan with the STANDARD profile.
• PointRefiner    : local re-scan around seed points with the RELAXED
                    profile, OR-ed into an existing mask.
• SegmentationEngine : the single entry point (image in, mask out).

Masks are flat uint8 arrays of length width * height holding 0/1.
Nothing here logs or keeps state between calls.
"""
from __future__ import annotations
import math
from typing import Iterable, Optional
import numpy as np

from .errors import DimensionMismatchError
from .image_buffer import ImageBuffer
from .pixel_classifier import classify_planes
from .seed_point import SeedPoint
from .sensitivity_profile import RELAXED, STANDARD, SensitivityProfile

DEFAULT_RADIUS = 20


class BaseSegmenter:
    """Classifies every pixel independently; no pixel depends on another."""

    def __init__(self, profile: SensitivityProfile = STANDARD) -> None:
        self.profile = profile

    def segment(self, image: ImageBuffer) -> np.ndarray:
        """
        Args
        ----
        image : ImageBuffer  validated here, InvalidImageError if malformed

        Returns
        -------
        mask : np.ndarray  (width * height,)  uint8  {0, 1}
        """
        image.validate()
        r, g, b = image.rgb_planes()
        return classify_planes(r, g, b, self.profile).astype(np.uint8).reshape(-1)


class PointRefiner:
    """
    Re-examines the disc of `radius` pixels around every seed point with a
    more permissive profile and merges hits into the mask.

    Bits are only ever set, so the result is independent of point order
    and re-applying the same points is a no-op.
    """

    def __init__(
        self,
        radius: float = DEFAULT_RADIUS,
        profile: SensitivityProfile = RELAXED,
    ) -> None:
        self.radius = radius
        self.profile = profile

    @staticmethod
    def _window(center: float, radius: float, size: int) -> tuple[int, int]:
        """Inclusive [lo, hi] pixel range, clamped to [0, size - 1]."""
        lo = max(0, math.floor(center - radius))
        hi = min(size - 1, math.floor(center + radius))
        return lo, hi

    def refine(
        self,
        image: ImageBuffer,
        mask: np.ndarray,
        points: Iterable,
        radius: Optional[float] = None,
    ) -> np.ndarray:
        """
        Returns a new mask; `mask` and `points` are left untouched.
        Raises InvalidImageError / DimensionMismatchError on bad input.
        """
        image.validate()
        mask = np.asarray(mask)
        if mask.size != image.num_pixels:
            raise DimensionMismatchError(
                f"Mask has {mask.size} cells but the image is "
                f"{image.width}x{image.height} ({image.num_pixels} pixels)"
            )

        radius = self.radius if radius is None else radius
        refined = (mask.reshape(image.height, image.width) != 0).astype(np.uint8)
        r, g, b = image.rgb_planes()

        for point in points:
            p = SeedPoint.coerce(point)
            x0, x1 = self._window(p.x, radius, image.width)
            y0, y1 = self._window(p.y, radius, image.height)
            if x0 > x1 or y0 > y1:
                continue  # disc lies completely outside the image

            ys = np.arange(y0, y1 + 1, dtype=np.float64)[:, None]
            xs = np.arange(x0, x1 + 1, dtype=np.float64)[None, :]
            inside = np.sqrt((xs - p.x) ** 2 + (ys - p.y) ** 2) <= radius

            win = (slice(y0, y1 + 1), slice(x0, x1 + 1))
            hits = inside & classify_planes(r[win], g[win], b[win], self.profile)
            refined[win] |= hits.astype(np.uint8)

        return refined.reshape(-1)


class SegmentationEngine:
    """
    Two-stage pipeline behind one call:
        analyze(image)          → base mask
        analyze(image, points)  → base mask refined around the points
    """

    def __init__(
        self,
        base_segmenter: BaseSegmenter | None = None,
        point_refiner: PointRefiner | None = None,
    ) -> None:
        self.base_segmenter = base_segmenter or BaseSegmenter()
        self.point_refiner = point_refiner or PointRefiner()

    def segment_base(self, image: ImageBuffer) -> np.ndarray:
        return self.base_segmenter.segment(image)

    def refine(
        self,
        image: ImageBuffer,
        mask: np.ndarray,
        points: Iterable,
        radius: Optional[float] = None,
    ) -> np.ndarray:
        return self.point_refiner.refine(image, mask, points, radius)

    def analyze(self, image: ImageBuffer, points: Iterable = ()) -> np.ndarray:
        mask = self.segment_base(image)
        points = list(points)
        if not points:
            return mask
        return self.refine(image, mask, points)
