from __future__ import annotations
from dataclasses import dataclass, field
from typing import Tuple
import numpy as np

from .seed_point import SeedPoint


@dataclass
class AnalysisResult:
    """
    Data object handed to result consumers: the binary mask plus the
    dimensions needed to interpret it, and the seed points (if any)
    that produced it.
    """
    mask: np.ndarray  # Shape (width * height,), dtype uint8, values 0/1.
    width: int
    height: int
    points: Tuple[SeedPoint, ...] = field(default_factory=tuple)

    @property
    def rust_pixels(self) -> int:
        return int(np.count_nonzero(self.mask))

    @property
    def coverage(self) -> float:
        """Fraction of the image classified as rust, in [0, 1]."""
        total = self.width * self.height
        return self.rust_pixels / total if total else 0.0

    def mask_2d(self) -> np.ndarray:
        return self.mask.reshape(self.height, self.width)
