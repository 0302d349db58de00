from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple
import numpy as np

from .errors import InvalidImageError

CHANNELS = 4  # R, G, B, A


@dataclass(frozen=True, eq=False)
class ImageBuffer:
    """
    Read-only RGBA pixel buffer.

    samples is a flat uint8 sequence, 4 values per pixel, row-major,
    origin top-left. The caller keeps ownership of the underlying data;
    the buffer only ever holds a non-writeable view of it.
    """
    width: int
    height: int
    samples: np.ndarray

    def __post_init__(self) -> None:
        view = np.asarray(self.samples, dtype=np.uint8).reshape(-1).view()
        view.flags.writeable = False
        object.__setattr__(self, "samples", view)

    @classmethod
    def from_rgba(cls, pixels: np.ndarray) -> "ImageBuffer":
        """
        Args
        ----
        pixels : np.ndarray  (H, W, 4)  uint8  RGBA order
        """
        if pixels.ndim != 3 or pixels.shape[2] != CHANNELS:
            raise InvalidImageError(
                f"Expected an (H, W, 4) RGBA array, got shape {pixels.shape}"
            )
        h, w = pixels.shape[:2]
        return cls(width=w, height=h, samples=np.ascontiguousarray(pixels))

    @property
    def num_pixels(self) -> int:
        return self.width * self.height

    def validate(self) -> None:
        if not isinstance(self.width, (int, np.integer)) or not isinstance(self.height, (int, np.integer)):
            raise InvalidImageError(
                f"Image dimensions must be integers, got {self.width!r}x{self.height!r}"
            )
        if self.width <= 0 or self.height <= 0:
            raise InvalidImageError(
                f"Image dimensions must be positive, got {self.width}x{self.height}"
            )
        expected = self.width * self.height * CHANNELS
        if self.samples.size != expected:
            raise InvalidImageError(
                f"Expected {expected} samples for a {self.width}x{self.height} "
                f"RGBA image, got {self.samples.size}"
            )

    def as_array(self) -> np.ndarray:
        """(H, W, 4) read-only view of the samples. Assumes a valid buffer."""
        return self.samples.reshape(self.height, self.width, CHANNELS)

    def rgb_planes(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Red, green and blue planes, each (H, W) uint8. Alpha is dropped."""
        arr = self.as_array()
        return arr[:, :, 0], arr[:, :, 1], arr[:, :, 2]
