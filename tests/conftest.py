"""Shared fixtures for rustscan tests."""

from __future__ import annotations

import base64
from io import BytesIO
from typing import Sequence

import numpy as np
import pytest
from PIL import Image as PILImage

from rustscan.models.image_buffer import ImageBuffer

GRAY = (128, 128, 128, 255)
# Below STANDARD thresholds, accepted by RELAXED condition A
FAINT_RUST = (90, 70, 70, 255)
STRONG_RUST = (200, 50, 10, 255)


def uniform_image(width: int, height: int, rgba: Sequence[int]) -> ImageBuffer:
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[:] = rgba
    return ImageBuffer.from_rgba(pixels)


def png_bytes(pixels: np.ndarray) -> bytes:
    buffer = BytesIO()
    PILImage.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_image():
    """Build an ImageBuffer from a row-major list of RGBA tuples."""

    def _make(pixels: Sequence[Sequence[int]], width: int, height: int) -> ImageBuffer:
        samples = np.array(pixels, dtype=np.uint8).reshape(-1)
        return ImageBuffer(width=width, height=height, samples=samples)

    return _make


@pytest.fixture
def random_image() -> ImageBuffer:
    rng = np.random.default_rng(7)
    return ImageBuffer.from_rgba(rng.integers(0, 256, size=(30, 40, 4), dtype=np.uint8))


@pytest.fixture
def rust_patch_rgb() -> np.ndarray:
    """8x6 RGB image: gray with a strong rust block and one faint-rust pixel."""
    pixels = np.full((6, 8, 3), 128, dtype=np.uint8)
    pixels[1:3, 1:3] = STRONG_RUST[:3]
    pixels[4, 6] = FAINT_RUST[:3]
    return pixels


@pytest.fixture
def rust_patch_png(rust_patch_rgb) -> bytes:
    return png_bytes(rust_patch_rgb)


@pytest.fixture
def rust_patch_data_url(rust_patch_png) -> str:
    return "data:image/png;base64," + base64.b64encode(rust_patch_png).decode("ascii")
