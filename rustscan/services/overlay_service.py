import base64
import os
from io import BytesIO
from typing import Tuple
import numpy as np
from PIL import Image as PILImage
from dotenv import load_dotenv

from ..models.analysis_result import AnalysisResult
from ..models.errors import DimensionMismatchError
from ..models.image_buffer import ImageBuffer

# Load environment variables
load_dotenv()

DOWNLOAD_NAME = "rust_analysis.png"


def _parse_color(raw: str) -> Tuple[int, int, int]:
    r, g, b = (int(c) for c in raw.split(","))
    return r, g, b


class OverlayService:
    """
    Renders detection results for result consumers.

    • overlay_layer : RGBA layer, rust colour where mask == 1, transparent elsewhere
    • compose       : original image with the layer alpha-blended on top
    • PNG encoding  : bytes or data URL, ready for download / JSON responses
    """

    def __init__(self):
        self.color = _parse_color(os.getenv("OVERLAY_COLOR", "249,115,22"))  # orange
        self.alpha = int(os.getenv("OVERLAY_ALPHA", "128"))

    @staticmethod
    def _check(img: ImageBuffer, result: AnalysisResult) -> None:
        if (img.width, img.height) != (result.width, result.height):
            raise DimensionMismatchError(
                f"Result is {result.width}x{result.height} but image is {img.width}x{img.height}"
            )

    def overlay_layer(self, result: AnalysisResult) -> np.ndarray:
        """(H, W, 4) uint8 overlay on its own."""
        layer = np.zeros((result.height, result.width, 4), dtype=np.uint8)
        hit = result.mask_2d() > 0
        layer[hit] = (*self.color, self.alpha)
        return layer

    def compose(
        self,
        img: ImageBuffer,
        result: AnalysisResult,
        show_overlay: bool = True,
    ) -> np.ndarray:
        """
        Alpha-blend the overlay onto the image; returns a new (H, W, 4) array.
        With show_overlay=False the original pixels are returned unchanged.
        """
        self._check(img, result)
        base = img.as_array().copy()
        if not show_overlay:
            return base

        a = self.alpha / 255.0
        hit = result.mask_2d() > 0
        rgb = base[:, :, :3].astype("float32")
        rgb[hit] = rgb[hit] * (1.0 - a) + np.array(self.color, dtype="float32") * a
        base[:, :, :3] = np.rint(rgb).astype("uint8")
        return base

    @staticmethod
    def mask_to_pixels(result: AnalysisResult) -> np.ndarray:
        """Binary mask as an (H, W) 0/255 grayscale image."""
        return (result.mask_2d() > 0).astype("uint8") * 255

    @staticmethod
    def to_png_bytes(pixels: np.ndarray) -> bytes:
        buffer = BytesIO()
        PILImage.fromarray(np.ascontiguousarray(pixels)).save(buffer, format="PNG")
        return buffer.getvalue()

    def to_data_url(self, pixels: np.ndarray) -> str:
        encoded = base64.b64encode(self.to_png_bytes(pixels)).decode("utf-8")
        return f"data:image/png;base64,{encoded}"
