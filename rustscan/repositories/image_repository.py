from pathlib import Path
from typing import Union, Iterable, List, Iterator
import base64
import binascii
import logging
import os
import re
import numpy as np
import cv2
from PIL import Image as PILImage
from dotenv import load_dotenv

from ..models.image_buffer import ImageBuffer

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:image/[\w.+-]+;base64,(?P<payload>.+)$", re.DOTALL)


class ImageRepository:
    """
    Handles decoding to, and file I/O for, RGBA ImageBuffer entities.
    """
    def __init__(self):
        self.VALID_EXTS = {
            ext.strip().lower()
            for ext in os.getenv("VALID_IMAGE_EXTENSIONS", ".jpg,.jpeg,.png,.bmp,.tif,.tiff,.webp").split(",")
            if ext.strip()
        }

    # ---------- private helpers ----------
    @staticmethod
    def _to_rgba(arr: np.ndarray) -> np.ndarray:
        """
        OpenCV decode output (gray / BGR / BGRA; 8 bit, 16 bit or float) → RGBA uint8.
        Float samples are taken as [0, 1] intensities. Raises ValueError for
        layouts that cannot be mapped to RGBA.
        """
        if np.issubdtype(arr.dtype, np.floating):
            arr = np.nan_to_num(arr, nan=0.0, posinf=1.0, neginf=0.0)
            arr = np.rint(np.clip(arr, 0.0, 1.0) * 255.0).astype(np.uint8)
        elif np.issubdtype(arr.dtype, np.integer) and arr.dtype != np.uint8:
            arr = cv2.convertScaleAbs(arr, alpha=255.0 / np.iinfo(arr.dtype).max)
        elif arr.dtype != np.uint8:
            raise ValueError(f"Unsupported sample type {arr.dtype}")
        if arr.ndim == 3 and arr.shape[2] == 1:
            arr = np.ascontiguousarray(arr[:, :, 0])
        if arr.ndim not in (2, 3) or (arr.ndim == 3 and arr.shape[2] not in (3, 4)):
            raise ValueError(f"Unsupported image layout {arr.shape}")
        if arr.ndim == 2:
            return cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
        if arr.shape[2] == 4:
            return cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)
        return cv2.cvtColor(arr, cv2.COLOR_BGR2RGBA)

    # ---------- public API ----------
    @staticmethod
    def create_image(pixels: np.ndarray) -> ImageBuffer:
        return ImageBuffer.from_rgba(pixels)

    @staticmethod
    def retrieve_image_dimensions(img: ImageBuffer):
        return img.height, img.width

    def load(self, path: Union[str, Path]) -> ImageBuffer:
        path = Path(path)
        arr = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        if arr is None:
            raise FileNotFoundError(f"Image not found or unreadable: {path}")
        return ImageBuffer.from_rgba(self._to_rgba(arr))

    def decode(self, data: bytes) -> ImageBuffer:
        """Decode an encoded image (PNG, JPEG, ...) held in memory."""
        buf = np.frombuffer(data, dtype=np.uint8)
        arr = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED) if buf.size else None
        if arr is None:
            raise ValueError("Could not decode image data")
        return ImageBuffer.from_rgba(self._to_rgba(arr))

    def decode_data_url(self, data_url: str) -> ImageBuffer:
        """Decode a `data:image/<fmt>;base64,...` URL."""
        match = _DATA_URL_RE.match(data_url.strip())
        if match is None:
            raise ValueError("Not a base64 image data URL")
        try:
            raw = base64.b64decode(match.group("payload"), validate=True)
        except binascii.Error as err:
            raise ValueError(f"Invalid base64 payload: {err}") from err
        return self.decode(raw)

    @staticmethod
    def save(pixels: np.ndarray, path: Union[str, Path]) -> None:
        """Write an (H, W), (H, W, 3) or (H, W, 4) uint8 array to disk."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        PILImage.fromarray(np.ascontiguousarray(pixels)).save(path)

    def iter_dir(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[tuple[Path, ImageBuffer]]:
        """
        Yield (path, ImageBuffer) pairs one at a time, in sorted path order.
        Unreadable files are logged and skipped.
        """
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(folder)

        allowed = {e.lower() for e in (exts or self.VALID_EXTS)}
        pattern = "**/*" if recursive else "*"

        for p in sorted(folder.glob(pattern)):
            if p.suffix.lower() not in allowed or not p.is_file():
                logger.debug(f"Skipping {p}")
                continue
            try:
                img = self.load(p)
            except (FileNotFoundError, ValueError) as err:
                logger.warning(f"Skipping {p.name}: {err}")
                continue
            yield p, img

    def load_dir(
        self, folder: Union[str, Path], *, recursive=False, exts=None
    ) -> List[tuple[Path, ImageBuffer]]:
        return list(self.iter_dir(folder, recursive=recursive, exts=exts))
