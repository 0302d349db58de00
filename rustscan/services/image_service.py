from pathlib import Path
from typing import Iterable, Iterator, Union
import numpy as np

from ..models.image_buffer import ImageBuffer
from ..repositories.image_repository import ImageRepository


class ImageService:
    """Decoding and I/O helpers. No detection logic."""
    def __init__(self):
        self.image_repository = ImageRepository()

    def create_image(self, pixels: np.ndarray) -> ImageBuffer:
        return self.image_repository.create_image(pixels)

    def load(self, path: str | Path) -> ImageBuffer:
        """Load a single image from disk into an RGBA ImageBuffer."""
        return self.image_repository.load(path)

    def decode_upload(self, payload: Union[bytes, str]) -> ImageBuffer:
        """
        Accept either raw encoded bytes (file upload) or a base64 data URL
        (what a browser file reader produces).
        """
        if isinstance(payload, str):
            return self.image_repository.decode_data_url(payload)
        return self.image_repository.decode(payload)

    def stream_gallery(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[tuple[Path, ImageBuffer]]:
        """
        Yield images lazily instead of returning a gigantic list.
        """
        return self.image_repository.iter_dir(folder,
                                              recursive=recursive,
                                              exts=exts)

    def is_supported(self, filename: str) -> bool:
        return Path(filename).suffix.lower() in self.image_repository.VALID_EXTS

    def save(self, pixels: np.ndarray, path: Union[str, Path]) -> None:
        self.image_repository.save(pixels, path)

    def get_image_dimensions(self, img: ImageBuffer):
        return self.image_repository.retrieve_image_dimensions(img)
