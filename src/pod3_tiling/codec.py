"""
Raster codec - decode, crop, resize and encode with Pillow
"""

import io
import logging
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from ..common.errors import CodecDecodeFailed, CodecEncodeFailed

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)


class RasterCodec:
    """
    Thin wrapper around Pillow used by every renderer
    All methods are blocking and meant to run inside an executor
    """

    def __init__(self, compress_level: int = 9):
        self.compress_level = compress_level

    def decode(self, data: bytes) -> Image.Image:
        """
        Decode bytes into an RGBA image

        Animated inputs yield their first frame. EXIF orientation is applied.

        Raises:
            CodecDecodeFailed: if the bytes are not a readable image
        """
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
            image = ImageOps.exif_transpose(image)
            return image.convert("RGBA")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            logger.error(f"Error decoding image ({len(data)} bytes): {e}")
            raise CodecDecodeFailed(f"Could not decode image: {e}")

    def crop(self, image: Image.Image, box: Tuple[int, int, int, int]) -> Image.Image:
        return image.crop(box)

    def fit_square(self, image: Image.Image, size: int) -> Image.Image:
        """Cover a size x size square, cropping edges around the center"""
        return ImageOps.fit(
            image,
            (size, size),
            method=Image.LANCZOS,
            centering=(0.5, 0.5)
        )

    def fit_cell(self, image: Image.Image, size: Tuple[int, int]) -> Image.Image:
        """Contain image inside a cell on a transparent background"""
        if image.size == size:
            return image
        return ImageOps.pad(image, size, method=Image.LANCZOS, color=TRANSPARENT)

    def strip_alpha(self, image: Image.Image) -> Image.Image:
        return image.convert("RGB")

    def ensure_alpha(self, image: Image.Image) -> Image.Image:
        return image if image.mode == "RGBA" else image.convert("RGBA")

    def blank_canvas(self, width: int, height: int) -> Image.Image:
        return Image.new("RGBA", (width, height), TRANSPARENT)

    def encode_png(self, image: Image.Image) -> bytes:
        """
        Encode image as lossless PNG

        Raises:
            CodecEncodeFailed: if Pillow cannot write the image
        """
        buffer = io.BytesIO()
        try:
            image.save(buffer, format="PNG", compress_level=self.compress_level)
        except (OSError, ValueError) as e:
            logger.error(f"Error encoding PNG {image.size} {image.mode}: {e}")
            raise CodecEncodeFailed(f"Could not encode PNG: {e}")
        return buffer.getvalue()

    def ensure_png_with_alpha(self, data: bytes) -> bytes:
        """Re-encode arbitrary image bytes as an RGBA PNG"""
        return self.encode_png(self.ensure_alpha(self.decode(data)))
