"""
Image Optimizer

Downsamples and re-encodes an upload so the payload sent to the analysis
service stays small:
- Transparency flattened onto white
- Fit inside a square bound, never upscaled
- Fixed-quality JPEG
"""

import base64
import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Union

from PIL import Image, UnidentifiedImageError

from .errors import ProcessingError

logger = logging.getLogger(__name__)


@dataclass
class OptimizedPayload:
    """Re-encoded image ready for transmission."""
    data: bytes
    width: int
    height: int
    media_type: str = "image/jpeg"

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.to_base64()}"


def to_rgb(img: Image.Image) -> Image.Image:
    """Convert to RGB, compositing any alpha channel onto white."""
    if img.mode == "P":
        img = img.convert("RGBA")
    if img.mode in ("RGBA", "LA"):
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.getchannel("A"))
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def fit_within(img: Image.Image, max_dimension: int) -> Image.Image:
    """Resize to fit a max_dimension square, keeping aspect ratio. Never upscales."""
    width, height = img.size
    if width <= max_dimension and height <= max_dimension:
        return img
    ratio = min(max_dimension / width, max_dimension / height)
    new_size = (max(1, round(width * ratio)), max(1, round(height * ratio)))
    return img.resize(new_size, Image.Resampling.LANCZOS)


class ImageOptimizer:
    """Bounds image dimensions and encodes JPEG at a fixed quality."""

    def __init__(self, max_dimension: int = 1024, quality: int = 85):
        self.max_dimension = max_dimension
        self.quality = quality

    def optimize(self, source: Union[Path, bytes]) -> OptimizedPayload:
        """
        Re-encode an image from a path or raw bytes.

        Raises:
            ProcessingError: the source is not a decodable image.
        """
        try:
            opened = Image.open(BytesIO(source) if isinstance(source, bytes) else source)
            with opened as img:
                img.load()
                original_size = img.size
                resized = fit_within(to_rgb(img), self.max_dimension)

                output = BytesIO()
                resized.save(output, format="JPEG", quality=self.quality)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise ProcessingError(f"Failed to process image: {e}") from e

        width, height = resized.size
        logger.info(
            f"[Optimizer] {original_size[0]}x{original_size[1]} -> {width}x{height} "
            f"({output.tell()} bytes, q={self.quality})"
        )
        return OptimizedPayload(data=output.getvalue(), width=width, height=height)
