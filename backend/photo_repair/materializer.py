"""
Result Materializer

Turns an analysis outcome into a finished JPEG artifact:
- TextAdvice   -> enhance the uploaded image locally
- EditedImage  -> enhance the image returned by the analysis service

Artifacts are kept in an append-only store and served by filename.
There is no eviction; the store grows until cleaned up externally.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional, Tuple, Union

from PIL import Image, ImageEnhance, ImageFilter, UnidentifiedImageError

from .analysis_client import AnalysisOutcome, EditedImage, TextAdvice
from .errors import NotFoundError, ProcessingError
from .intake import UploadedImage
from .optimizer import fit_within, to_rgb

logger = logging.getLogger(__name__)

ARTIFACT_URL_PREFIX = "/api/artifacts"

_ARTIFACT_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


@dataclass
class ProcessedArtifact:
    """A finished image in the artifact store."""
    filename: str
    path: Path
    width: int
    height: int
    size_bytes: int
    analysis: str = ""

    @property
    def url(self) -> str:
        return f"{ARTIFACT_URL_PREFIX}/{self.filename}"


# ============================================
# Artifact Store
# ============================================


class ArtifactStore:
    """
    Durable, append-only store for processed images.

    Store structure:
    artifact_dir/
    ├── processed-<uuid>.jpg
    └── ...
    """

    def __init__(self, artifact_dir: Path):
        self.artifact_dir = Path(artifact_dir)
        self.artifact_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"[ArtifactStore] Artifact directory: {self.artifact_dir}")

    @staticmethod
    def new_filename() -> str:
        return f"processed-{uuid.uuid4().hex}.jpg"

    def _resolve(self, filename: str) -> Optional[Path]:
        """Map a filename to a path inside the store, or None if unsafe."""
        if not _ARTIFACT_NAME.match(filename or "") or ".." in filename:
            return None
        return self.artifact_dir / filename

    def save(self, data: bytes) -> Tuple[str, Path]:
        """Write bytes under a fresh unique filename."""
        filename = self.new_filename()
        path = self.artifact_dir / filename
        try:
            path.write_bytes(data)
        except OSError as e:
            raise ProcessingError(f"Image processing failed: {e}") from e
        return filename, path

    def load(self, filename: str) -> bytes:
        """
        Read an artifact.

        Raises:
            NotFoundError: no artifact with that name.
        """
        path = self._resolve(filename)
        if path is None or not path.is_file():
            raise NotFoundError("The requested processed image does not exist")
        return path.read_bytes()

    def get_stats(self) -> dict:
        files = [p for p in self.artifact_dir.iterdir() if p.is_file()]
        total_size = sum(p.stat().st_size for p in files)
        return {
            "total_artifacts": len(files),
            "total_size_bytes": total_size,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
        }


# ============================================
# Materializer
# ============================================


class ResultMaterializer:
    """Applies the local enhancement pass and persists the result."""

    def __init__(
        self,
        store: ArtifactStore,
        max_dimension: int = 2048,
        quality: int = 95,
        brightness: float = 1.1,
        saturation: float = 1.2,
    ):
        self.store = store
        self.max_dimension = max_dimension
        self.quality = quality
        self.brightness = brightness
        self.saturation = saturation

    def enhance(self, source: Union[Path, bytes]) -> Tuple[bytes, int, int]:
        """Resize, sharpen and adjust brightness/saturation. Returns JPEG bytes and size."""
        try:
            opened = Image.open(BytesIO(source) if isinstance(source, bytes) else source)
            with opened as img:
                img.load()
                result = fit_within(to_rgb(img), self.max_dimension)
                result = result.filter(ImageFilter.SHARPEN)
                result = ImageEnhance.Brightness(result).enhance(self.brightness)
                result = ImageEnhance.Color(result).enhance(self.saturation)

            output = BytesIO()
            result.save(output, format="JPEG", quality=self.quality)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise ProcessingError(f"Image processing failed: {e}") from e

        width, height = result.size
        return output.getvalue(), width, height

    def materialize(self, image: UploadedImage, outcome: AnalysisOutcome) -> ProcessedArtifact:
        """Build and store the artifact for one request."""
        if isinstance(outcome, EditedImage):
            source: Union[Path, bytes] = outcome.data
            origin = outcome.source_url or "edited image"
        elif isinstance(outcome, TextAdvice):
            source = image.path
            origin = image.path.name
        else:
            raise ProcessingError(f"Unsupported analysis outcome: {type(outcome).__name__}")

        data, width, height = self.enhance(source)
        filename, path = self.store.save(data)

        logger.info(f"[Materializer] {origin} -> {filename} ({width}x{height}, {len(data)} bytes)")
        return ProcessedArtifact(
            filename=filename,
            path=path,
            width=width,
            height=height,
            size_bytes=len(data),
            analysis=outcome.analysis,
        )
