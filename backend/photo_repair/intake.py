"""
Image Intake

Validates a single uploaded image and holds it in the transient store for the
duration of one request.

Transient store layout:
upload_dir/
├── 3f2a...c1-1718000000000.jpg
└── ...
"""

import asyncio
import logging
import re
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

from .errors import PayloadTooLargeError, ProcessingError, ValidationError

logger = logging.getLogger(__name__)

_SAFE_SUFFIX = re.compile(r"^\.[A-Za-z0-9]{1,10}$")


@dataclass
class UploadedImage:
    """Handle to an upload sitting in the transient store."""
    path: Path
    original_filename: str
    content_type: str
    size_bytes: int
    discarded: bool = False


class TransientStore:
    """
    Short-lived holding area for in-flight uploads.

    Usage:
        async with store.hold(filename, content_type, data) as image:
            ...  # image.path exists here and is removed afterwards
    """

    def __init__(self, upload_dir: Path, max_upload_bytes: int = 10 * 1024 * 1024):
        self.upload_dir = Path(upload_dir)
        self.max_upload_bytes = max_upload_bytes
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def validate(self, content_type: Optional[str], data: bytes) -> None:
        """Raise if the upload must be rejected. Writes nothing."""
        if not content_type or not content_type.lower().startswith("image/"):
            raise ValidationError("Only image files are allowed!")
        if len(data) > self.max_upload_bytes:
            limit_mb = self.max_upload_bytes // (1024 * 1024)
            raise PayloadTooLargeError(f"Image file must be smaller than {limit_mb}MB")
        if not data:
            raise ValidationError("Uploaded image is empty")

    def _unique_name(self, original_filename: str) -> str:
        suffix = Path(original_filename or "").suffix.lower()
        if not _SAFE_SUFFIX.match(suffix):
            suffix = ""
        return f"{uuid.uuid4().hex}-{int(time.time() * 1000)}{suffix}"

    def accept(self, original_filename: str, content_type: Optional[str], data: bytes) -> UploadedImage:
        """Validate the upload and write it under a collision-free name."""
        self.validate(content_type, data)

        path = self.upload_dir / self._unique_name(original_filename)
        try:
            path.write_bytes(data)
        except OSError as e:
            raise ProcessingError(f"Failed to store upload: {e}") from e

        logger.info(f"[Intake] Stored {original_filename!r} as {path.name} ({len(data)} bytes)")
        return UploadedImage(
            path=path,
            original_filename=original_filename,
            content_type=content_type,
            size_bytes=len(data),
        )

    def discard(self, image: UploadedImage) -> bool:
        """
        Remove an upload from the transient store.

        Best-effort: failures are logged, never raised. Returns True when this
        call removed the file.
        """
        if image.discarded:
            return False
        image.discarded = True
        try:
            image.path.unlink()
            logger.debug(f"[Intake] Removed transient file {image.path.name}")
            return True
        except FileNotFoundError:
            logger.warning(f"[Intake] Transient file already gone: {image.path.name}")
        except OSError as e:
            logger.warning(f"[Intake] Failed to remove {image.path.name}: {e}")
        return False

    @asynccontextmanager
    async def hold(
        self,
        original_filename: str,
        content_type: Optional[str],
        data: bytes,
    ) -> AsyncIterator[UploadedImage]:
        """Accept an upload and guarantee it is discarded exactly once."""
        image = await asyncio.to_thread(self.accept, original_filename, content_type, data)
        try:
            yield image
        finally:
            self.discard(image)

    def count(self) -> int:
        """Number of uploads currently held."""
        return sum(1 for p in self.upload_dir.iterdir() if p.is_file())
