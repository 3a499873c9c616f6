"""
Photo Repair test configuration

Fixtures for the repair pipeline tests:
- settings pointing at temporary upload/artifact directories
- generated JPEG/PNG images
- stub analysis clients standing in for the external service
"""

import os
import sys
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

# Add backend directory to the Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from photo_repair.analysis_client import AnalysisClient, EditedImage, TextAdvice
from photo_repair.config import RepairSettings
from photo_repair.errors import ExternalServiceError


# ============================================
# Image helpers
# ============================================

def make_image_bytes(width: int, height: int, fmt: str = "JPEG", mode: str = "RGB", **save_kwargs) -> bytes:
    """Generate an image with a gradient so encoders have something to work on."""
    img = Image.new(mode, (width, height))
    pixels = img.load()
    for x in range(0, width, max(1, width // 64)):
        for y in range(0, height, max(1, height // 64)):
            value = (x * 255 // max(1, width), y * 255 // max(1, height), 128)
            if mode == "RGBA":
                value = value + (200,)
            pixels[x, y] = value
    output = BytesIO()
    img.save(output, format=fmt, **save_kwargs)
    return output.getvalue()


def image_size(data: bytes):
    with Image.open(BytesIO(data)) as img:
        return img.size


# ============================================
# Stub analysis clients
# ============================================

class StubClient(AnalysisClient):
    """Analysis client that never touches the network."""

    def __init__(self, outcome=None, error: Exception = None):
        self.outcome = outcome if outcome is not None else TextAdvice("restore plan X")
        self.error = error
        self.calls = []
        self.closed = False

    async def analyze(self, payload):
        self.calls.append(payload)
        if self.error is not None:
            raise self.error
        return self.outcome

    async def close(self):
        self.closed = True


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def settings(tmp_path):
    return RepairSettings(
        api_key="test-key",
        upload_dir=tmp_path / "uploads",
        artifact_dir=tmp_path / "processed",
        environment="development",
    )


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes(640, 480)


@pytest.fixture(scope="session")
def large_jpeg_bytes():
    """A noisy 2000x1500 JPEG of a few megabytes, like a phone photo."""
    img = Image.frombytes("RGB", (2000, 1500), os.urandom(2000 * 1500 * 3))
    output = BytesIO()
    img.save(output, format="JPEG", quality=95)
    return output.getvalue()


@pytest.fixture
def stub_client():
    return StubClient()


@pytest.fixture
def failing_client():
    return StubClient(error=ExternalServiceError(503, "Service Unavailable"))


@pytest.fixture
def timeout_client():
    return StubClient(error=ExternalServiceError(504, "Request to analysis service timed out"))


@pytest.fixture
def edit_client():
    return StubClient(outcome=EditedImage(data=make_image_bytes(3000, 1000), note="restored"))


def transient_files(settings):
    return list(settings.upload_dir.iterdir()) if settings.upload_dir.exists() else []


def artifact_files(settings):
    return list(settings.artifact_dir.iterdir()) if settings.artifact_dir.exists() else []
