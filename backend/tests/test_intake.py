"""
Image intake tests

Run:
    cd backend
    pytest tests/test_intake.py -v
"""

import pytest

from photo_repair.errors import PayloadTooLargeError, ValidationError
from photo_repair.intake import TransientStore


@pytest.fixture
def store(tmp_path):
    return TransientStore(tmp_path / "uploads", max_upload_bytes=1024 * 1024)


class TestAccept:
    """Validation and transient write"""

    def test_accept_writes_file(self, store, jpeg_bytes):
        image = store.accept("holiday.jpg", "image/jpeg", jpeg_bytes)

        assert image.path.exists()
        assert image.path.read_bytes() == jpeg_bytes
        assert image.original_filename == "holiday.jpg"
        assert image.size_bytes == len(jpeg_bytes)
        assert image.path.suffix == ".jpg"

    def test_accept_generates_unique_names(self, store, jpeg_bytes):
        first = store.accept("a.jpg", "image/jpeg", jpeg_bytes)
        second = store.accept("a.jpg", "image/jpeg", jpeg_bytes)

        assert first.path != second.path
        assert store.count() == 2

    @pytest.mark.parametrize("content_type", ["text/plain", "application/pdf", "", None])
    def test_rejects_non_image_without_leftovers(self, store, content_type):
        with pytest.raises(ValidationError):
            store.accept("notes.jpg", content_type, b"just some text")

        assert store.count() == 0

    def test_rejects_oversized_upload(self, store):
        data = b"\xff" * (store.max_upload_bytes + 1)

        with pytest.raises(PayloadTooLargeError) as exc_info:
            store.accept("huge.jpg", "image/jpeg", data)

        assert exc_info.value.status_code == 413
        assert store.count() == 0

    def test_accepts_upload_at_exact_limit(self, store):
        data = b"\xff" * store.max_upload_bytes
        image = store.accept("edge.jpg", "image/jpeg", data)

        assert image.path.exists()

    def test_rejects_empty_upload(self, store):
        with pytest.raises(ValidationError):
            store.accept("empty.jpg", "image/jpeg", b"")

    def test_drops_unsafe_suffix(self, store, jpeg_bytes):
        image = store.accept("photo.j/../pg", "image/jpeg", jpeg_bytes)

        assert image.path.parent == store.upload_dir
        assert image.path.suffix == ""


class TestDiscard:
    """Transient cleanup"""

    def test_discard_removes_once(self, store, jpeg_bytes):
        image = store.accept("a.png", "image/png", jpeg_bytes)

        assert store.discard(image) is True
        assert not image.path.exists()
        assert store.discard(image) is False

    def test_discard_missing_file_does_not_raise(self, store, jpeg_bytes):
        image = store.accept("a.png", "image/png", jpeg_bytes)
        image.path.unlink()

        assert store.discard(image) is False

    @pytest.mark.asyncio
    async def test_hold_cleans_up_on_success(self, store, jpeg_bytes):
        async with store.hold("a.jpg", "image/jpeg", jpeg_bytes) as image:
            assert image.path.exists()

        assert not image.path.exists()
        assert image.discarded

    @pytest.mark.asyncio
    async def test_hold_cleans_up_on_error(self, store, jpeg_bytes):
        with pytest.raises(RuntimeError):
            async with store.hold("a.jpg", "image/jpeg", jpeg_bytes) as image:
                raise RuntimeError("boom")

        assert not image.path.exists()
        assert store.count() == 0
