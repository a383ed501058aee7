"""
LectureSnap Backend - Image Capture & Compression Tests
=========================================================

What we test:
    ✅ Output width never exceeds the limit and aspect ratio is kept
    ✅ Output is always a decodable JPEG data URL, whatever the input format
    ✅ Small images are not upscaled
    ✅ Extension, empty, oversized and undecodable inputs are rejected
    ✅ CaptureSession keeps page order, removes pages, enforces the page limit
"""

import base64
from io import BytesIO

import pytest
from PIL import Image

from app.exceptions import ValidationError
from app.services.image_service import (
    CaptureSession,
    ImageProcessor,
    strip_data_url_prefix,
)


def make_image_bytes(size, fmt="PNG"):
    buffer = BytesIO()
    Image.new("RGB", size, (240, 240, 240)).save(buffer, format=fmt)
    return buffer.getvalue()


def decode_data_url(data_url: str) -> Image.Image:
    assert data_url.startswith("data:image/jpeg;base64,")
    return Image.open(BytesIO(base64.b64decode(strip_data_url_prefix(data_url))))


class TestCompression:

    def setup_method(self):
        self.processor = ImageProcessor(max_width=1024, jpeg_quality=70)

    def test_wide_image_is_downscaled_to_max_width(self, wide_png_bytes):
        """3000x2000 becomes 1024 wide with the height scaled proportionally."""
        result = self.processor.compress(wide_png_bytes, "board.png")

        assert result.width == 1024
        assert result.height == 683
        image = decode_data_url(result.data_url)
        assert image.format == "JPEG"
        assert image.size == (1024, 683)

    def test_narrow_image_keeps_its_size(self, png_bytes):
        result = self.processor.compress(png_bytes, "slide.png")

        assert (result.width, result.height) == (800, 600)
        assert decode_data_url(result.data_url).size == (800, 600)

    @pytest.mark.parametrize("fmt", ["PNG", "JPEG", "GIF", "BMP", "WEBP"])
    def test_any_raster_format_becomes_jpeg(self, fmt):
        content = make_image_bytes((1500, 500), fmt=fmt)

        result = self.processor.compress(content, f"page.{fmt.lower()}")

        assert result.width <= 1024
        assert decode_data_url(result.data_url).format == "JPEG"
        assert result.jpeg_bytes[:2] == b"\xff\xd8"

    def test_rgba_input_is_flattened(self):
        buffer = BytesIO()
        Image.new("RGBA", (300, 200), (10, 20, 30, 128)).save(buffer, format="PNG")

        result = self.processor.compress(buffer.getvalue(), "transparent.png")

        assert decode_data_url(result.data_url).mode == "RGB"

    def test_undecodable_bytes_raise_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            self.processor.compress(b"definitely not an image", "broken.jpg")
        assert "could not be read as an image" in exc_info.value.message


class TestUploadValidation:

    def setup_method(self):
        self.processor = ImageProcessor(max_file_size=1024 * 1024)

    def test_unsupported_extension(self, png_bytes):
        with pytest.raises(ValidationError) as exc_info:
            self.processor.validate_upload("notes.pdf", png_bytes)
        assert ".pdf" in exc_info.value.message

    def test_extension_check_is_case_insensitive(self, png_bytes):
        assert self.processor.validate_extension("BOARD.PNG") == ".png"

    def test_empty_file(self):
        with pytest.raises(ValidationError, match="empty"):
            self.processor.validate_upload("board.jpg", b"")

    def test_oversized_file(self):
        with pytest.raises(ValidationError, match="too large"):
            self.processor.validate_upload("board.jpg", b"\x00" * (1024 * 1024 + 1))


class TestCaptureSession:

    def setup_method(self):
        self.session = CaptureSession(ImageProcessor(), max_pages=3)

    def test_pages_keep_insertion_order(self, png_bytes, wide_png_bytes):
        self.session.add_page("first.png", png_bytes)
        self.session.add_page("second.png", wide_png_bytes)

        assert [page.filename for page in self.session.pages] == ["first.png", "second.png"]
        assert len(self.session.data_urls) == 2
        assert self.session.pages[1].original == wide_png_bytes

    def test_missing_filename_gets_page_number(self, png_bytes):
        page = self.session.add_page(None, png_bytes)
        assert page.filename == "page-1.jpg"

    def test_remove_page_shifts_later_pages(self, png_bytes):
        for name in ("a.png", "b.png", "c.png"):
            self.session.add_page(name, png_bytes)

        removed = self.session.remove_page(1)

        assert removed.filename == "b.png"
        assert [page.filename for page in self.session.pages] == ["a.png", "c.png"]

    def test_remove_missing_page(self):
        with pytest.raises(ValidationError):
            self.session.remove_page(0)

    def test_page_limit(self, png_bytes):
        for index in range(3):
            self.session.add_page(f"{index}.png", png_bytes)

        with pytest.raises(ValidationError, match="at most 3 pages"):
            self.session.add_page("extra.png", png_bytes)

    def test_empty_session_cannot_generate(self):
        with pytest.raises(ValidationError, match="at least one page"):
            self.session.require_pages()

    def test_strip_data_url_prefix(self):
        assert strip_data_url_prefix("data:image/png;base64,QUJD") == "QUJD"
        assert strip_data_url_prefix("QUJD") == "QUJD"
