"""
LectureSnap Backend - Image Capture & Compression
===================================================

What:  Turns user-supplied photos of whiteboards and slides into bounded-size
       JPEG data URLs, and keeps an ordered set of pages for one lecture.
How:   Pillow decodes the image, applies EXIF orientation, downsamples so the
       width never exceeds `max_width`, re-encodes as JPEG at a fixed quality
       and exposes the result as `data:image/jpeg;base64,...`.
Who:   LectureService (lecture creation) and the capture preview route.

Output contract:
    - width <= max_width (default 1024), aspect ratio preserved, never upscaled
    - always a decodable JPEG, whatever the input raster format was
    - the same data URL is both the preview and the model input

Validation order (cheapest first):
    1. Extension check: no bytes inspected
    2. Size check: empty and oversized files rejected
    3. Decode check: Pillow must be able to read the pixels
"""

import base64
import logging
import re
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import List, Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from app.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Raster formats a phone browser can hand over from camera or gallery
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp"}

JPEG_DATA_URL_PREFIX = "data:image/jpeg;base64,"

_DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")


def strip_data_url_prefix(value: str) -> str:
    """Returns the raw base64 payload of a data URL (or the input unchanged)."""
    return _DATA_URL_PREFIX.sub("", value.strip(), count=1)


def to_jpeg_data_url(jpeg_bytes: bytes) -> str:
    return JPEG_DATA_URL_PREFIX + base64.b64encode(jpeg_bytes).decode("ascii")


@dataclass(frozen=True)
class CompressedImage:
    """Result of one compression: JPEG bytes plus their data URL form."""

    data_url: str
    jpeg_bytes: bytes
    width: int
    height: int


@dataclass(frozen=True)
class CapturedImage:
    """
    One page of a capture session.

    `original` is what gets uploaded to storage; `compressed.data_url` is what
    gets sent to the model. Neither object outlives the request.
    """

    filename: str
    original: bytes
    compressed: CompressedImage

    @property
    def data_url(self) -> str:
        return self.compressed.data_url


class ImageProcessor:
    """
    Validates and compresses page images.

    Args:
        max_width:     Upper bound on the output width in pixels
        jpeg_quality:  Pillow JPEG quality (1-95); 70 matches a 0.7 canvas quality
        max_file_size: Per-page upload limit in bytes
    """

    def __init__(self, max_width: int = 1024, jpeg_quality: int = 70, max_file_size: int = 10_485_760):
        self.max_width = max_width
        self.jpeg_quality = jpeg_quality
        self.max_file_size = max_file_size

    def validate_extension(self, filename: str) -> str:
        """Returns the normalized extension. Raises ValidationError if not allowed."""
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="files",
                context={"extension": ext, "filename": filename},
            )
        return ext

    def validate_size(self, filename: str, content: bytes) -> None:
        if not content:
            raise ValidationError(
                message=f"'{filename}' is empty. Please capture the page again.",
                field="files",
            )
        if len(content) > self.max_file_size:
            max_mb = self.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=(
                    f"'{filename}' ({len(content) / (1024 * 1024):.1f}MB) is too large. "
                    f"Maximum is {max_mb:.0f}MB per page."
                ),
                field="files",
                context={"max_size_mb": max_mb, "actual_size": len(content)},
            )

    def validate_upload(self, filename: str, content: bytes) -> None:
        self.validate_extension(filename)
        self.validate_size(filename, content)

    def compress(self, content: bytes, filename: str = "image") -> CompressedImage:
        """
        Decode, downscale to at most `max_width` pixels wide, re-encode as JPEG.

        Raises:
            ValidationError: the bytes are not a decodable raster image
        """
        try:
            with Image.open(BytesIO(content)) as source:
                source.load()
                image = ImageOps.exif_transpose(source) or source
                image = image.convert("RGB")
        except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
            logger.warning("Could not decode %s: %s", filename, str(e))
            raise ValidationError(
                message=f"'{filename}' could not be read as an image. Please capture the page again.",
                field="files",
                context={"filename": filename, "error": str(e)},
            )

        width, height = image.size
        if width > self.max_width:
            scale = self.max_width / width
            target = (self.max_width, max(1, round(height * scale)))
            image = image.resize(target, Image.Resampling.LANCZOS)

        buffer = BytesIO()
        image.save(buffer, format="JPEG", quality=self.jpeg_quality)
        jpeg_bytes = buffer.getvalue()

        logger.debug(
            "Compressed %s: %dx%d -> %dx%d (%d -> %d bytes)",
            filename, width, height, image.width, image.height, len(content), len(jpeg_bytes),
        )
        return CompressedImage(
            data_url=to_jpeg_data_url(jpeg_bytes),
            jpeg_bytes=jpeg_bytes,
            width=image.width,
            height=image.height,
        )


class CaptureSession:
    """
    Ordered pages of one lecture, accumulated before generation.

    Pages keep the order they were added in; removing a page shifts the
    later pages down by one, as in the capture screen's page strip.
    """

    def __init__(self, processor: ImageProcessor, max_pages: int = 10):
        self.processor = processor
        self.max_pages = max_pages
        self._pages: List[CapturedImage] = []

    def __len__(self) -> int:
        return len(self._pages)

    @property
    def pages(self) -> List[CapturedImage]:
        return list(self._pages)

    @property
    def data_urls(self) -> List[str]:
        return [page.data_url for page in self._pages]

    def add_page(self, filename: Optional[str], content: bytes) -> CapturedImage:
        """Validate and compress one page, then append it."""
        if len(self._pages) >= self.max_pages:
            raise ValidationError(
                message=f"A lecture can have at most {self.max_pages} pages.",
                field="files",
                context={"max_pages": self.max_pages},
            )
        name = filename or f"page-{len(self._pages) + 1}.jpg"
        self.processor.validate_upload(name, content)
        page = CapturedImage(
            filename=name,
            original=content,
            compressed=self.processor.compress(content, name),
        )
        self._pages.append(page)
        return page

    def remove_page(self, index: int) -> CapturedImage:
        if not 0 <= index < len(self._pages):
            raise ValidationError(
                message=f"There is no page {index + 1} to remove.",
                field="index",
                context={"index": index, "page_count": len(self._pages)},
            )
        return self._pages.pop(index)

    def require_pages(self) -> None:
        if not self._pages:
            raise ValidationError(
                message="Capture at least one page before generating notes.",
                field="files",
            )
