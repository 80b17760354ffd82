from __future__ import annotations

import io
from typing import Final, Optional

from flask import current_app
from PIL import Image, UnidentifiedImageError
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from estateview.domain.documents import ProcessedImage
from estateview.services.image_utils import encode_jpeg, fit_within, to_data_uri
from estateview.services.pdf_converter import PDFConversionError, render_first_page

_ALLOWED_EXTENSIONS: Final[set[str]] = {"png", "jpg", "jpeg", "webp", "pdf"}


class ImageError(Exception):
    """Base exception raised for view image issues."""


class UnsupportedImageError(ImageError):
    """Raised when an uploaded file cannot be accepted."""


class ImageDecodeError(ImageError):
    """Raised when an uploaded file cannot be decoded as an image."""


class ImageService:
    """Turn uploaded view images into bounded JPEG data URIs."""

    def __init__(
        self,
        max_upload_bytes: int,
        max_width: int,
        max_height: int,
        jpeg_quality: int,
    ) -> None:
        self._max_upload_bytes = max_upload_bytes
        self._max_width = max_width
        self._max_height = max_height
        self._jpeg_quality = jpeg_quality

    @classmethod
    def from_app_config(cls) -> "ImageService":
        config = current_app.config
        return cls(
            max_upload_bytes=int(config["MAX_UPLOAD_BYTES"]),
            max_width=int(config["MAX_IMAGE_WIDTH"]),
            max_height=int(config["MAX_IMAGE_HEIGHT"]),
            jpeg_quality=int(config["IMAGE_JPEG_QUALITY"]),
        )

    def process_upload(self, file_storage: Optional[FileStorage]) -> ProcessedImage:
        if not file_storage or not file_storage.filename:
            raise UnsupportedImageError("No image was provided.")
        return self.process_bytes(file_storage.read(), file_storage.filename)

    def process_bytes(self, content: bytes, filename: str) -> ProcessedImage:
        """
        Decode, downscale and re-encode an image.

        PDFs are accepted too; only their first page is used.
        """
        original_filename = secure_filename(filename)
        extension = self._extract_extension(original_filename)
        if extension not in _ALLOWED_EXTENSIONS:
            raise UnsupportedImageError("Unsupported image type.")
        if not content:
            raise UnsupportedImageError("Uploaded file is empty.")
        if len(content) > self._max_upload_bytes:
            raise UnsupportedImageError(
                f"File size exceeds {self._max_upload_bytes // (1024 * 1024)}MB. "
                "Please choose a smaller image."
            )

        warnings: list[str] = []
        if extension == "pdf":
            try:
                rendered = render_first_page(content)
            except PDFConversionError as error:
                raise ImageDecodeError(str(error)) from error
            image = rendered.image
            if rendered.had_multiple_pages:
                warnings.append("PDF contains multiple pages. Only the first page was used.")
        else:
            image = self._open_image(content)

        with image:
            original_size = image.size
            resized = fit_within(image, self._max_width, self._max_height)
            encoded = encode_jpeg(resized, self._jpeg_quality)
            width, height = resized.size

        current_app.logger.info(
            f"Processed image {original_filename}: {original_size[0]}x{original_size[1]} "
            f"-> {width}x{height}, {len(encoded)} bytes"
        )
        return ProcessedImage(
            original_filename=original_filename,
            data_uri=to_data_uri(encoded),
            width=width,
            height=height,
            was_resized=(width, height) != original_size,
            warnings=warnings,
        )

    @staticmethod
    def _open_image(content: bytes) -> Image.Image:
        try:
            image = Image.open(io.BytesIO(content))
            image.load()
            return image
        except (UnidentifiedImageError, OSError, ValueError) as error:
            raise ImageDecodeError("Failed to load the image file.") from error

    @staticmethod
    def _extract_extension(filename: str) -> str:
        if "." not in filename:
            return ""
        return filename.rsplit(".", 1)[1].lower()
