from __future__ import annotations

import base64
import io
from typing import Final

from PIL import Image

JPEG_MIME_TYPE: Final[str] = "image/jpeg"


def fit_within(image: Image.Image, max_width: int, max_height: int) -> Image.Image:
    """
    Downscale an image to fit the bounds, keeping its aspect ratio.

    Images already inside the bounds are returned unchanged.
    """
    width, height = image.size
    scale = min(max_width / width, max_height / height, 1.0)
    if scale >= 1.0:
        return image
    target = (max(1, round(width * scale)), max(1, round(height * scale)))
    return image.resize(target, Image.Resampling.LANCZOS)


def encode_jpeg(image: Image.Image, quality: int) -> bytes:
    """Encode a PIL image as JPEG, flattening transparency onto white."""
    processed = image
    if processed.mode in ("RGBA", "LA", "P"):
        processed = processed.convert("RGBA")
        background = Image.new("RGB", processed.size, (255, 255, 255))
        background.paste(processed, mask=processed.getchannel("A"))
        processed = background
    elif processed.mode != "RGB":
        processed = processed.convert("RGB")

    buffer = io.BytesIO()
    processed.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


def to_data_uri(data: bytes, mime_type: str = JPEG_MIME_TYPE) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
