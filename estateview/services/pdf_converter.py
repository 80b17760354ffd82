from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Final

import pypdfium2 as pdfium
from PIL import Image

RENDER_DPI: Final[int] = 150


class PDFConversionError(Exception):
    """Raised when a PDF page cannot be rasterised."""


@dataclass(frozen=True)
class PDFRenderResult:
    """First page of a PDF rendered to a PIL image."""

    image: Image.Image
    had_multiple_pages: bool


def render_first_page(raw_bytes: bytes, dpi: int = RENDER_DPI) -> PDFRenderResult:
    """Rasterise the first page of a PDF, e.g. an uploaded floor plan."""
    try:
        with io.BytesIO(raw_bytes) as buffer:
            pdf = pdfium.PdfDocument(buffer)
            try:
                if len(pdf) == 0:
                    raise PDFConversionError("Provided PDF has no pages.")

                page = pdf[0]
                bitmap = page.render(scale=dpi / 72.0)
                image = bitmap.to_pil().copy()
                had_multiple_pages = len(pdf) > 1
                bitmap.close()
                page.close()
            finally:
                pdf.close()
    except (pdfium.PdfiumError, ValueError) as exc:
        raise PDFConversionError("PDFium failed to rasterize the document.") from exc

    return PDFRenderResult(image=image, had_multiple_pages=had_multiple_pages)
