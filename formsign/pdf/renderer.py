"""PDF rendering helpers using PyMuPDF."""

from __future__ import annotations

import fitz
from PySide6.QtGui import QImage

from formsign.model.document import PdfDocument
from formsign.model.signature import Signature


class PdfRenderError(RuntimeError):
    """Raised when a page or signature image cannot be rendered."""


def render_page_image(document: PdfDocument, page: int, zoom: float = 1.25) -> QImage:
    """Render the 1-based ``page`` without widget annotations."""
    if page < 1 or page > document.page_count:
        raise PdfRenderError(f"Page out of range: {page}")

    try:
        pdf_page = document.handle.load_page(page - 1)
        pix = pdf_page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False, annots=False)
    except Exception as exc:
        raise PdfRenderError(f"Failed to render page {page}") from exc

    image = QImage(pix.samples, pix.width, pix.height, pix.stride, QImage.Format_RGB888)
    return image.copy()


def page_size(document: PdfDocument, page: int) -> tuple[float, float]:
    rect = document.handle.load_page(page - 1).rect
    return float(rect.width), float(rect.height)


def signature_image(signature: Signature) -> QImage:
    image = QImage.fromData(signature.image_bytes(), "PNG")
    if image.isNull():
        raise PdfRenderError(f"Unreadable signature image for {signature.field_name}")
    return image
