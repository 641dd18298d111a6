"""PDF loading helpers."""

from __future__ import annotations

import logging
from pathlib import Path

import fitz
import requests

from formsign.config import settings
from formsign.model.document import PdfDocument

logger = logging.getLogger(__name__)


class PdfLoadError(RuntimeError):
    """Raised when a PDF cannot be fetched or opened."""


def fetch_pdf_bytes(source: str, timeout: float | None = None) -> bytes:
    if not source:
        raise PdfLoadError("No URL provided.")

    if source.startswith(("http://", "https://")):
        try:
            response = requests.get(source, timeout=timeout or settings.request_timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise PdfLoadError(f"Failed to download PDF: {source}") from exc
        return response.content

    path = Path(source.removeprefix("file://"))
    if not path.exists():
        raise PdfLoadError(f"File not found: {path}")
    try:
        return path.read_bytes()
    except OSError as exc:
        raise PdfLoadError(f"Failed to read PDF: {path}") from exc


def open_pdf(source: str, data: bytes) -> PdfDocument:
    try:
        handle = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise PdfLoadError(f"Failed to open PDF: {source}") from exc

    if handle.page_count == 0:
        handle.close()
        raise PdfLoadError(f"PDF has no pages: {source}")

    logger.debug("Opened %s with %s page(s)", source, handle.page_count)
    return PdfDocument(source=source, data=data, handle=handle)


def load_pdf(source: str, timeout: float | None = None) -> PdfDocument:
    return open_pdf(source, fetch_pdf_bytes(source, timeout=timeout))
