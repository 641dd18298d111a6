"""Asynchronous facade over the blocking PDF loader and field importer."""

from __future__ import annotations

import asyncio

from formsign.model.document import PdfDocument
from formsign.model.field import FieldSchema
from formsign.pdf.importer import extract_field_schema
from formsign.pdf.loader import load_pdf
from formsign.state.annotations import AnnotationsMap, initialize


class PdfEngine:
    """Runs PyMuPDF and pypdf work off the event loop."""

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout

    async def load_document(self, source: str) -> PdfDocument:
        return await asyncio.to_thread(load_pdf, source, self._timeout)

    async def extract_field_schema(self, document: PdfDocument) -> FieldSchema:
        return await asyncio.to_thread(extract_field_schema, document)

    async def initialize_annotations(self, document: PdfDocument, schema: FieldSchema) -> AnnotationsMap:
        del document
        return initialize(schema)
