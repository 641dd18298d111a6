"""Export a completed copy: field values via pypdf, signatures via a reportlab overlay."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping
from io import BytesIO
import logging
from pathlib import Path

from pypdf import PdfReader, PdfWriter
from pypdf.generic import BooleanObject, NameObject
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from formsign.model.document import PdfDocument
from formsign.model.field import FieldObject, FieldSchema, FieldType
from formsign.model.signature import Signature
from formsign.state.annotations import AnnotationsMap

logger = logging.getLogger(__name__)


class PdfWriteError(RuntimeError):
    """Raised when output generation fails."""


def write_completed_pdf(
    document: PdfDocument,
    schema: FieldSchema,
    annotations: AnnotationsMap,
    signatures: Mapping[str, Signature],
    output_path: str | Path,
) -> None:
    output = Path(output_path)

    try:
        reader = PdfReader(BytesIO(document.data))
        writer = PdfWriter(clone_from=reader)

        values_by_page = _values_by_page(schema, annotations)
        if values_by_page and "/AcroForm" in writer._root_object:
            for page_index, values in values_by_page.items():
                writer.update_page_form_field_values(
                    writer.pages[page_index], values, auto_regenerate=False
                )
            writer._root_object["/AcroForm"][NameObject("/NeedAppearances")] = BooleanObject(True)

        placements = _signature_placements(schema, signatures)
        if placements:
            overlay_reader = PdfReader(_build_signature_overlay(reader, placements))
            for page_index in placements:
                writer.pages[page_index].merge_page(overlay_reader.pages[page_index])

        with output.open("wb") as handle:
            writer.write(handle)
    except Exception as exc:
        raise PdfWriteError(f"Failed to write output PDF: {output}") from exc

    logger.info("Wrote completed copy of %s to %s", document.source, output)


def _values_by_page(schema: FieldSchema, annotations: AnnotationsMap) -> dict[int, dict[str, str]]:
    grouped: dict[int, dict[str, str]] = defaultdict(dict)
    for field in schema.all_fields():
        entry = annotations.get(field.id)
        if entry is None or field.field_type is FieldType.SIGNATURE:
            continue
        value = entry.value
        if field.field_type is FieldType.CHECKBOX:
            value = f"/{value.lstrip('/') or 'Off'}"
        grouped[field.page_index][field.name] = value
    return dict(grouped)


def _signature_placements(
    schema: FieldSchema,
    signatures: Mapping[str, Signature],
) -> dict[int, list[tuple[FieldObject, Signature]]]:
    grouped: dict[int, list[tuple[FieldObject, Signature]]] = defaultdict(list)
    for name, signature in signatures.items():
        for field in schema.get(name, ()):
            grouped[field.page_index].append((field, signature))
    return dict(grouped)


def _build_signature_overlay(
    reader: PdfReader,
    placements: dict[int, list[tuple[FieldObject, Signature]]],
) -> BytesIO:
    buffer = BytesIO()

    first_page = reader.pages[0]
    report = canvas.Canvas(
        buffer,
        pagesize=(float(first_page.mediabox.width), float(first_page.mediabox.height)),
    )

    for page_index, page in enumerate(reader.pages):
        report.setPageSize((float(page.mediabox.width), float(page.mediabox.height)))

        for field, signature in placements.get(page_index, []):
            report.drawImage(
                ImageReader(BytesIO(signature.image_bytes())),
                field.x,
                field.y,
                width=field.width,
                height=field.height,
                preserveAspectRatio=True,
                anchor="c",
                mask="auto",
            )

        report.showPage()

    report.save()
    buffer.seek(0)
    return buffer
