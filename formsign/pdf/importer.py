"""Extract the AcroForm field schema of a loaded PDF."""

from __future__ import annotations

from io import BytesIO
import logging

from pypdf import PdfReader
from pypdf.generic import DictionaryObject, IndirectObject

from formsign.model.document import PdfDocument
from formsign.model.field import FieldObject, FieldSchema, FieldType

logger = logging.getLogger(__name__)

_FIELD_TYPES = {
    "/Tx": FieldType.TEXT,
    "/Btn": FieldType.CHECKBOX,
    "/Ch": FieldType.CHOICE,
    "/Sig": FieldType.SIGNATURE,
}
_OFF_VALUES = {"", "/Off", "Off"}


class PdfImportError(RuntimeError):
    """Raised when form fields cannot be extracted."""


def extract_field_schema(document: PdfDocument) -> FieldSchema:
    fields: list[FieldObject] = []

    try:
        reader = PdfReader(BytesIO(document.data))
        for page_index, page in enumerate(reader.pages):
            annots = page.get("/Annots")
            if annots is None:
                continue
            for position, annot_ref in enumerate(annots.get_object()):
                annot = annot_ref.get_object()
                if annot.get("/Subtype") != "/Widget":
                    continue

                field = _field_from_widget(annot, _widget_id(annot_ref, page_index, position), page_index)
                if field is not None:
                    fields.append(field)
    except Exception as exc:
        raise PdfImportError(f"Failed to extract form fields from: {document.source}") from exc

    schema = FieldSchema(fields)
    logger.debug("Extracted %r from %s", schema, document.source)
    return schema


def _widget_id(annot_ref: object, page_index: int, position: int) -> str:
    if isinstance(annot_ref, IndirectObject):
        return f"{annot_ref.idnum}R"
    return f"p{page_index}a{position}"


def _field_from_widget(annot: DictionaryObject, widget_id: str, page_index: int) -> FieldObject | None:
    raw_type = _inherited(annot, "/FT")
    rect = annot.get("/Rect")
    name = _qualified_name(annot)
    if raw_type is None or rect is None or not name:
        return None

    field_type = _FIELD_TYPES.get(str(raw_type), FieldType.TEXT)
    llx, lly, urx, ury = (float(value) for value in rect)

    on_state = ""
    value = _inherited(annot, "/V")
    if field_type is FieldType.CHECKBOX:
        appearance = str(annot.get("/AS") or "")
        state = str(value or "")
        checked = state not in _OFF_VALUES or appearance not in _OFF_VALUES
        default_value = (state if state not in _OFF_VALUES else appearance).lstrip("/") if checked else "Off"
        on_state = _on_state(annot)
    elif field_type is FieldType.SIGNATURE:
        default_value = ""
    else:
        default_value = str(value or "")

    return FieldObject(
        id=widget_id,
        name=name,
        page_index=page_index,
        field_type=field_type,
        x=min(llx, urx),
        y=min(lly, ury),
        width=abs(urx - llx),
        height=abs(ury - lly),
        default_value=default_value,
        on_state=on_state,
    )


def _on_state(annot: DictionaryObject) -> str:
    appearances = annot["/AP"] if "/AP" in annot else None
    normal = appearances["/N"] if isinstance(appearances, DictionaryObject) and "/N" in appearances else None
    if isinstance(normal, DictionaryObject):
        for name in normal:
            if name not in _OFF_VALUES:
                return str(name).lstrip("/")
    return "Yes"


def _inherited(annot: DictionaryObject, key: str) -> object | None:
    node: DictionaryObject | None = annot
    while node is not None:
        if key in node:
            return node[key]
        parent = node.get("/Parent")
        node = parent.get_object() if parent is not None else None
    return None


def _qualified_name(annot: DictionaryObject) -> str:
    parts: list[str] = []
    node: DictionaryObject | None = annot
    while node is not None:
        partial = node.get("/T")
        if partial:
            parts.append(str(partial))
        parent = node.get("/Parent")
        node = parent.get_object() if parent is not None else None
    return ".".join(reversed(parts))
