"""Shared fixtures: generated fillable PDFs and in-memory collaborators."""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Callable
from io import BytesIO
from typing import Any

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from formsign.model.field import FieldObject, FieldSchema, FieldType
from formsign.model.form import Form
from formsign.model.signature import Signature
from formsign.state.annotations import AnnotationsMap, initialize

ONE_PIXEL_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
ONE_PIXEL_DATA_URI = "data:image/png;base64," + base64.b64encode(ONE_PIXEL_PNG).decode("ascii")


def make_form_pdf() -> bytes:
    """Two pages: name/date/agree/signature_lawfirm on page 1, signature_lawfirm and signature_client on page 2."""
    buffer = BytesIO()
    report = canvas.Canvas(buffer, pagesize=A4)

    report.drawString(72, 760, "Mandate")
    report.acroForm.textfield(name="name", x=72, y=700, width=200, height=20, value="")
    report.acroForm.textfield(name="date", x=72, y=660, width=120, height=20, value="2024-01-01")
    report.acroForm.checkbox(name="agree", x=72, y=620, size=14, checked=False)
    report.acroForm.textfield(name="signature_lawfirm", x=72, y=520, width=200, height=60, value="")
    report.showPage()

    report.drawString(72, 760, "Signatures")
    report.acroForm.textfield(name="signature_lawfirm", x=72, y=600, width=200, height=60, value="")
    report.acroForm.textfield(name="signature_client", x=320, y=600, width=200, height=60, value="")
    report.showPage()

    report.save()
    return buffer.getvalue()


def field(field_id: str, name: str, page_index: int = 0, default: str = "") -> FieldObject:
    return FieldObject(
        id=field_id,
        name=name,
        page_index=page_index,
        field_type=FieldType.TEXT,
        x=10.0,
        y=10.0,
        width=100.0,
        height=20.0,
        default_value=default,
    )


def scenario_schema() -> FieldSchema:
    return FieldSchema(
        [
            field("1R", "name"),
            field("2R", "date", default="2024-01-01"),
            field("3R", "signature_lawfirm"),
        ]
    )


def make_form(form_id: str = "form-1", tag: str = "MASTER", source: str = "memory://form-1") -> Form:
    return Form(id=form_id, tag=tag, source_url=source, title=form_id)


class FakeDocument:
    def __init__(self, source: str, page_count: int = 5) -> None:
        self.source = source
        self.page_count = page_count
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeEngine:
    """Document engine serving fixed schemas, optionally failing or blocking."""

    def __init__(self, schema: FieldSchema | None = None, page_count: int = 5) -> None:
        self.schema = schema if schema is not None else scenario_schema()
        self.page_count = page_count
        self.load_error: Exception | None = None
        self.extract_error: Exception | None = None
        self.loaded: list[str] = []
        self.gate: asyncio.Event | None = None

    async def load_document(self, source: str) -> FakeDocument:
        await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()
        self.loaded.append(source)
        if self.load_error is not None:
            raise self.load_error
        return FakeDocument(source, self.page_count)

    async def extract_field_schema(self, document: FakeDocument) -> FieldSchema:
        await asyncio.sleep(0)
        if self.extract_error is not None:
            raise self.extract_error
        return self.schema

    async def initialize_annotations(self, document: FakeDocument, schema: FieldSchema) -> AnnotationsMap:
        return initialize(schema)


class FakeBackend:
    def __init__(self, form: Form | None = None) -> None:
        self.form = form or make_form()
        self.submitted_form = make_form(self.form.id, tag="SIGNED", source="memory://signed")
        self.submit_error: Exception | None = None
        self.submit_calls: list[dict[str, Any]] = []
        self.fetch_calls: list[str] = []
        self.submit_gate: asyncio.Event | None = None

    async def fetch_form_by_token(self, token: str) -> Form:
        await asyncio.sleep(0)
        self.fetch_calls.append(token)
        return self.form

    async def submit_form(
        self,
        token: str,
        annotation_data: dict[str, Any],
        signatures: dict[str, dict[str, str]],
    ) -> Form:
        await asyncio.sleep(0)
        self.submit_calls.append(
            {"token": token, "annotation_data": annotation_data, "signatures": signatures}
        )
        if self.submit_gate is not None:
            await self.submit_gate.wait()
        if self.submit_error is not None:
            raise self.submit_error
        return self.submitted_form


class FakeAnchor:
    def __init__(self) -> None:
        self.rendered: list[tuple[str, str, Signature | None]] = []
        self.on_click: Callable[[], None] | None = None

    def show_pending(self, field: FieldObject, on_click: Callable[[], None]) -> None:
        self.rendered.append(("pending", field.id, None))
        self.on_click = on_click

    def show_completed(self, field: FieldObject, signature: Signature, on_click: Callable[[], None]) -> None:
        self.rendered.append(("completed", field.id, signature))
        self.on_click = on_click

    @property
    def last(self) -> str | None:
        return self.rendered[-1][0] if self.rendered else None


def answering(answer: bool):
    """Confirmation callback that always resolves to ``answer`` and counts prompts."""
    prompts: list[str] = []

    async def confirm(message: str) -> bool:
        prompts.append(message)
        return answer

    confirm.prompts = prompts  # type: ignore[attr-defined]
    return confirm
