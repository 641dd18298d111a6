"""Tests for the immutable field schema and its PDF extraction."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from formsign.model.field import FieldSchema, FieldType
from formsign.pdf.importer import PdfImportError, extract_field_schema
from formsign.pdf.loader import PdfLoadError, fetch_pdf_bytes, load_pdf, open_pdf

from support import field, make_form_pdf


class TestFieldSchema(unittest.TestCase):
    def test_groups_occurrences_by_name_in_document_order(self) -> None:
        schema = FieldSchema(
            [
                field("1R", "signature_lawfirm", page_index=0),
                field("2R", "name"),
                field("3R", "signature_lawfirm", page_index=1),
            ]
        )
        self.assertEqual(list(schema), ["signature_lawfirm", "name"])
        self.assertEqual([f.id for f in schema["signature_lawfirm"]], ["1R", "3R"])
        self.assertEqual(schema.first("signature_lawfirm").id, "1R")
        self.assertIsNone(schema.first("missing"))
        self.assertEqual(schema.field_ids(), {"1R", "2R", "3R"})
        self.assertEqual([f.id for f in schema.page_fields(1)], ["3R"])

    def test_duplicate_identifiers_are_kept_once(self) -> None:
        schema = FieldSchema([field("1R", "name"), field("1R", "name")])
        self.assertEqual(len(schema.all_fields()), 1)

    def test_schema_is_read_only(self) -> None:
        schema = FieldSchema([field("1R", "name")])
        with self.assertRaises(TypeError):
            schema["name"] = ()  # type: ignore[index]
        with self.assertRaises(AttributeError):
            schema["name"][0].name = "other"  # type: ignore[misc]


class TestPdfExtraction(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "mandate.pdf"
        self.path.write_bytes(make_form_pdf())

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_load_pdf_from_path(self) -> None:
        document = load_pdf(str(self.path))
        try:
            self.assertEqual(document.page_count, 2)
            self.assertEqual(document.source, str(self.path))
        finally:
            document.close()
        self.assertTrue(document.is_closed)

    def test_extracts_fields_with_pages_and_defaults(self) -> None:
        document = load_pdf(str(self.path))
        try:
            schema = extract_field_schema(document)
        finally:
            document.close()

        self.assertEqual(
            set(schema),
            {"name", "date", "agree", "signature_lawfirm", "signature_client"},
        )
        self.assertEqual(schema.first("date").default_value, "2024-01-01")
        self.assertEqual(schema.first("name").default_value, "")
        self.assertEqual(schema.first("agree").field_type, FieldType.CHECKBOX)
        self.assertEqual(schema.first("agree").default_value, "Off")
        self.assertEqual(schema.first("agree").on_state, "Yes")
        self.assertEqual([f.page_index for f in schema["signature_lawfirm"]], [0, 1])
        self.assertEqual(schema.first("signature_client").page_index, 1)

        ids = [f.id for f in schema.all_fields()]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertTrue(all(f.width > 0 and f.height > 0 for f in schema.all_fields()))

    def test_missing_file_raises_load_error(self) -> None:
        with self.assertRaises(PdfLoadError):
            fetch_pdf_bytes(str(self.path.with_name("missing.pdf")))

    def test_empty_source_raises_load_error(self) -> None:
        with self.assertRaises(PdfLoadError):
            fetch_pdf_bytes("")

    def test_garbage_bytes_raise_load_error(self) -> None:
        with self.assertRaises(PdfLoadError):
            open_pdf("garbage", b"this is not a pdf")

    def test_unreadable_field_data_raises_import_error(self) -> None:
        document = load_pdf(str(self.path))
        document.data = b""
        try:
            with self.assertRaises(PdfImportError):
                extract_field_schema(document)
        finally:
            document.close()


if __name__ == "__main__":
    unittest.main()
