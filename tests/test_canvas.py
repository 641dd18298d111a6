"""Widget tests for the page canvas, run on Qt's offscreen platform."""

from __future__ import annotations

import os
import unittest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtGui import QPixmap
from PySide6.QtWidgets import QApplication, QCheckBox, QLineEdit

from formsign.model.field import FieldObject, FieldType
from formsign.viewer.canvas import PageMetrics, PdfCanvas, SignatureOverlay

from support import field


def checkbox_field(on_state: str = "Yes") -> FieldObject:
    return FieldObject(
        id="4R",
        name="agree",
        page_index=0,
        field_type=FieldType.CHECKBOX,
        x=72.0,
        y=620.0,
        width=14.0,
        height=14.0,
        default_value="Off",
        on_state=on_state,
    )


class TestPdfCanvas(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.app = QApplication.instance() or QApplication([])

    def setUp(self) -> None:
        self.canvas = PdfCanvas()
        self.edits: list[tuple[str, str]] = []
        self.canvas.field_edited.connect(lambda field_id, value: self.edits.append((field_id, value)))

    def tearDown(self) -> None:
        self.canvas.clear_page()
        self.canvas.deleteLater()

    def show_page(self, fields: list[FieldObject], values: dict[str, str], editable: bool = True) -> None:
        pixmap = QPixmap(595, 842)
        self.canvas.set_page(
            pixmap=pixmap,
            metrics=PageMetrics(width_pt=595.0, height_pt=842.0),
            fields=fields,
            values=values,
            is_signature_field=lambda f: f.name.startswith("signature"),
            editable=editable,
        )

    def test_checkbox_emits_on_state_and_off(self) -> None:
        self.show_page([checkbox_field("Agreed")], {"4R": "Off"})
        checkbox = self.canvas.editors["4R"]
        self.assertIsInstance(checkbox, QCheckBox)
        self.assertFalse(checkbox.isChecked())

        checkbox.click()
        checkbox.click()

        self.assertEqual(self.edits, [("4R", "Agreed"), ("4R", "Off")])

    def test_checkbox_reflects_stored_value_and_lock(self) -> None:
        self.show_page([checkbox_field()], {"4R": "Yes"}, editable=False)
        checkbox = self.canvas.editors["4R"]
        self.assertTrue(checkbox.isChecked())
        self.assertFalse(checkbox.isEnabled())

    def test_text_and_signature_widgets(self) -> None:
        self.show_page([field("1R", "name"), field("3R", "signature_lawfirm")], {"1R": "Jane Doe"})
        self.assertIsInstance(self.canvas.editors["1R"], QLineEdit)
        self.assertEqual(self.canvas.editors["1R"].text(), "Jane Doe")
        self.assertIsInstance(self.canvas.overlays["3R"], SignatureOverlay)
        self.assertNotIn("3R", self.canvas.editors)


if __name__ == "__main__":
    unittest.main()
