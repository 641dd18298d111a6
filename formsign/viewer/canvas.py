"""Page canvas showing a rendered PDF page with field and signature overlays."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from PySide6.QtCore import QRect, QRectF, Qt, Signal
from PySide6.QtGui import QColor, QPainter, QPixmap
from PySide6.QtWidgets import QCheckBox, QLabel, QLineEdit, QWidget

from formsign.model.field import FieldObject, FieldType
from formsign.model.signature import Signature
from formsign.pdf.renderer import PdfRenderError, signature_image


@dataclass(slots=True)
class PageMetrics:
    width_pt: float
    height_pt: float


class SignatureOverlay(QLabel):
    """Clickable overlay bound to one signature field occurrence."""

    def __init__(self, parent: QWidget) -> None:
        super().__init__(parent)
        self._on_click: Callable[[], None] | None = None
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setWordWrap(True)

    def show_pending(self, field: FieldObject, on_click: Callable[[], None]) -> None:
        self._on_click = on_click
        self.clear()
        self.setText("SIGN HERE")
        self.setToolTip(field.name)
        self.setStyleSheet(
            "color: #c44747; font-weight: bold; background-color: #ffddeecc;"
            " border: 2px dashed #c44747; border-radius: 2px;"
        )
        self.show()

    def show_completed(
        self,
        field: FieldObject,
        signature: Signature,
        on_click: Callable[[], None],
    ) -> None:
        self._on_click = on_click
        self.setToolTip(f"{field.name} (signed {signature.signed_at:%Y-%m-%d %H:%M})")
        self.setStyleSheet("background-color: #ddffdd; border: 2px solid #c44747;")
        try:
            image = signature_image(signature)
        except PdfRenderError:
            self.setText("SIGNED")
        else:
            pixmap = QPixmap.fromImage(image).scaled(
                self.size(),
                Qt.AspectRatioMode.KeepAspectRatio,
                Qt.TransformationMode.SmoothTransformation,
            )
            self.setPixmap(pixmap)
        self.show()

    def mousePressEvent(self, event) -> None:  # type: ignore[override]
        if event.button() == Qt.MouseButton.LeftButton and self._on_click is not None:
            self._on_click()
            event.accept()
            return
        super().mousePressEvent(event)


class PdfCanvas(QWidget):
    field_edited = Signal(str, str)

    def __init__(self) -> None:
        super().__init__()
        self._pixmap: QPixmap | None = None
        self._metrics: PageMetrics | None = None
        self._editors: dict[str, QWidget] = {}
        self._overlays: dict[str, SignatureOverlay] = {}
        self._editable = True
        self.setMinimumSize(500, 600)

    @property
    def overlays(self) -> dict[str, SignatureOverlay]:
        return dict(self._overlays)

    @property
    def editors(self) -> dict[str, QWidget]:
        return dict(self._editors)

    def set_page(
        self,
        pixmap: QPixmap,
        metrics: PageMetrics,
        fields: list[FieldObject],
        values: Mapping[str, str],
        is_signature_field: Callable[[FieldObject], bool],
        editable: bool = True,
    ) -> None:
        self.clear_page()
        self._pixmap = pixmap
        self._metrics = metrics
        self._editable = editable
        self.resize(pixmap.size())

        for field in fields:
            rect = self._field_rect_to_pixels(field).toRect()
            if is_signature_field(field):
                overlay = SignatureOverlay(self)
                overlay.setGeometry(rect)
                self._overlays[field.id] = overlay
            elif field.field_type in (FieldType.TEXT, FieldType.CHOICE):
                editor = QLineEdit(self)
                editor.setGeometry(rect)
                editor.setFrame(False)
                editor.setStyleSheet("background-color: #dde8ff88;")
                editor.setText(values.get(field.id, field.default_value))
                editor.setReadOnly(not editable)
                editor.textEdited.connect(
                    lambda text, field_id=field.id: self.field_edited.emit(field_id, text)
                )
                editor.show()
                self._editors[field.id] = editor
            elif field.field_type is FieldType.CHECKBOX:
                value = values.get(field.id, field.default_value)
                self._editors[field.id] = self._checkbox(field, rect, value, editable)
        self.update()

    def _checkbox(self, field: FieldObject, rect: QRect, value: str, editable: bool) -> QCheckBox:
        on_state = field.on_state or "Yes"
        checkbox = QCheckBox(self)
        checkbox.setGeometry(rect)
        checkbox.setToolTip(field.name)
        checkbox.setStyleSheet("background-color: #dde8ff88;")
        checkbox.setChecked(value.lstrip("/") not in ("", "Off"))
        checkbox.setEnabled(editable)
        checkbox.clicked.connect(
            lambda checked, field_id=field.id: self.field_edited.emit(field_id, on_state if checked else "Off")
        )
        checkbox.show()
        return checkbox

    def clear_page(self) -> None:
        for widget in [*self._editors.values(), *self._overlays.values()]:
            widget.deleteLater()
        self._editors.clear()
        self._overlays.clear()
        self._pixmap = None
        self._metrics = None
        self.resize(500, 600)
        self.update()

    def paintEvent(self, event) -> None:  # type: ignore[override]
        del event
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor("#e9eaee"))
        if self._pixmap is not None:
            painter.drawPixmap(0, 0, self._pixmap)

    def _field_rect_to_pixels(self, field: FieldObject) -> QRectF:
        sx, sy = self._scale_factors()
        left = field.x * sx
        top = (self._metrics.height_pt - (field.y + field.height)) * sy
        return QRectF(left, top, field.width * sx, field.height * sy)

    def _scale_factors(self) -> tuple[float, float]:
        if self._pixmap is None or self._metrics is None:
            return 1.0, 1.0
        sx = self._pixmap.width() / self._metrics.width_pt
        sy = self._pixmap.height() / self._metrics.height_pt
        return sx, sy
