"""Signature pad dialog: draw with the mouse, export as PNG."""

from __future__ import annotations

from PySide6.QtCore import QBuffer, QByteArray, QIODevice, QPoint, Qt
from PySide6.QtGui import QPainter, QPen, QPixmap
from PySide6.QtWidgets import QDialog, QHBoxLayout, QLabel, QPushButton, QVBoxLayout, QWidget


class SignaturePad(QWidget):
    def __init__(self, width: int = 500, height: int = 200, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setFixedSize(width, height)
        self._image = QPixmap(width, height)
        self._image.fill(Qt.GlobalColor.white)
        self._last_point: QPoint | None = None
        self._has_strokes = False

    @property
    def is_empty(self) -> bool:
        return not self._has_strokes

    def paintEvent(self, event) -> None:  # type: ignore[override]
        del event
        painter = QPainter(self)
        painter.drawPixmap(0, 0, self._image)

    def mousePressEvent(self, event) -> None:  # type: ignore[override]
        if event.button() == Qt.MouseButton.LeftButton:
            self._last_point = event.position().toPoint()

    def mouseMoveEvent(self, event) -> None:  # type: ignore[override]
        if self._last_point is None:
            return
        point = event.position().toPoint()
        painter = QPainter(self._image)
        painter.setPen(
            QPen(Qt.GlobalColor.black, 3, Qt.PenStyle.SolidLine, Qt.PenCapStyle.RoundCap, Qt.PenJoinStyle.RoundJoin)
        )
        painter.drawLine(self._last_point, point)
        painter.end()
        self._last_point = point
        self._has_strokes = True
        self.update()

    def mouseReleaseEvent(self, event) -> None:  # type: ignore[override]
        if event.button() == Qt.MouseButton.LeftButton:
            self._last_point = None

    def clear(self) -> None:
        self._image.fill(Qt.GlobalColor.white)
        self._has_strokes = False
        self.update()

    def png_bytes(self) -> bytes:
        data = QByteArray()
        buffer = QBuffer(data)
        buffer.open(QIODevice.OpenModeFlag.WriteOnly)
        self._image.save(buffer, "PNG")
        buffer.close()
        return bytes(data)


class SignatureDialog(QDialog):
    def __init__(self, field_name: str, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle(f"Sign: {field_name}")
        self.pad = SignaturePad(parent=self)

        layout = QVBoxLayout(self)
        layout.addWidget(QLabel("Draw your signature below:", self))
        layout.addWidget(self.pad)

        buttons = QHBoxLayout()
        clear_button = QPushButton("Clear", self)
        cancel_button = QPushButton("Cancel", self)
        save_button = QPushButton("Save", self)
        clear_button.clicked.connect(self.pad.clear)
        cancel_button.clicked.connect(self.reject)
        save_button.clicked.connect(self._save)
        buttons.addWidget(clear_button)
        buttons.addStretch(1)
        buttons.addWidget(cancel_button)
        buttons.addWidget(save_button)
        layout.addLayout(buttons)

    def _save(self) -> None:
        if self.pad.is_empty:
            return
        self.accept()

    def png_bytes(self) -> bytes:
        return self.pad.png_bytes()
