"""Main application window: page preview, field editing, signing and submission."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Any

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QPixmap
from PySide6.QtWidgets import (
    QFileDialog,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QScrollArea,
    QSplitter,
    QToolBar,
)

from formsign.config import settings
from formsign.model.form import Form, LifecycleTag
from formsign.pdf.renderer import PdfRenderError, page_size, render_page_image
from formsign.pdf.writer import PdfWriteError, write_completed_pdf
from formsign.state.errors import SessionError
from formsign.state.events import StateChange
from formsign.state.placement import anchor_key
from formsign.state.session import FormSession, WorkflowState
from formsign.ui.signature_dialog import SignatureDialog
from formsign.viewer.canvas import PageMetrics, PdfCanvas


class MainWindow(QMainWindow):
    def __init__(self, session: FormSession) -> None:
        super().__init__()
        self.setWindowTitle("Form Signing")
        self.resize(1300, 850)

        self._session = session
        self._tasks: set[asyncio.Task[Any]] = set()

        self.page_list = QListWidget()
        self.page_list.currentRowChanged.connect(self._on_page_selected)

        self.canvas = PdfCanvas()
        self.canvas.field_edited.connect(self._on_field_edited)

        self.scroll_area = QScrollArea()
        self.scroll_area.setWidgetResizable(False)
        self.scroll_area.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.scroll_area.setWidget(self.canvas)

        splitter = QSplitter()
        splitter.addWidget(self.page_list)
        splitter.addWidget(self.scroll_area)
        splitter.setStretchFactor(0, 1)
        splitter.setStretchFactor(1, 4)
        self.setCentralWidget(splitter)

        self._build_toolbar()
        self.statusBar().showMessage("Ready")

        session.subscribe(self._on_document_changed, ["state"])
        session.subscribe(self._on_page_changed, ["page"])
        session.subscribe(self._on_sign_modal_changed, ["show_sign_modal"])
        session.subscribe(self._on_status_changed, ["has_changes", "is_fully_signed", "has_submitted"])

    def _build_toolbar(self) -> None:
        toolbar = QToolBar("Main Toolbar")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        open_action = QAction("Open PDF", self)
        open_action.triggered.connect(self.open_pdf)
        toolbar.addAction(open_action)

        export_action = QAction("Export Copy", self)
        export_action.triggered.connect(self.export_copy)
        toolbar.addAction(export_action)

        toolbar.addSeparator()

        prev_action = QAction("Previous", self)
        prev_action.triggered.connect(self._session.previous_page)
        toolbar.addAction(prev_action)

        next_action = QAction("Next", self)
        next_action.triggered.connect(self._session.next_page)
        toolbar.addAction(next_action)

        toolbar.addSeparator()

        self._reset_action = QAction("Reset", self)
        self._reset_action.triggered.connect(lambda: self.spawn(self._session.confirm_then_reset()))
        toolbar.addAction(self._reset_action)

        self._submit_action = QAction("Submit", self)
        self._submit_action.triggered.connect(lambda: self.spawn(self._session.confirm_then_submit()))
        toolbar.addAction(self._submit_action)
        self._update_actions()

    def spawn(self, coroutine: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coroutine)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def show_error(self, error: SessionError) -> None:
        title = "Open Failed" if error.terminal else "Action Failed"
        QMessageBox.critical(self, title, error.message)
        self.statusBar().showMessage(error.message)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        for task in self._tasks:
            task.cancel()
        self._session.close()
        super().closeEvent(event)

    def open_pdf(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Open PDF",
            str(Path.home()),
            "PDF Files (*.pdf)",
        )
        if not file_path:
            return
        form = Form(id=Path(file_path).stem, tag=LifecycleTag.MASTER.value, source_url=file_path)
        self.spawn(self._session.load(form))

    def export_copy(self) -> None:
        document = self._session.document
        schema = self._session.schema
        if document is None or schema is None or not self._session.ready:
            QMessageBox.information(self, "No Document", "Open a PDF first.")
            return

        source = Path(document.source)
        output_path, _ = QFileDialog.getSaveFileName(
            self,
            "Export Completed Copy",
            str(Path.home() / f"{source.stem}_completed.pdf"),
            "PDF Files (*.pdf)",
        )
        if not output_path:
            return

        try:
            write_completed_pdf(
                document,
                schema,
                self._session.annotations,
                self._session.registry.snapshot(),
                output_path,
            )
        except PdfWriteError as exc:
            QMessageBox.critical(self, "Export Failed", str(exc))
            return
        self.statusBar().showMessage(f"Exported: {output_path}")

    def _on_document_changed(self, change: StateChange) -> None:
        self._update_actions()
        if change.new in (WorkflowState.READY, WorkflowState.SUBMITTED) and change.old not in (
            WorkflowState.READY,
            WorkflowState.SUBMITTING,
            WorkflowState.SUBMITTED,
        ):
            self._populate_page_list()
            self._render_current_page()
        elif change.new is WorkflowState.LOADING:
            self.page_list.clear()
            self.canvas.clear_page()
            self.statusBar().showMessage("Loading document...")

    def _on_page_changed(self, change: StateChange) -> None:
        row = change.new - 1
        if self.page_list.currentRow() != row and row < self.page_list.count():
            self.page_list.setCurrentRow(row)
        self._render_current_page()

    def _on_page_selected(self, row: int) -> None:
        if row >= 0:
            self._session.goto_page(row + 1)

    def _on_field_edited(self, field_id: str, value: str) -> None:
        self._session.edit({field_id: value})

    def _on_sign_modal_changed(self, change: StateChange) -> None:
        field = self._session.selected_signature_field
        if not change.new or field is None:
            return
        dialog = SignatureDialog(field.name, self)
        dialog.accepted.connect(lambda: self._session.record_signature(field.name, dialog.png_bytes()))
        dialog.rejected.connect(self._session.close_sign_modal)
        dialog.finished.connect(dialog.deleteLater)
        dialog.open()

    def _on_status_changed(self, change: StateChange) -> None:
        del change
        self._update_actions()
        parts = []
        if self._session.has_changes:
            parts.append("unsaved changes")
        parts.append("all signatures present" if self._session.is_fully_signed else "signatures missing")
        if self._session.has_submitted:
            parts.append("submitted")
        self.statusBar().showMessage(", ".join(parts))

    def _update_actions(self) -> None:
        state = self._session.state
        self._submit_action.setEnabled(state is WorkflowState.READY and self._session.is_fully_signed)
        self._reset_action.setEnabled(
            state is WorkflowState.READY
            or (state is WorkflowState.SUBMITTED and self._session.allow_reedit_after_submit)
        )

    def _populate_page_list(self) -> None:
        self.page_list.blockSignals(True)
        self.page_list.clear()
        for page_number in range(1, self._session.page_count + 1):
            self.page_list.addItem(QListWidgetItem(f"Page {page_number}"))
        self.page_list.setCurrentRow(self._session.page - 1)
        self.page_list.blockSignals(False)

    def _render_current_page(self) -> None:
        document = self._session.document
        schema = self._session.schema
        if document is None or schema is None:
            self.canvas.clear_page()
            return

        page = self._session.page
        try:
            image = render_page_image(document, page, zoom=settings.render_zoom)
            width_pt, height_pt = page_size(document, page)
        except PdfRenderError as exc:
            QMessageBox.critical(self, "Render Failed", str(exc))
            return

        for key in self.canvas.overlays:
            self._session.locator.withdraw(key)

        values = {field_id: entry.value for field_id, entry in self._session.annotations.items()}
        self.canvas.set_page(
            pixmap=QPixmap.fromImage(image),
            metrics=PageMetrics(width_pt=width_pt, height_pt=height_pt),
            fields=schema.page_fields(page - 1),
            values=values,
            is_signature_field=self._session.classifier.is_signature_field,
            editable=self._session.state is WorkflowState.READY,
        )
        for field in schema.page_fields(page - 1):
            overlay = self.canvas.overlays.get(field.id)
            if overlay is not None:
                self._session.locator.announce(anchor_key(field), overlay)
        self._session.place_signatures()
        self.statusBar().showMessage(f"Page {page}/{self._session.page_count}")
