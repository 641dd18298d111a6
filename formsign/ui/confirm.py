"""Non-blocking yes/no confirmation for the asyncio-driven window."""

from __future__ import annotations

import asyncio

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QMessageBox, QWidget


async def ask_confirmation(parent: QWidget | None, message: str) -> bool:
    future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
    box = QMessageBox(
        QMessageBox.Icon.Question,
        "Please confirm",
        message,
        QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        parent,
    )
    box.setWindowModality(Qt.WindowModality.WindowModal)

    def on_finished(_result: int) -> None:
        if future.done():
            return
        clicked = box.clickedButton()
        future.set_result(
            clicked is not None and box.standardButton(clicked) == QMessageBox.StandardButton.Yes
        )

    box.finished.connect(on_finished)
    box.open()
    try:
        return await future
    finally:
        box.deleteLater()
