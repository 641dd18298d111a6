"""Document model for a loaded PDF and its in-memory handle."""

from __future__ import annotations

from dataclasses import dataclass

import fitz


@dataclass(slots=True)
class PdfDocument:
    source: str
    data: bytes
    handle: fitz.Document

    @property
    def page_count(self) -> int:
        return self.handle.page_count

    @property
    def is_closed(self) -> bool:
        return self.handle.is_closed

    def close(self) -> None:
        if not self.handle.is_closed:
            self.handle.close()
