"""Form record as handed out by the document backend."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum


class LifecycleTag(str, Enum):
    MASTER = "MASTER"
    SIGNED = "SIGNED"


class DocumentTypeId(str, Enum):
    PDF_TEMPLATE = "PDF_TEMPLATE"


@dataclass(frozen=True, slots=True)
class Form:
    id: str
    tag: str
    source_url: str
    document_type: str = DocumentTypeId.PDF_TEMPLATE.value
    title: str = ""
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_signed(self) -> bool:
        return self.tag == LifecycleTag.SIGNED.value


def requestable_forms(forms: Iterable[Form]) -> list[Form]:
    """Forms a user may request: PDF templates still in their master state."""
    return [
        form
        for form in forms
        if form.document_type == DocumentTypeId.PDF_TEMPLATE.value
        and form.tag == LifecycleTag.MASTER.value
    ]
