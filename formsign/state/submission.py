"""Serialization of session state and the submit exchange."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import logging
from typing import Any, Protocol

from formsign.model.form import Form
from formsign.state.annotations import AnnotationEntry, serialize
from formsign.state.errors import SubmissionError
from formsign.state.signatures import SignatureRegistry

logger = logging.getLogger(__name__)


class SubmitBackend(Protocol):
    async def submit_form(
        self,
        token: str,
        annotation_data: dict[str, Any],
        signatures: dict[str, dict[str, str]],
    ) -> Form: ...


@dataclass(frozen=True, slots=True)
class SubmissionPayload:
    annotation_data: dict[str, str]
    signatures: dict[str, dict[str, str]]
    token: str


def build_payload(
    annotations: Mapping[str, AnnotationEntry],
    registry: SignatureRegistry,
    token: str,
) -> SubmissionPayload:
    return SubmissionPayload(
        annotation_data=serialize(annotations),
        signatures=registry.to_payload(),
        token=token,
    )


def build_attachment(form: Form, payload: SubmissionPayload) -> dict[str, Any]:
    """The form record enriched with the current values, for attaching to an e-mail."""
    record = dict(form.raw)
    properties = dict(record.get("documentProperties") or {"id": form.id, "tag": form.tag})
    properties["annotationData"] = payload.annotation_data
    properties["signatures"] = payload.signatures
    record["documentProperties"] = properties
    return record


class SubmissionPipeline:
    def __init__(self, backend: SubmitBackend) -> None:
        self._backend = backend

    async def submit(self, payload: SubmissionPayload) -> Form:
        if not payload.token:
            raise SubmissionError("No response token available for submission.")
        try:
            form = await self._backend.submit_form(
                payload.token, payload.annotation_data, payload.signatures
            )
        except (RuntimeError, OSError) as exc:
            logger.warning("Submission failed: %s", exc)
            raise SubmissionError(str(exc) or "Submission failed.") from exc
        logger.info("Document %s submitted, now tagged %s", form.id, form.tag)
        return form
