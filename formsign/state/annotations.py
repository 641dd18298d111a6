"""Per-field annotation values and the prefill merge."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import logging
from typing import Any

from formsign.model.field import FieldSchema

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AnnotationEntry:
    value: str


AnnotationsMap = dict[str, AnnotationEntry]


@dataclass(frozen=True, slots=True)
class PrefillResult:
    annotations: AnnotationsMap
    applied: dict[str, str] = field(default_factory=dict)
    unmatched: list[str] = field(default_factory=list)

    @property
    def empty_input(self) -> bool:
        return not self.applied and not self.unmatched


def initialize(schema: FieldSchema) -> AnnotationsMap:
    """Seed one entry per field identifier from the document's own defaults."""
    return {
        field_object.id: AnnotationEntry(value=field_object.default_value)
        for field_object in schema.all_fields()
    }


def merge_prefill(
    annotations: Mapping[str, AnnotationEntry],
    external: Mapping[str, Any],
    schema: FieldSchema,
) -> PrefillResult:
    """Write external values onto the first widget of each matching field name.

    Returns a new map; ``annotations`` itself is left untouched. Keys without a
    matching field are reported and skipped.
    """
    merged: AnnotationsMap = dict(annotations)
    applied: dict[str, str] = {}
    unmatched: list[str] = []

    for key, value in external.items():
        target = schema.first(key)
        if target is None:
            logger.warning("No field object for prefill key %r", key)
            unmatched.append(key)
            continue
        text = "" if value is None else str(value)
        logger.debug("Changing value of %s (%s) to %r", target.id, key, text)
        merged[target.id] = AnnotationEntry(value=text)
        applied[target.id] = text

    return PrefillResult(annotations=merged, applied=applied, unmatched=unmatched)


def serialize(annotations: Mapping[str, AnnotationEntry]) -> dict[str, str]:
    """Flatten entries into the identifier -> value mapping sent over the wire."""
    return {field_id: entry.value for field_id, entry in annotations.items()}


class AnnotationStore:
    """Owns the current document's annotations map."""

    def __init__(self) -> None:
        self._schema: FieldSchema | None = None
        self._entries: AnnotationsMap = {}

    @property
    def schema(self) -> FieldSchema | None:
        return self._schema

    def snapshot(self) -> AnnotationsMap:
        return dict(self._entries)

    def get(self, field_id: str) -> AnnotationEntry | None:
        return self._entries.get(field_id)

    def replace(self, schema: FieldSchema | None, entries: Mapping[str, AnnotationEntry]) -> None:
        known = schema.field_ids() if schema is not None else set()
        stale = [field_id for field_id in entries if field_id not in known]
        if stale:
            logger.warning("Discarding %s annotation(s) unknown to the schema: %s", len(stale), stale)
        self._schema = schema
        self._entries = {field_id: entry for field_id, entry in entries.items() if field_id in known}

    def apply(self, update: Mapping[str, Any]) -> dict[str, str]:
        """Apply ``{field_id: value}`` edits; unknown identifiers are ignored."""
        applied: dict[str, str] = {}
        known = self._schema.field_ids() if self._schema is not None else set()
        for field_id, value in update.items():
            if field_id not in known:
                logger.warning("Ignoring edit for unknown field %r", field_id)
                continue
            if isinstance(value, Mapping):
                value = value.get("value", "")
            applied[field_id] = "" if value is None else str(value)
        for field_id, text in applied.items():
            self._entries[field_id] = AnnotationEntry(value=text)
        return applied

    def clear(self) -> None:
        self._schema = None
        self._entries = {}

    def __len__(self) -> int:
        return len(self._entries)
