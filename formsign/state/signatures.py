"""Signature registry and signature-field classification."""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
import logging
import re

from formsign.model.field import FieldObject, FieldSchema
from formsign.model.signature import Signature

logger = logging.getLogger(__name__)


class SignatureScope(str, Enum):
    """Which party's signature fields the current viewer is asked to sign."""

    OWN_FIELDS = "own"
    COUNTERPARTY_FIELDS = "counterparty"

    def pattern(self, party_marker: str = "lawfirm") -> re.Pattern[str]:
        marker = re.escape(party_marker)
        if self is SignatureScope.OWN_FIELDS:
            return re.compile(rf"signature_{marker}", re.IGNORECASE)
        return re.compile(rf"^(?!.*{marker}).*signature", re.IGNORECASE)


class SignatureClassifier:
    def __init__(self, scope: SignatureScope, party_marker: str = "lawfirm") -> None:
        self.scope = scope
        self._pattern = scope.pattern(party_marker)

    def is_signature_field(self, field: FieldObject) -> bool:
        return self.matches(field.name)

    def matches(self, name: str) -> bool:
        return self._pattern.search(name) is not None

    def signature_fields(self, schema: FieldSchema | None) -> dict[str, tuple[FieldObject, ...]]:
        if schema is None:
            return {}
        return {name: fields for name, fields in schema.items() if self.matches(name)}


class SignatureRegistry:
    """Field name -> latest captured signature."""

    def __init__(self) -> None:
        self._signatures: dict[str, Signature] = {}

    def record(self, signature: Signature) -> Signature | None:
        previous = self._signatures.get(signature.field_name)
        self._signatures[signature.field_name] = signature
        logger.info("Recorded signature for %s", signature.field_name)
        return previous

    def get(self, field_name: str) -> Signature | None:
        return self._signatures.get(field_name)

    def names(self) -> set[str]:
        return set(self._signatures)

    def snapshot(self) -> dict[str, Signature]:
        return dict(self._signatures)

    def clear(self) -> None:
        self._signatures.clear()

    def to_payload(self) -> dict[str, dict[str, str]]:
        return {name: signature.to_payload() for name, signature in self._signatures.items()}

    def __contains__(self, field_name: object) -> bool:
        return field_name in self._signatures

    def __iter__(self) -> Iterator[Signature]:
        return iter(list(self._signatures.values()))

    def __len__(self) -> int:
        return len(self._signatures)


def is_fully_signed(
    schema: FieldSchema | None,
    registry: SignatureRegistry,
    classifier: SignatureClassifier,
) -> bool:
    """True when every signature-class field name has a signature; vacuously true without a schema."""
    if schema is None:
        return True
    signed = {signature.field_name for signature in registry}
    return all(name in signed for name in classifier.signature_fields(schema))
